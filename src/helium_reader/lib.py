import os

from helium_reader.models import FileReadResult


def read_file(filepath: str) -> FileReadResult:
    try:
        with open(filepath, "rb") as f:
            return FileReadResult(success=True, data=f.read())
    except OSError as e:
        return FileReadResult(success=False, error=e.strerror or str(e))


def is_ebook_file(filepath: str) -> bool:
    return os.path.isfile(filepath) and os.path.splitext(filepath)[1].lower() in {
        ".epub",
        ".epub3",
    }


def truncate(teks: str, subtitution_text: str, maxlen: int) -> str:
    """
    Truncate text from the end

    eg.
    :param teks: 'This is long silly dummy text'
    :param subtitution_text:  '...'
    :param maxlen: 12
    :return: 'This is l...'
    """
    if len(teks) <= maxlen:
        return teks
    elif maxlen <= len(subtitution_text):
        return subtitution_text[:maxlen]
    return teks[: maxlen - len(subtitution_text)] + subtitution_text
