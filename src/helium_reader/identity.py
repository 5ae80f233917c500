import re
from typing import Optional

from helium_reader.models import BookMetadata

BOOK_ID_PREFIX = "book_"
BASE36_DIGITS = "0123456789abcdefghijklmnopqrstuvwxyz"


def string_hash(text: str) -> int:
    """
    31-based rolling hash over UTF-16 code units,
    wrapped to signed 32-bit like Java's String.hashCode()

    eg.
    :param text: 'ab'
    :return: 3105
    """
    hash_ = 0
    # lone surrogates (undecodable file names) count as single code units
    encoded = text.encode("utf-16-le", "surrogatepass")
    for i in range(0, len(encoded), 2):
        code = int.from_bytes(encoded[i : i + 2], "little")
        hash_ = (hash_ * 31 + code) & 0xFFFFFFFF
    return hash_ - 0x100000000 if hash_ & 0x80000000 else hash_


def to_base36(number: int) -> str:
    if number < 0:
        raise ValueError("Var number has to be non-negative.")
    if number == 0:
        return "0"
    digits = []
    while number:
        number, rem = divmod(number, 36)
        digits.append(BASE36_DIGITS[rem])
    return "".join(reversed(digits))


def get_basename(filepath: str) -> str:
    # both separators, the path may come from another platform
    return re.split(r"[/\\]", filepath)[-1]


def resolve_book_id(filepath: str, metadata: Optional[BookMetadata] = None) -> str:
    """
    Stable book identity used as persistence key.
    Same file name, title and author always give the same id,
    regardless of the directory the book lives in.
    """
    filename = get_basename(filepath)
    title = metadata.title if metadata is not None and metadata.title else filename
    author = metadata.creator if metadata is not None and metadata.creator else "unknown"
    return BOOK_ID_PREFIX + to_base36(abs(string_hash(f"{filename}_{title}_{author}")))
