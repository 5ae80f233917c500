import argparse
import logging
import os
import shutil
import sys
import textwrap
from typing import Optional

from helium_reader import __version__
from helium_reader.lib import is_ebook_file, truncate
from helium_reader.models import AppData
from helium_reader.session import OpenError, Session, SessionCoordinator
from helium_reader.state import PositionStore
from helium_reader.toc import find_toc_entry, flatten_toc


def setup_logging(debug: bool = False) -> None:
    """
    Log into file, stderr belongs to curses screen
    """
    prefix = AppData().prefix
    logging.basicConfig(
        filename=os.path.join(prefix, "debug.log") if prefix else os.devnull,
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(asctime)s %(name)s %(levelname)s: %(message)s",
    )


def parse_cli_args(argv: Optional[list] = None) -> argparse.Namespace:
    prog = "helium"
    positional_arg_help_str = "[PATH]"
    args_parser = argparse.ArgumentParser(
        prog=prog,
        usage=f"%(prog)s [-h] [-t] [-d] [-v] [--debug] {positional_arg_help_str}",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        description="Read epub in terminal, resuming where you left off",
        epilog=textwrap.dedent(
            f"""\
        examples:
          {prog} /path/to/ebook.epub    read /path/to/ebook.epub
          {prog}                        continue the last opened ebook
          {prog} -t book.epub           print table of contents
        """
        ),
    )
    args_parser.add_argument(
        "-t", "--toc", action="store_true", help="print table of contents"
    )
    args_parser.add_argument("-d", "--dump", action="store_true", help="dump the content of ebook")
    args_parser.add_argument("--debug", action="store_true", help="write debug log")
    args_parser.add_argument(
        "-v",
        "--version",
        action="version",
        version=f"v{__version__}",
        help="print version and exit",
    )
    args_parser.add_argument(
        "ebook",
        action="store",
        nargs="?",
        metavar=positional_arg_help_str,
        help="ebook path",
    )
    return args_parser.parse_args(argv)


def find_file(args: argparse.Namespace, store: PositionStore) -> str:
    if args.ebook is None:
        last_read = store.get_last_opened_path()
        if last_read and os.path.isfile(last_read):
            return last_read
        sys.exit("ERROR: Found no last opened ebook file.")
    elif not is_ebook_file(args.ebook):
        sys.exit(f"ERROR: {args.ebook} is not an epub file.")
    return args.ebook


def open_or_exit(coordinator: SessionCoordinator, filepath: str) -> Session:
    try:
        return coordinator.open_session(filepath)
    except OpenError as e:
        if e.reason == OpenError.READ_FAILED:
            sys.exit(f"ERROR: Cannot read {filepath}.\n{e.detail or ''}".rstrip())
        sys.exit("ERROR: Badly-structured ebook.\n" + (e.detail or ""))


def print_toc(session: Session) -> None:
    termc, _ = shutil.get_terminal_size()
    toc_entries = flatten_toc(session.toc)
    if not toc_entries:
        print("No Table of Contents.")
        return

    current = find_toc_entry(session.state.current_index, session.toc, session.spine)
    print(session.metadata.title or os.path.basename(session.filepath))
    for depth, entry in toc_entries:
        marker = ">>" if entry is current else "  "
        line = "{} {}{}".format(marker, "  " * depth, " ".join(entry.label.split()))
        print(truncate(line, "...", termc))


def dump_ebook_content(session: Session) -> None:
    for section in session.spine:
        content = session.renderer.get_section_text(section.index).text
        sys.stdout.buffer.write((content + "\n\n").encode("utf-8"))
