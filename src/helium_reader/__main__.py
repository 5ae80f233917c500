import curses
import shutil
import sys

import helium_reader.cli as cli
import helium_reader.reader as reader
from helium_reader.config import Config
from helium_reader.renderers import Epub
from helium_reader.session import SessionCoordinator
from helium_reader.state import SqlitePositionStore


def main():
    args = cli.parse_cli_args()
    cli.setup_logging(args.debug)

    store = SqlitePositionStore()
    config = Config()
    filepath = cli.find_file(args, store)

    page_chars = config.setting.PageChars
    if page_chars <= 0:
        cols, rows = shutil.get_terminal_size()
        # wrapping wastes some room, keep the page short of full screen
        page_chars = max((rows - 4) * (cols - 4) * 3 // 4, 200)

    coordinator = SessionCoordinator(
        store,
        renderer_factory=lambda: Epub(page_chars=page_chars),
        location_chars=config.setting.LocationChars,
    )
    session = cli.open_or_exit(coordinator, filepath)
    try:
        if args.toc:
            sys.exit(cli.print_toc(session))
        if args.dump:
            sys.exit(cli.dump_ebook_content(session))
        curses.wrapper(reader.start_reading, coordinator, session, config)
    finally:
        coordinator.close_session(session)


if __name__ == "__main__":
    main()
