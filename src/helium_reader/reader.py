import curses
import dataclasses
import os
import textwrap
from typing import List, Optional, Sequence, Tuple

from helium_reader.config import Config
from helium_reader.lib import truncate
from helium_reader.models import AtBoundary, Key, NavEntry, NotFound, Theme
from helium_reader.session import Session, SessionCoordinator
from helium_reader.toc import find_toc_entry, flatten_toc

COLOR_PAIR_DARK = 2
COLOR_PAIR_LIGHT = 3


class Reader:
    def __init__(self, screen, coordinator: SessionCoordinator, session: Session, config: Config):
        self.screen = screen
        self.coordinator = coordinator
        self.session = session
        self.setting = config.setting
        self.keymap = config.keymap
        # to build help menu text
        self.keymap_user_dict = config.keymap_user_dict

        self.show_progress: bool = self.setting.ShowProgressIndicator
        self.message: Optional[str] = None

        self.screen.keypad(True)
        try:
            curses.curs_set(0)
        except curses.error:
            pass

        self.is_color_supported: bool = False
        try:
            curses.use_default_colors()
            curses.init_pair(COLOR_PAIR_DARK, self.setting.DarkColorFG, self.setting.DarkColorBG)
            curses.init_pair(COLOR_PAIR_LIGHT, self.setting.LightColorFG, self.setting.LightColorBG)
            self.is_color_supported = True
        except curses.error:
            self.is_color_supported = False
        self.apply_theme(coordinator.theme)

    @property
    def screen_rows(self) -> int:
        return self.screen.getmaxyx()[0]

    @property
    def screen_cols(self) -> int:
        return self.screen.getmaxyx()[1]

    def apply_theme(self, theme: Theme) -> None:
        if self.is_color_supported:
            pair = COLOR_PAIR_DARK if theme == Theme.DARK else COLOR_PAIR_LIGHT
            self.screen.bkgd(curses.color_pair(pair))

    def addline(self, row: int, text: str, attr: int = curses.A_NORMAL) -> None:
        if row >= self.screen_rows:
            return
        try:
            self.screen.addstr(row, 0, truncate(text, "...", max(self.screen_cols - 1, 0)), attr)
        except curses.error:
            # writing at bottom-right corner raises after the character is printed
            pass

    def header_lines(self) -> Tuple[str, str]:
        state = self.session.state
        title = self.session.metadata.title or os.path.basename(self.session.filepath)
        position = f"Chapter {state.current_index + 1} of {len(self.session.spine)}"
        if self.show_progress and state.progress_fraction is not None:
            position += f"  {int(state.progress_fraction * 100)}%"
            locations = self.session.renderer.locations
            location = self.session.renderer.current_location
            page = locations.location_from_cfi(location.cfi) if location is not None else None
            if page is not None:
                position += f"  Page {page + 1} of {locations.total}"
        return f"{title} - {state.resolved_chapter_title}", position

    def body_lines(self, width: int) -> List[str]:
        lines: List[str] = []
        for paragraph in self.session.renderer.page_text().split("\n"):
            lines += textwrap.wrap(paragraph, width) or [""]
        return lines

    def draw(self) -> None:
        self.screen.erase()
        title_line, position_line = self.header_lines()
        self.addline(0, title_line, curses.A_BOLD)
        self.addline(1, position_line)

        textwidth = max(self.screen_cols - 4, 10)
        body = self.body_lines(textwidth)
        for n, line in enumerate(body[: max(self.screen_rows - 4, 0)]):
            self.addline(3 + n, "  " + line)

        if self.message:
            self.addline(self.screen_rows - 1, self.message, curses.A_REVERSE)
            self.message = None
        self.screen.refresh()

    def show_win_text(self, title: str, lines: Sequence[str], keys: Tuple[Key, ...]) -> None:
        rows, cols = self.screen.getmaxyx()
        win = curses.newwin(rows - 4, cols - 4, 2, 2)
        if self.is_color_supported:
            win.bkgd(self.screen.getbkgd())
        win.box()
        win.addstr(1, 2, title[: cols - 8])
        win.addstr(2, 2, "-" * min(len(title), cols - 8))
        for n, line in enumerate(lines[: rows - 9]):
            win.addstr(4 + n, 2, truncate(line, "...", cols - 9))
        win.refresh()
        key = Key(win.getch())
        while key not in self.keymap.Quit + keys:
            key = Key(win.getch())

    def show_win_toc(self) -> Optional[NavEntry]:
        """
        List nested toc entries and return the chosen one,
        None if window closed without choosing
        """
        entries = flatten_toc(self.session.toc)
        if not entries:
            self.message = "No table of contents"
            return None

        current = find_toc_entry(
            self.session.state.current_index, self.session.toc, self.session.spine
        )
        index = next((n for n, (_, entry) in enumerate(entries) if entry is current), 0)

        rows, cols = self.screen.getmaxyx()
        win = curses.newwin(rows - 4, cols - 4, 2, 2)
        win.keypad(True)
        if self.is_color_supported:
            win.bkgd(self.screen.getbkgd())
        visible = max(rows - 9, 1)
        top = 0
        while True:
            top = min(max(top, index - visible + 1), index)
            win.erase()
            win.box()
            win.addstr(1, 2, "Table of Contents")
            for n, (depth, entry) in enumerate(entries[top : top + visible]):
                label = "  " * depth + " ".join(entry.label.split())
                attr = curses.A_REVERSE if top + n == index else curses.A_NORMAL
                win.addstr(3 + n, 2, truncate(label, "...", cols - 9), attr)
            win.refresh()

            key = Key(win.getch())
            if key in self.keymap.Quit + self.keymap.TableOfContents:
                return None
            elif key in (Key(10), Key(curses.KEY_ENTER)):
                return entries[index][1]
            elif key in (Key("k"), Key(curses.KEY_UP)) + self.keymap.PageUp:
                index = max(index - 1, 0)
            elif key in (Key("j"), Key(curses.KEY_DOWN)) + self.keymap.PageDown:
                index = min(index + 1, len(entries) - 1)

    def show_win_metadata(self) -> None:
        lines = [f"PATH: {self.session.filepath}", f"ID: {self.session.book_id}", ""]
        for field in dataclasses.fields(self.session.metadata):
            value = getattr(self.session.metadata, field.name)
            if value:
                lines.append(f"{field.name.title()}: {' '.join(value.split())}")
        self.show_win_text("Metadata", lines, self.keymap.Metadata)

    def show_win_help(self) -> None:
        dig = max([len(i) for i in self.keymap_user_dict.values()]) + 2
        lines = [
            "{}  {}".format(key.rjust(dig), name) for name, key in self.keymap_user_dict.items()
        ]
        self.show_win_text("Key Bindings", lines, self.keymap.Help)

    def run(self) -> None:
        while not self.session.is_closed:
            self.draw()
            k = Key(self.screen.getch())

            if k in self.keymap.Quit:
                return
            elif k in self.keymap.PageDown:
                if isinstance(self.session.page_forward(), AtBoundary):
                    self.message = "End of book"
            elif k in self.keymap.PageUp:
                if isinstance(self.session.page_backward(), AtBoundary):
                    self.message = "Beginning of book"
            elif k in self.keymap.NextChapter:
                if isinstance(self.session.advance(), AtBoundary):
                    self.message = "Already at last chapter"
            elif k in self.keymap.PrevChapter:
                if isinstance(self.session.retreat(), AtBoundary):
                    self.message = "Already at first chapter"
            elif k in self.keymap.TableOfContents:
                entry = self.show_win_toc()
                if entry is not None and isinstance(self.session.jump_to(entry.href), NotFound):
                    self.message = f"Cannot open '{entry.label.strip()}'"
            elif k in self.keymap.SwitchColor:
                self.apply_theme(self.coordinator.toggle_theme())
            elif k in self.keymap.ShowHideProgress:
                self.show_progress = not self.show_progress
            elif k in self.keymap.Metadata:
                self.show_win_metadata()
            elif k in self.keymap.Help:
                self.show_win_help()


def start_reading(stdscr, coordinator: SessionCoordinator, session: Session, config: Config):
    Reader(screen=stdscr, coordinator=coordinator, session=session, config=config).run()
