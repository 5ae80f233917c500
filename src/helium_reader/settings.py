import curses
from dataclasses import dataclass
from typing import Tuple

from helium_reader.models import Key


@dataclass(frozen=True)
class Settings:
    # characters per location when computing book-wide progress
    LocationChars: int = 1600
    # 0 fits the page to screen size
    PageChars: int = 0
    ShowProgressIndicator: bool = True
    # -1 is default terminal fg/bg colors
    DarkColorFG: int = 252
    DarkColorBG: int = 235
    LightColorFG: int = 238
    LightColorBG: int = 253


@dataclass(frozen=True)
class CfgDefaultKeymaps:
    PageUp: str = "h"
    PageDown: str = "l"
    NextChapter: str = "L"
    PrevChapter: str = "H"
    TableOfContents: str = "t"
    Metadata: str = "M"
    SwitchColor: str = "c"
    ShowHideProgress: str = "s"
    Quit: str = "q"
    Help: str = "?"


@dataclass(frozen=True)
class CfgBuiltinKeymaps:
    PageUp: Tuple[int, ...] = (curses.KEY_PPAGE, curses.KEY_UP)
    PageDown: Tuple[int, ...] = (curses.KEY_NPAGE, ord(" "), curses.KEY_DOWN)
    NextChapter: Tuple[int, ...] = (curses.KEY_RIGHT,)
    PrevChapter: Tuple[int, ...] = (curses.KEY_LEFT,)
    TableOfContents: Tuple[int, ...] = (9, ord("\t"))
    Quit: Tuple[int, ...] = (3, 27, 304)


@dataclass(frozen=True)
class Keymap:
    Help: Tuple[Key, ...]
    Metadata: Tuple[Key, ...]
    NextChapter: Tuple[Key, ...]
    PageDown: Tuple[Key, ...]
    PageUp: Tuple[Key, ...]
    PrevChapter: Tuple[Key, ...]
    Quit: Tuple[Key, ...]
    ShowHideProgress: Tuple[Key, ...]
    SwitchColor: Tuple[Key, ...]
    TableOfContents: Tuple[Key, ...]
