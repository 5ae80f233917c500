from dataclasses import dataclass
from enum import Enum
import os
from typing import Any, Mapping, Optional, Tuple, Union


class Theme(Enum):
    LIGHT = "light"
    DARK = "dark"


class SessionStatus(Enum):
    UNINITIALIZED = "uninitialized"
    LOADING = "loading"
    READY = "ready"
    CLOSED = "closed"


@dataclass(frozen=True)
class BookMetadata:
    title: Optional[str] = None
    creator: Optional[str] = None
    description: Optional[str] = None
    publisher: Optional[str] = None
    date: Optional[str] = None
    language: Optional[str] = None
    identifier: Optional[str] = None


@dataclass(frozen=True)
class Section:
    """
    One item of the book's linear reading order (spine).
    `href` is the structural reference of the content document.
    """

    index: int
    href: str


@dataclass(frozen=True)
class NavEntry:
    """
    Table of contents entry, children keep the authored nesting.
    eg. NavEntry("Part I", "part1.xhtml", (NavEntry("Chapter 1", "ch1.xhtml#c1"),))
    """

    label: str
    href: str
    children: Tuple["NavEntry", ...] = ()


@dataclass(frozen=True)
class Location:
    """
    Start of the currently displayed page as reported by renderer.
    `cfi` is precise (href plus position fragment), `href` is the section.
    """

    cfi: str
    href: str


@dataclass(frozen=True)
class CharPos:
    """
    Describes character position in text.
    eg. ["Lorem ipsum dolor sit amet,",  # row=0
         "consectetur adipiscing elit."]  # row=1
             ^CharPos(row=1, col=3)
    """

    row: int
    col: int


@dataclass(frozen=True)
class SectionText:
    """
    Plain text of one content document.

    text: paragraphs joined by newline
    anchors: {element_id: char offset in text}
    """

    text: str
    anchors: Mapping[str, int]


@dataclass(frozen=True)
class Highlight:
    cfi_range: str
    note: Optional[str] = None


@dataclass(frozen=True)
class SessionState:
    """
    Data model for the state of one open book.

    `progress_fraction` stays None until renderer locations
    are generated, and goes back to None on every chapter change
    until the renderer reports the new location.
    """

    status: SessionStatus = SessionStatus.UNINITIALIZED
    current_index: int = 0
    progress_fraction: Optional[float] = None
    resolved_chapter_title: str = ""
    is_loading: bool = False


@dataclass(frozen=True)
class FileReadResult:
    success: bool
    data: bytes = b""
    error: Optional[str] = None


@dataclass(frozen=True)
class Moved:
    index: int


@dataclass(frozen=True)
class AtBoundary:
    index: int


@dataclass(frozen=True)
class NotFound:
    ref: str


class Key:
    """
    Because ord("k") chr(34) are confusing
    """

    def __init__(self, char_or_int: Union[str, int]):
        self.value: int = char_or_int if isinstance(char_or_int, int) else ord(char_or_int)
        self.char: str = char_or_int if isinstance(char_or_int, str) else chr(char_or_int)

    def __eq__(self, other: Any) -> bool:
        if isinstance(other, Key):
            return self.value == other.value
        return False

    def __ne__(self, other: Any) -> bool:
        return not self.__eq__(other)

    def __hash__(self) -> int:
        return hash(self.value)


class AppData:
    @property
    def prefix(self) -> Optional[str]:
        """Return None if there exists no homedir | userdir"""
        prefix: Optional[str] = None

        # UNIX filesystem
        homedir = os.getenv("HOME")
        # WIN filesystem
        userdir = os.getenv("USERPROFILE")

        if homedir:
            if os.path.isdir(os.path.join(homedir, ".config")):
                prefix = os.path.join(homedir, ".config", "helium")
            else:
                prefix = os.path.join(homedir, ".helium")
        elif userdir:
            prefix = os.path.join(userdir, ".helium")

        if prefix:
            os.makedirs(prefix, exist_ok=True)

        return prefix
