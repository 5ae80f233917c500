from typing import Callable, Optional, Sequence, Tuple, Union

import pytest

from helium_reader.models import BookMetadata, FileReadResult, Location, NavEntry, Section
from helium_reader.renderers import Locations, Renderer
from helium_reader.state import MemoryPositionStore
from helium_reader.toc import spine_index_for, strip_ref

PAGES_PER_SECTION = 2


class FakeLocations(Locations):
    def __init__(self, renderer: "FakeRenderer"):
        Locations.__init__(self)
        self.renderer = renderer

    def generate(self, chars: int) -> int:
        if self.renderer.locations_error is not None:
            raise self.renderer.locations_error
        self._total = len(self.renderer.spine) * PAGES_PER_SECTION
        return self._total

    def percentage_from_cfi(self, cfi: str) -> Optional[float]:
        if not self.ready:
            return None
        index, page = self.renderer.resolve(cfi)
        return (index * PAGES_PER_SECTION + page) / self.total

    def location_from_cfi(self, cfi: str) -> Optional[int]:
        if not self.ready:
            return None
        index, page = self.renderer.resolve(cfi)
        return index * PAGES_PER_SECTION + page


class FakeRenderer(Renderer):
    """
    Renderer over a made-up spine, each section has two pages.
    """

    def __init__(
        self,
        hrefs: Sequence[str] = ("OEBPS/ch1.xhtml", "OEBPS/ch2.xhtml", "OEBPS/ch3.xhtml"),
        toc: Tuple[NavEntry, ...] = (),
        metadata: BookMetadata = BookMetadata(title="Dune", creator="Frank Herbert"),
        emit_on_display: bool = True,
        open_error: Optional[Exception] = None,
        on_open: Optional[Callable[[], None]] = None,
        on_display: Optional[Callable[[], None]] = None,
        locations_error: Optional[Exception] = None,
    ):
        self.hrefs = tuple(hrefs)
        self.book_metadata = metadata
        self.book_toc = toc
        self.metadata = BookMetadata()
        self.toc = ()
        self.spine = ()
        self.locations = FakeLocations(self)
        self.emit_on_display = emit_on_display
        self.open_error = open_error
        self.on_open = on_open
        self.on_display = on_display
        self.locations_error = locations_error
        self.displayed: list = []
        self.destroyed = 0
        self._index: Optional[int] = None
        self._page = 0

    def open(self, data: bytes) -> None:
        if self.on_open is not None:
            self.on_open()
        if self.open_error is not None:
            raise self.open_error
        self.metadata = self.book_metadata
        self.toc = self.book_toc
        self.spine = tuple(Section(index=n, href=href) for n, href in enumerate(self.hrefs))

    def resolve(self, target: Union[int, str]) -> Tuple[int, int]:
        if isinstance(target, int):
            if not 0 <= target < len(self.spine):
                raise ValueError(f"Cannot display {target!r}")
            return target, 0
        index = spine_index_for(target, self.spine)
        if index is None:
            raise ValueError(f"Cannot display {target!r}")
        return index, 1 if target.endswith("#page=1") else 0

    @property
    def current_location(self) -> Optional[Location]:
        if self._index is None:
            return None
        href = strip_ref(self.spine[self._index].href)
        return Location(cfi=f"{href}#page={self._page}", href=href)

    def _move_to(self, index: int, page: int, emit: bool = True) -> Location:
        self._index, self._page = index, page
        location = self.current_location
        assert location is not None
        if emit:
            self.emit("relocated", location)
        return location

    def display(self, target: Union[int, str]) -> Location:
        if self.on_display is not None:
            self.on_display()
        index, page = self.resolve(target)
        self.displayed.append(target)
        return self._move_to(index, page, emit=self.emit_on_display)

    def next_page(self) -> Optional[Location]:
        if self._index is None:
            return None
        if self._page + 1 < PAGES_PER_SECTION:
            return self._move_to(self._index, self._page + 1)
        elif self._index + 1 < len(self.spine):
            return self._move_to(self._index + 1, 0)
        return None

    def prev_page(self) -> Optional[Location]:
        if self._index is None:
            return None
        if self._page > 0:
            return self._move_to(self._index, self._page - 1)
        elif self._index > 0:
            return self._move_to(self._index - 1, PAGES_PER_SECTION - 1)
        return None

    def page_text(self) -> str:
        return f"page {self._page} of section {self._index}"

    def destroy(self) -> None:
        Renderer.destroy(self)
        self.destroyed += 1


def fake_file_reader(filepath: str) -> FileReadResult:
    if filepath.startswith("/missing"):
        return FileReadResult(success=False, error="No such file or directory")
    return FileReadResult(success=True, data=b"PK fake epub bytes")


@pytest.fixture
def store():
    return MemoryPositionStore()


@pytest.fixture
def make_renderer():
    return FakeRenderer


@pytest.fixture
def file_reader():
    return fake_file_reader
