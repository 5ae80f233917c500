from typing import Callable, Dict, List, Optional, Tuple, Union

from helium_reader.models import BookMetadata, Location, NavEntry, Section, SectionText

RelocatedCallback = Callable[[Location], None]


class Locations:
    """
    Book-wide location index, needed to turn a location into
    a global reading percentage. Unusable until `generate()` is called.
    """

    def __init__(self):
        self._total: Optional[int] = None

    @property
    def ready(self) -> bool:
        return self._total is not None

    @property
    def total(self) -> int:
        return self._total or 0

    def generate(self, chars: int) -> int:
        raise NotImplementedError("Locations.generate() not implemented")

    def percentage_from_cfi(self, cfi: str) -> Optional[float]:
        raise NotImplementedError("Locations.percentage_from_cfi() not implemented")

    def location_from_cfi(self, cfi: str) -> Optional[int]:
        raise NotImplementedError("Locations.location_from_cfi() not implemented")


class Renderer:
    def __init__(self):
        raise NotImplementedError("Renderer.__init__() not implemented")

    @property
    def metadata(self) -> BookMetadata:
        return self._metadata

    @metadata.setter
    def metadata(self, value: BookMetadata) -> None:
        self._metadata = value

    @property
    def toc(self) -> Tuple[NavEntry, ...]:
        return self._toc

    @toc.setter
    def toc(self, value: Tuple[NavEntry, ...]) -> None:
        self._toc = value

    @property
    def spine(self) -> Tuple[Section, ...]:
        return self._spine

    @spine.setter
    def spine(self, value: Tuple[Section, ...]) -> None:
        self._spine = value

    @property
    def locations(self) -> Locations:
        return self._locations

    @locations.setter
    def locations(self, value: Locations) -> None:
        self._locations = value

    @property
    def current_location(self) -> Optional[Location]:
        raise NotImplementedError("Renderer.current_location not implemented")

    @property
    def listeners(self) -> Dict[str, List[RelocatedCallback]]:
        if not hasattr(self, "_listeners"):
            self._listeners: Dict[str, List[RelocatedCallback]] = dict()
        return self._listeners

    def on(self, event: str, callback: RelocatedCallback) -> None:
        self.listeners.setdefault(event, []).append(callback)

    def off(self, event: str, callback: RelocatedCallback) -> None:
        if callback in self.listeners.get(event, []):
            self.listeners[event].remove(callback)

    def emit(self, event: str, location: Location) -> None:
        # copy, a callback may unsubscribe while being called
        for callback in list(self.listeners.get(event, [])):
            callback(location)

    def open(self, data: bytes) -> None:
        raise NotImplementedError("Renderer.open() not implemented")

    def display(self, target: Union[int, str]) -> Location:
        raise NotImplementedError("Renderer.display() not implemented")

    def next_page(self) -> Optional[Location]:
        raise NotImplementedError("Renderer.next_page() not implemented")

    def prev_page(self) -> Optional[Location]:
        raise NotImplementedError("Renderer.prev_page() not implemented")

    def page_text(self) -> str:
        raise NotImplementedError("Renderer.page_text() not implemented")

    def get_section_text(self, index: int) -> SectionText:
        raise NotImplementedError("Renderer.get_section_text() not implemented")

    def destroy(self) -> None:
        self.listeners.clear()
