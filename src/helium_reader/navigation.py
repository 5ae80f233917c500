import dataclasses
import logging
from typing import Callable, List, Optional, Tuple, Union

from helium_reader.models import (
    AtBoundary,
    Moved,
    NavEntry,
    NotFound,
    Section,
    SessionState,
    SessionStatus,
)
from helium_reader.renderers import Renderer
from helium_reader.state import PositionStore
from helium_reader.toc import spine_index_for, title_for

logger = logging.getLogger(__name__)

StateCallback = Callable[[SessionState], None]


class SessionNotReady(RuntimeError):
    pass


class Navigator:
    """
    Chapter-level navigation state of one open book.

    UNINITIALIZED -> LOADING -> READY -> CLOSED

    Every chapter change displays the target in renderer first,
    so a failing display leaves the state untouched.
    Moving past either end of the spine is not an error,
    it is reported as AtBoundary and changes nothing.
    """

    def __init__(self, renderer: Renderer, store: PositionStore, book_id: str):
        self.renderer = renderer
        self.store = store
        self.book_id = book_id
        self.state = SessionState()
        self._observers: List[StateCallback] = []
        self._last_persisted: Optional[str] = None

    @property
    def spine(self) -> Tuple[Section, ...]:
        return self.renderer.spine

    @property
    def toc(self) -> Tuple[NavEntry, ...]:
        return self.renderer.toc

    def subscribe(self, callback: StateCallback) -> Callable[[], None]:
        self._observers.append(callback)

        def unsubscribe() -> None:
            if callback in self._observers:
                self._observers.remove(callback)

        return unsubscribe

    def _update(self, **changes) -> None:
        new_state = dataclasses.replace(self.state, **changes)
        if new_state != self.state:
            self.state = new_state
            for callback in list(self._observers):
                callback(new_state)

    def _require(self, status: SessionStatus, action: str) -> None:
        if self.state.status != status:
            raise SessionNotReady(
                f"Navigator.{action}() needs {status.value} session, got {self.state.status.value}"
            )

    def _persist(self, ref: str) -> None:
        self.store.set_position(self.book_id, ref)
        self._last_persisted = ref

    def begin_loading(self) -> None:
        self._require(SessionStatus.UNINITIALIZED, "begin_loading")
        self._update(status=SessionStatus.LOADING, is_loading=True)

    def mark_ready(self, index: int, persisted_ref: Optional[str] = None) -> None:
        self._require(SessionStatus.LOADING, "mark_ready")
        if not 0 <= index < len(self.spine):
            raise IndexError(f"Spine index {index} out of range 0..{len(self.spine) - 1}")
        self._last_persisted = persisted_ref
        self._update(
            status=SessionStatus.READY,
            current_index=index,
            progress_fraction=None,
            resolved_chapter_title=title_for(index, self.toc, self.spine),
            is_loading=False,
        )

    def close(self) -> None:
        if self.state.status != SessionStatus.CLOSED:
            self._update(status=SessionStatus.CLOSED, is_loading=False)

    def _go(self, index: int, target: Union[int, str]) -> Moved:
        self.renderer.display(target)
        # relocation reported during display may have synced the index already
        if self.state.current_index != index:
            self._update(
                current_index=index,
                progress_fraction=None,
                resolved_chapter_title=title_for(index, self.toc, self.spine),
            )
            self._persist(self.spine[index].href)
        return Moved(index)

    def advance(self) -> Union[Moved, AtBoundary]:
        self._require(SessionStatus.READY, "advance")
        index = self.state.current_index
        if index >= len(self.spine) - 1:
            return AtBoundary(index)
        return self._go(index + 1, index + 1)

    def retreat(self) -> Union[Moved, AtBoundary]:
        self._require(SessionStatus.READY, "retreat")
        index = self.state.current_index
        if index <= 0:
            return AtBoundary(index)
        return self._go(index - 1, index - 1)

    def jump_to(self, ref: str) -> Union[Moved, NotFound]:
        self._require(SessionStatus.READY, "jump_to")
        index = spine_index_for(ref, self.spine)
        if index is None:
            logger.warning("Cannot jump to %r: no matching section in %s", ref, self.book_id)
            return NotFound(ref)
        return self._go(index, ref)

    def page_forward(self) -> Union[Moved, AtBoundary]:
        self._require(SessionStatus.READY, "page_forward")
        if self.renderer.next_page() is None:
            return AtBoundary(self.state.current_index)
        return Moved(self.state.current_index)

    def page_backward(self) -> Union[Moved, AtBoundary]:
        self._require(SessionStatus.READY, "page_backward")
        if self.renderer.prev_page() is None:
            return AtBoundary(self.state.current_index)
        return Moved(self.state.current_index)

    def on_relocated(self, location_ref: str, global_percent: Optional[float]) -> None:
        if self.state.status != SessionStatus.READY:
            return

        changes = dict(
            progress_fraction=(
                None if global_percent is None else min(1.0, max(0.0, global_percent))
            )
        )
        # renderer may page across section boundary on its own
        index = spine_index_for(location_ref, self.spine)
        if index is not None and index != self.state.current_index:
            changes.update(
                current_index=index,
                resolved_chapter_title=title_for(index, self.toc, self.spine),
            )
        self._update(**changes)

        if location_ref != self._last_persisted:
            self._persist(location_ref)
