import itertools
import logging
from typing import Callable, Optional, Tuple, Union

from helium_reader.identity import resolve_book_id
from helium_reader.lib import read_file
from helium_reader.models import (
    AtBoundary,
    BookMetadata,
    FileReadResult,
    Location,
    Moved,
    NavEntry,
    NotFound,
    Section,
    SessionState,
    SessionStatus,
    Theme,
)
from helium_reader.navigation import Navigator, StateCallback
from helium_reader.renderers import Epub, Renderer
from helium_reader.state import PositionStore
from helium_reader.toc import spine_index_for

logger = logging.getLogger(__name__)


class OpenError(RuntimeError):
    READ_FAILED = "read-failed"
    PARSE_FAILED = "parse-failed"

    def __init__(self, reason: str, detail: Optional[str] = None):
        self.reason = reason
        self.detail = detail
        RuntimeError.__init__(self, f"{reason}: {detail}" if detail else reason)


class Session:
    """
    One open book. Everything the frontend needs goes through here,
    the coordinator owns its lifetime.
    """

    def __init__(self, filepath: str, generation: int, renderer: Renderer, store: PositionStore):
        self.filepath = filepath
        self.generation = generation
        self.renderer = renderer
        self.book_id: Optional[str] = None
        self.navigator = Navigator(renderer, store, "")
        self._on_relocated: Optional[Callable[[Location], None]] = None

    @property
    def state(self) -> SessionState:
        return self.navigator.state

    @property
    def metadata(self) -> BookMetadata:
        return self.renderer.metadata

    @property
    def toc(self) -> Tuple[NavEntry, ...]:
        return self.renderer.toc

    @property
    def spine(self) -> Tuple[Section, ...]:
        return self.renderer.spine

    @property
    def is_closed(self) -> bool:
        return self.state.status == SessionStatus.CLOSED

    def subscribe(self, callback: StateCallback) -> Callable[[], None]:
        return self.navigator.subscribe(callback)

    def advance(self) -> Union[Moved, AtBoundary]:
        return self.navigator.advance()

    def retreat(self) -> Union[Moved, AtBoundary]:
        return self.navigator.retreat()

    def jump_to(self, ref: str) -> Union[Moved, NotFound]:
        return self.navigator.jump_to(ref)

    def page_forward(self) -> Union[Moved, AtBoundary]:
        return self.navigator.page_forward()

    def page_backward(self) -> Union[Moved, AtBoundary]:
        return self.navigator.page_backward()


class SessionCoordinator:
    def __init__(
        self,
        store: PositionStore,
        renderer_factory: Callable[[], Renderer] = Epub,
        file_reader: Callable[[str], FileReadResult] = read_file,
        location_chars: int = 1600,
    ):
        self.store = store
        self.renderer_factory = renderer_factory
        self.file_reader = file_reader
        self.location_chars = location_chars
        self.active: Optional[Session] = None
        self._generations = itertools.count(1)
        self._generation = 0

    def _is_live(self, session: Session) -> bool:
        return session.generation == self._generation and not session.is_closed

    def open_session(self, filepath: str) -> Session:
        """
        Open book at its last persisted position, or at the first section
        when there is none or it no longer exists in the book.

        Raises OpenError when the file can't be read or parsed.
        If the session gets closed while loading, it is returned closed.
        """
        if self.active is not None:
            self.close_session(self.active)

        self._generation = next(self._generations)
        session = Session(filepath, self._generation, self.renderer_factory(), self.store)
        self.active = session
        session.navigator.begin_loading()

        file_result = self.file_reader(filepath)
        if not file_result.success:
            self._abort(session)
            raise OpenError(OpenError.READ_FAILED, file_result.error)

        try:
            session.renderer.open(file_result.data)
        except Exception as e:
            self._abort(session)
            raise OpenError(OpenError.PARSE_FAILED, str(e)) from e
        if not self._is_live(session):
            logger.debug("Dropping parsed %s, session closed while loading", filepath)
            return session

        book_id = resolve_book_id(filepath, session.metadata)
        session.book_id = book_id
        session.navigator.book_id = book_id
        logger.info("Opening %s as %s", filepath, book_id)

        saved_ref = self.store.get_position(book_id)
        start_index = 0
        if saved_ref:
            saved_index = spine_index_for(saved_ref, session.spine)
            if saved_index is None:
                logger.warning(
                    "Saved location %r not in %s anymore, starting from beginning",
                    saved_ref,
                    book_id,
                )
                saved_ref = None
            else:
                start_index = saved_index

        start_index, saved_ref = self._display_start(session, start_index, saved_ref)
        if not self._is_live(session):
            logger.debug("Dropping display of %s, session closed while loading", filepath)
            return session

        # reads every section, a document missing from the archive fails here
        try:
            session.renderer.locations.generate(self.location_chars)
        except Exception as e:
            self._abort(session)
            raise OpenError(OpenError.PARSE_FAILED, str(e)) from e
        if not self._is_live(session):
            logger.debug("Dropping locations of %s, session closed while loading", filepath)
            return session

        session.navigator.mark_ready(start_index, persisted_ref=saved_ref)

        def on_relocated(location: Location) -> None:
            if not self._is_live(session):
                return
            session.navigator.on_relocated(
                location.cfi, session.renderer.locations.percentage_from_cfi(location.cfi)
            )

        session._on_relocated = on_relocated
        session.renderer.on("relocated", on_relocated)
        self.store.set_last_opened_path(filepath)

        location = session.renderer.current_location
        if location is not None:
            on_relocated(location)

        return session

    def _display_start(
        self, session: Session, start_index: int, saved_ref: Optional[str]
    ) -> Tuple[int, Optional[str]]:
        if saved_ref:
            try:
                session.renderer.display(saved_ref)
                return start_index, saved_ref
            except Exception as e:
                logger.warning("Cannot display saved location %r: %s", saved_ref, e)
        try:
            session.renderer.display(0)
        except Exception as e:
            self._abort(session)
            raise OpenError(OpenError.PARSE_FAILED, str(e)) from e
        return 0, None

    def _abort(self, session: Session) -> None:
        try:
            session.renderer.destroy()
        finally:
            session.navigator.close()
            if self.active is session:
                self.active = None

    def close_session(self, session: Session) -> None:
        if session.is_closed:
            return
        if session._on_relocated is not None:
            session.renderer.off("relocated", session._on_relocated)
            session._on_relocated = None
        self._abort(session)

    @property
    def theme(self) -> Theme:
        return self.store.get_theme()

    def toggle_theme(self) -> Theme:
        theme = Theme.DARK if self.store.get_theme() == Theme.LIGHT else Theme.LIGHT
        self.store.set_theme(theme)
        return theme
