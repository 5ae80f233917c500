import pytest

from helium_reader.models import AtBoundary, Moved, NavEntry, NotFound, SessionStatus
from helium_reader.navigation import Navigator, SessionNotReady

TOC = (
    NavEntry(label="Chapter One", href="ch1.xhtml"),
    NavEntry(label="Chapter Two", href="ch2.xhtml#p3"),
)


def ready_navigator(renderer, store, index=0):
    renderer.open(b"")
    navigator = Navigator(renderer, store, "book_test")
    navigator.begin_loading()
    navigator.mark_ready(index)
    return navigator


def test_lifecycle(make_renderer, store):
    renderer = make_renderer()
    renderer.open(b"")
    navigator = Navigator(renderer, store, "book_test")
    assert navigator.state.status == SessionStatus.UNINITIALIZED

    navigator.begin_loading()
    assert navigator.state.status == SessionStatus.LOADING
    assert navigator.state.is_loading

    navigator.mark_ready(1)
    assert navigator.state.status == SessionStatus.READY
    assert not navigator.state.is_loading
    assert navigator.state.current_index == 1

    navigator.close()
    navigator.close()
    assert navigator.state.status == SessionStatus.CLOSED


def test_operations_need_ready_session(make_renderer, store):
    renderer = make_renderer()
    renderer.open(b"")
    navigator = Navigator(renderer, store, "book_test")
    with pytest.raises(SessionNotReady):
        navigator.advance()
    navigator.begin_loading()
    with pytest.raises(SessionNotReady):
        navigator.jump_to("OEBPS/ch2.xhtml")
    navigator.mark_ready(0)
    navigator.close()
    with pytest.raises(SessionNotReady):
        navigator.retreat()


def test_mark_ready_rejects_invalid_index(make_renderer, store):
    renderer = make_renderer()
    renderer.open(b"")
    navigator = Navigator(renderer, store, "book_test")
    navigator.begin_loading()
    with pytest.raises(IndexError):
        navigator.mark_ready(3)
    assert navigator.state.status == SessionStatus.LOADING


def test_advance_and_retreat(make_renderer, store):
    navigator = ready_navigator(make_renderer(emit_on_display=False), store)

    assert navigator.advance() == Moved(1)
    assert navigator.state.current_index == 1
    assert store.get_position("book_test") == "OEBPS/ch2.xhtml"
    assert navigator.renderer.displayed == [1]

    assert navigator.retreat() == Moved(0)
    assert navigator.state.current_index == 0
    assert store.get_position("book_test") == "OEBPS/ch1.xhtml"


def test_advance_then_retreat_is_inverse(make_renderer, store):
    for start in range(3):
        navigator = ready_navigator(make_renderer(), store, index=start)
        if isinstance(navigator.advance(), Moved):
            navigator.retreat()
        assert navigator.state.current_index == start


def test_boundaries(make_renderer, store):
    navigator = ready_navigator(make_renderer(), store, index=2)
    assert navigator.advance() == AtBoundary(2)
    assert navigator.advance() == AtBoundary(2)
    assert navigator.state.current_index == 2

    navigator = ready_navigator(make_renderer(), store, index=0)
    assert navigator.retreat() == AtBoundary(0)
    assert navigator.state.current_index == 0
    assert navigator.renderer.displayed == []
    assert store.get_position("book_test") is None


def test_single_section_book(make_renderer, store):
    navigator = ready_navigator(make_renderer(hrefs=("only.xhtml",)), store)
    assert navigator.advance() == AtBoundary(0)
    assert navigator.retreat() == AtBoundary(0)


def test_chapter_title_follows_index(make_renderer, store):
    renderer = make_renderer(toc=TOC)
    navigator = ready_navigator(renderer, store)
    assert navigator.state.resolved_chapter_title == "Chapter One"
    navigator.advance()
    assert navigator.state.resolved_chapter_title == "Chapter Two"
    navigator.advance()
    assert navigator.state.resolved_chapter_title == "Chapter 3"


def test_jump_to(make_renderer, store):
    navigator = ready_navigator(make_renderer(toc=TOC), store)
    assert navigator.jump_to("ch2.xhtml#p3") == Moved(1)
    assert navigator.state.current_index == 1
    assert navigator.renderer.displayed == ["ch2.xhtml#p3"]


def test_jump_to_not_found(make_renderer, store, caplog):
    navigator = ready_navigator(make_renderer(), store, index=1)
    before = navigator.state
    assert navigator.jump_to("missing.xhtml") == NotFound("missing.xhtml")
    assert navigator.state == before
    assert navigator.renderer.displayed == []
    assert "missing.xhtml" in caplog.text


def test_failed_display_leaves_state(make_renderer, store):
    renderer = make_renderer()
    navigator = ready_navigator(renderer, store)

    def broken_display():
        raise ValueError("broken section")

    renderer.on_display = broken_display
    with pytest.raises(ValueError):
        navigator.advance()
    assert navigator.state.current_index == 0
    assert store.get_position("book_test") is None


def test_index_change_marks_progress_stale(make_renderer, store):
    navigator = ready_navigator(make_renderer(emit_on_display=False), store)
    navigator.on_relocated("OEBPS/ch1.xhtml#page=1", 0.25)
    assert navigator.state.progress_fraction == 0.25
    navigator.advance()
    assert navigator.state.progress_fraction is None


def test_on_relocated(make_renderer, store):
    navigator = ready_navigator(make_renderer(), store)
    writes = []
    store_set = store.set_position
    store.set_position = lambda book_id, ref: writes.append(ref) or store_set(book_id, ref)

    navigator.on_relocated("OEBPS/ch1.xhtml#page=1", 0.2)
    navigator.on_relocated("OEBPS/ch1.xhtml#page=1", 0.2)
    assert writes == ["OEBPS/ch1.xhtml#page=1"]
    assert navigator.state.progress_fraction == 0.2

    navigator.on_relocated("OEBPS/ch1.xhtml#page=0", None)
    assert navigator.state.progress_fraction is None
    navigator.on_relocated("OEBPS/ch1.xhtml#page=0", 1.7)
    assert navigator.state.progress_fraction == 1.0


def test_on_relocated_follows_section(make_renderer, store):
    navigator = ready_navigator(make_renderer(toc=TOC), store)
    navigator.on_relocated("OEBPS/ch2.xhtml#page=0", 0.5)
    assert navigator.state.current_index == 1
    assert navigator.state.resolved_chapter_title == "Chapter Two"


def test_on_relocated_ignored_unless_ready(make_renderer, store):
    navigator = ready_navigator(make_renderer(), store)
    navigator.close()
    navigator.on_relocated("OEBPS/ch2.xhtml#page=0", 0.5)
    assert navigator.state.progress_fraction is None
    assert store.get_position("book_test") is None


def test_relocation_during_display(make_renderer, store):
    renderer = make_renderer()
    navigator = ready_navigator(renderer, store)
    renderer.on("relocated", lambda location: navigator.on_relocated(location.cfi, 0.5))

    assert navigator.advance() == Moved(1)
    assert navigator.state.current_index == 1
    assert navigator.state.progress_fraction == 0.5
    assert store.get_position("book_test") == "OEBPS/ch2.xhtml#page=0"


def test_paging(make_renderer, store):
    renderer = make_renderer()
    navigator = ready_navigator(renderer, store, index=2)
    renderer.display("OEBPS/ch3.xhtml#page=1")
    renderer.on("relocated", lambda location: navigator.on_relocated(location.cfi, None))

    assert navigator.page_backward() == Moved(2)
    assert navigator.page_backward() == Moved(1)
    assert navigator.state.current_index == 1
    assert store.get_position("book_test") == "OEBPS/ch2.xhtml#page=1"

    assert navigator.page_forward() == Moved(2)
    assert navigator.page_forward() == Moved(2)
    assert navigator.page_forward() == AtBoundary(2)


def test_observers(make_renderer, store):
    navigator = ready_navigator(make_renderer(toc=TOC, emit_on_display=False), store)
    seen = []
    unsubscribe = navigator.subscribe(seen.append)

    navigator.advance()
    assert [state.resolved_chapter_title for state in seen] == ["Chapter Two"]

    navigator.on_relocated("OEBPS/ch2.xhtml#page=0", 0.5)
    assert seen[-1].progress_fraction == 0.5
    count = len(seen)
    navigator.on_relocated("OEBPS/ch2.xhtml#page=0", 0.5)
    assert len(seen) == count

    navigator.advance()
    navigator.advance()
    unsubscribe()
    navigator.retreat()
    assert seen[-1].current_index == 2
