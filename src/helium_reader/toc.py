import re
from typing import Iterator, List, Optional, Sequence, Tuple

from helium_reader.models import NavEntry, Section

EPUBCFI_SPINE_STEP = re.compile(r"^epubcfi\(/6/(\d+)")


def strip_ref(ref: str) -> str:
    """
    Drop fragment identifier and query string from structural reference

    eg.
    :param ref: 'Text/ch2.xhtml?x=1#p3'
    :return: 'Text/ch2.xhtml'
    """
    return ref.split("#")[0].split("?")[0]


def collapse_label(label: str) -> str:
    return re.sub(r"\s+", " ", label).strip()


def refs_overlap(one: str, two: str) -> bool:
    """
    Spine and toc hrefs don't agree on normalization,
    one is often relative to the other, eg. 'ch1.xhtml' and 'OEBPS/ch1.xhtml'
    """
    if not one or not two:
        return False
    return one in two or two in one


def walk_toc(toc: Sequence[NavEntry], depth: int = 0) -> Iterator[Tuple[int, NavEntry]]:
    """Depth-first, parents before children"""
    for entry in toc:
        yield depth, entry
        yield from walk_toc(entry.children, depth + 1)


def flatten_toc(toc: Sequence[NavEntry]) -> List[Tuple[int, NavEntry]]:
    return list(walk_toc(toc))


def find_toc_entry(
    index: int, toc: Sequence[NavEntry], spine: Sequence[Section]
) -> Optional[NavEntry]:
    if not 0 <= index < len(spine):
        return None

    spine_href = strip_ref(spine[index].href)
    for _, entry in walk_toc(toc):
        if collapse_label(entry.label) and refs_overlap(strip_ref(entry.href), spine_href):
            return entry
    return None


def title_for(index: int, toc: Sequence[NavEntry], spine: Sequence[Section]) -> str:
    entry = find_toc_entry(index, toc, spine)
    if entry is not None:
        return collapse_label(entry.label)
    return f"Chapter {index + 1}"


def spine_index_for(ref: str, spine: Sequence[Section]) -> Optional[int]:
    """
    Resolve structural reference to spine index.
    Exact match wins over containment so that 'ch1.xhtml'
    does not land on 'ch10.xhtml'.
    """
    cfi_match = EPUBCFI_SPINE_STEP.match(ref)
    if cfi_match is not None:
        step = int(cfi_match.group(1))
        index = step // 2 - 1
        return index if step % 2 == 0 and 0 <= index < len(spine) else None

    target = strip_ref(ref)
    if not target:
        return None

    for section in spine:
        if strip_ref(section.href) == target:
            return section.index
    for section in spine:
        if refs_overlap(strip_ref(section.href), target):
            return section.index
    return None
