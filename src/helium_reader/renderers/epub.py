import dataclasses
import io
import os
import xml.etree.ElementTree as ET
import zipfile
from typing import Dict, List, Optional, Tuple, Union
from urllib.parse import unquote, urljoin

from helium_reader.models import BookMetadata, Location, NavEntry, Section, SectionText
from helium_reader.parser import parse_html
from helium_reader.renderers.base import Locations, Renderer
from helium_reader.toc import spine_index_for, strip_ref

OFFSET_FRAGMENT = "offset="


class EpubLocations(Locations):
    def __init__(self, renderer: "Epub"):
        Locations.__init__(self)
        self.renderer = renderer
        self.chars: int = 0
        self.cumulative: Tuple[int, ...] = ()
        self.all: int = 0

    def generate(self, chars: int) -> int:
        """
        Split the whole book into locations of `chars` characters,
        returns number of locations
        """
        if chars <= 0:
            raise ValueError("Var chars has to be positive.")
        per_section: List[int] = []
        cumulative: List[int] = []
        for section in self.renderer.spine:
            cumulative.append(sum(per_section))
            per_section.append(len(self.renderer.get_section_text(section.index).text))

        self.chars = chars
        self.cumulative = tuple(cumulative)
        self.all = sum(per_section)
        self._total = max(1, -(-self.all // chars))
        return self._total

    def percentage_from_cfi(self, cfi: str) -> Optional[float]:
        if not self.ready:
            return None
        resolved = self.renderer.resolve(cfi)
        if resolved is None:
            return None
        if self.all == 0:
            return 0.0
        index, offset = resolved
        return min(1.0, (self.cumulative[index] + offset) / self.all)

    def location_from_cfi(self, cfi: str) -> Optional[int]:
        """Zero-based number of the location containing `cfi`"""
        if not self.ready:
            return None
        resolved = self.renderer.resolve(cfi)
        if resolved is None:
            return None
        index, offset = resolved
        return min(self.total - 1, (self.cumulative[index] + offset) // self.chars)


class Epub(Renderer):
    NAMESPACE = {
        "DAISY": "http://www.daisy.org/z3986/2005/ncx/",
        "OPF": "http://www.idpf.org/2007/opf",
        "CONT": "urn:oasis:names:tc:opendocument:xmlns:container",
        "XHTML": "http://www.w3.org/1999/xhtml",
        "EPUB": "http://www.idpf.org/2007/ops",
        # Dublin Core
        "DC": "http://purl.org/dc/elements/1.1/",
    }

    def __init__(self, page_chars: int = 1500):
        self.file: Optional[zipfile.ZipFile] = None
        self.page_chars = page_chars
        self.metadata = BookMetadata()
        self.toc = ()
        self.spine = ()
        self.locations = EpubLocations(self)

        # populate these attributes
        # by calling self.open()
        self.root_filepath: str
        self.root_dirpath: str

        self._texts: Dict[int, SectionText] = dict()
        self._index: Optional[int] = None
        self._offset: int = 0

    @staticmethod
    def _get_metadata(content_opf: ET.ElementTree) -> BookMetadata:
        metadata: Dict[str, Optional[str]] = {}
        for field in dataclasses.fields(BookMetadata):
            element = content_opf.find(f".//DC:{field.name}", Epub.NAMESPACE)
            if element is not None and element.text:
                metadata[field.name] = element.text.strip()

        return BookMetadata(**metadata)

    @staticmethod
    def _get_contents(content_opf: ET.ElementTree) -> Tuple[str, ...]:
        manifests: Dict[str, str] = {}
        for manifest_elem in content_opf.findall("OPF:manifest/*", Epub.NAMESPACE):
            if (
                manifest_elem.get("media-type") != "application/x-dtbncx+xml"
                and manifest_elem.get("properties") != "nav"
            ):
                manifest_id = manifest_elem.get("id")
                manifest_href = manifest_elem.get("href")
                if manifest_id is not None and manifest_href is not None:
                    manifests[manifest_id] = manifest_href

        contents: List[str] = []
        for spine_elem in content_opf.findall("OPF:spine/*", Epub.NAMESPACE):
            idref = spine_elem.get("idref")
            if idref in manifests:
                contents.append(unquote(manifests[idref]))

        return tuple(contents)

    @staticmethod
    def _get_ncx_entries(parent: ET.Element, toc_path: str) -> Tuple[NavEntry, ...]:
        entries: List[NavEntry] = []
        for navPoint in parent.findall("DAISY:navPoint", Epub.NAMESPACE):
            src_elem = navPoint.find("DAISY:content", Epub.NAMESPACE)
            name_elem = navPoint.find("DAISY:navLabel/DAISY:text", Epub.NAMESPACE)
            src = src_elem.get("src", "") if src_elem is not None else ""
            entries.append(
                NavEntry(
                    label=(name_elem.text or "") if name_elem is not None else "",
                    href=urljoin(toc_path, unquote(src)) if src else "",
                    children=Epub._get_ncx_entries(navPoint, toc_path),
                )
            )
        return tuple(entries)

    @staticmethod
    def _get_nav_entries(ol: ET.Element, toc_path: str) -> Tuple[NavEntry, ...]:
        entries: List[NavEntry] = []
        for li in ol.findall("XHTML:li", Epub.NAMESPACE):
            # headings without link are written as span
            anchor = li.find("XHTML:a", Epub.NAMESPACE)
            if anchor is None:
                anchor = li.find("XHTML:span", Epub.NAMESPACE)
            href = anchor.get("href", "") if anchor is not None else ""
            nested = li.find("XHTML:ol", Epub.NAMESPACE)
            entries.append(
                NavEntry(
                    label="".join(anchor.itertext()) if anchor is not None else "",
                    href=urljoin(toc_path, unquote(href)) if href else "",
                    children=Epub._get_nav_entries(nested, toc_path) if nested is not None else (),
                )
            )
        return tuple(entries)

    @staticmethod
    def _get_tocs(toc: ET.Element, version: str, toc_path: str) -> Tuple[NavEntry, ...]:
        if version.startswith("3"):
            nav = toc.find("XHTML:body//XHTML:nav[@EPUB:type='toc']", Epub.NAMESPACE)
            if nav is None:
                return ()
            ol = nav.find("XHTML:ol", Epub.NAMESPACE)
            return Epub._get_nav_entries(ol, toc_path) if ol is not None else ()

        nav_map = toc.find("DAISY:navMap", Epub.NAMESPACE)
        return Epub._get_ncx_entries(nav_map, toc_path) if nav_map is not None else ()

    def open(self, data: bytes) -> None:
        self.file = zipfile.ZipFile(io.BytesIO(data), "r")

        container = ET.parse(self.file.open("META-INF/container.xml"))
        rootfile_elem = container.find("CONT:rootfiles/CONT:rootfile", Epub.NAMESPACE)
        if rootfile_elem is None:
            raise ValueError("No rootfile in META-INF/container.xml")
        self.root_filepath = rootfile_elem.attrib["full-path"]
        self.root_dirpath = (
            os.path.dirname(self.root_filepath) + "/"
            if os.path.dirname(self.root_filepath) != ""
            else ""
        )

        content_opf = ET.parse(self.file.open(self.root_filepath))
        version = content_opf.getroot().get("version") or "2.0"

        self.metadata = Epub._get_metadata(content_opf)
        self.spine = tuple(
            Section(index=n, href=urljoin(self.root_dirpath, content))
            for n, content in enumerate(Epub._get_contents(content_opf))
        )
        if not self.spine:
            raise ValueError("Ebook has empty spine")

        relative_toc = None
        if version.startswith("3"):
            relative_toc = content_opf.find("OPF:manifest/*[@properties='nav']", Epub.NAMESPACE)
        if relative_toc is None:
            # "OPF:manifest/*[@id='ncx']"
            relative_toc = content_opf.find(
                "OPF:manifest/*[@media-type='application/x-dtbncx+xml']", Epub.NAMESPACE
            )
            version = "2.0"
        relative_toc_path = relative_toc.get("href") if relative_toc is not None else None
        if relative_toc_path:
            toc_path = urljoin(self.root_dirpath, unquote(relative_toc_path))
            toc = ET.parse(self.file.open(toc_path)).getroot()
            self.toc = Epub._get_tocs(toc, version, toc_path)

    def get_raw_text(self, content_path: str) -> str:
        assert isinstance(self.file, zipfile.ZipFile)
        return self.file.read(content_path).decode("utf-8", errors="replace")

    def get_section_text(self, index: int) -> SectionText:
        if index not in self._texts:
            self._texts[index] = parse_html(self.get_raw_text(self.spine[index].href))
        return self._texts[index]

    def resolve(self, target: Union[int, str]) -> Optional[Tuple[int, int]]:
        """
        Resolve display target into (spine index, char offset)

        eg. 2 -> (2, 0)
            'OEBPS/ch2.xhtml#offset=120' -> (1, 120)
            'OEBPS/ch2.xhtml#note3' -> (1, offset of id="note3")
        """
        if isinstance(target, int):
            return (target, 0) if 0 <= target < len(self.spine) else None

        index = spine_index_for(target, self.spine)
        if index is None:
            return None
        fragment = target.split("#", 1)[1] if "#" in target else ""
        if fragment.startswith(OFFSET_FRAGMENT):
            try:
                offset = int(fragment[len(OFFSET_FRAGMENT) :])
            except ValueError:
                offset = 0
        elif fragment:
            offset = self.get_section_text(index).anchors.get(fragment, 0)
        else:
            offset = 0
        return index, max(0, min(offset, len(self.get_section_text(index).text)))

    def _location(self) -> Location:
        assert self._index is not None
        href = strip_ref(self.spine[self._index].href)
        return Location(cfi=f"{href}#{OFFSET_FRAGMENT}{self._offset}", href=href)

    def _move_to(self, index: int, offset: int) -> Location:
        self._index, self._offset = index, offset
        location = self._location()
        self.emit("relocated", location)
        return location

    @property
    def current_location(self) -> Optional[Location]:
        return self._location() if self._index is not None else None

    def display(self, target: Union[int, str]) -> Location:
        resolved = self.resolve(target)
        if resolved is None:
            raise ValueError(f"Cannot display {target!r}: not in spine")
        return self._move_to(*resolved)

    def next_page(self) -> Optional[Location]:
        if self._index is None:
            return None
        length = len(self.get_section_text(self._index).text)
        if self._offset + self.page_chars < length:
            return self._move_to(self._index, self._offset + self.page_chars)
        elif self._index + 1 < len(self.spine):
            return self._move_to(self._index + 1, 0)
        return None

    def prev_page(self) -> Optional[Location]:
        if self._index is None:
            return None
        if self._offset > 0:
            return self._move_to(self._index, max(0, self._offset - self.page_chars))
        elif self._index > 0:
            length = len(self.get_section_text(self._index - 1).text)
            last_page = max(0, (length - 1) // self.page_chars) * self.page_chars
            return self._move_to(self._index - 1, last_page)
        return None

    def page_text(self) -> str:
        if self._index is None:
            return ""
        text = self.get_section_text(self._index).text
        return text[self._offset : self._offset + self.page_chars]

    def destroy(self) -> None:
        Renderer.destroy(self)
        if self.file is not None:
            self.file.close()
            self.file = None
        self._texts.clear()
        self._index = None
