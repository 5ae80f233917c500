import re
from html import unescape
from html.parser import HTMLParser
from typing import Dict, List

from helium_reader.models import CharPos, SectionText


class HTMLtoText(HTMLParser):
    para = {"p", "div", "section", "article", "blockquote", "li", "dt", "dd", "tr", "pre"}
    hide = {"script", "style", "head"}
    pref = {"pre"}

    def __init__(self):
        HTMLParser.__init__(self)
        self.text = [""]
        self.hidden_depth = 0
        self.ispref = False
        self.idanchors: Dict[str, CharPos] = dict()

    def _new_line(self) -> None:
        if self.text[-1] != "":
            self.text.append("")

    def _mark_anchors(self, attrs) -> None:
        for name, value in attrs:
            if name == "id" and value and value not in self.idanchors:
                self.idanchors[value] = CharPos(row=len(self.text) - 1, col=len(self.text[-1]))

    def handle_starttag(self, tag, attrs):
        if tag in self.hide:
            self.hidden_depth += 1
        elif re.match("h[1-6]$", tag) is not None or tag in self.para:
            self._new_line()
        if tag in self.pref:
            self.ispref = True
        self._mark_anchors(attrs)

    def handle_startendtag(self, tag, attrs):
        if tag == "br":
            self.text.append("")
        elif tag in {"img", "image"}:
            self._new_line()
            self.text.append("[IMAGE]")
            self.text.append("")
        # sometimes attribute "id" is inside "startendtag"
        self._mark_anchors(attrs)

    def handle_endtag(self, tag):
        if tag in self.hide:
            self.hidden_depth = max(0, self.hidden_depth - 1)
        elif re.match("h[1-6]$", tag) is not None or tag in self.para:
            self._new_line()
        if tag in self.pref:
            self.ispref = False

    def handle_data(self, raw):
        if raw and self.hidden_depth == 0:
            if self.text[-1] == "":
                tmp = raw.lstrip()
            else:
                tmp = raw
            if self.ispref:
                chunks = unescape(tmp).split("\n")
                self.text[-1] += chunks[0]
                self.text.extend(chunks[1:])
            else:
                self.text[-1] += unescape(re.sub(r"\s+", " ", tmp))

    def get_section_text(self) -> SectionText:
        lines: List[str] = []
        row_offsets: List[int] = []
        pos = 0
        for line in self.text:
            # empty rows point at the start of next kept line
            row_offsets.append(pos)
            stripped = line.rstrip()
            if stripped:
                lines.append(stripped)
                pos += len(stripped) + 1

        text = "\n".join(lines)
        anchors = {
            anchor: min(row_offsets[charpos.row] + charpos.col, len(text))
            for anchor, charpos in self.idanchors.items()
        }
        return SectionText(text=text, anchors=anchors)


def parse_html(html_src: str) -> SectionText:
    """
    Parse html string into plain text keeping element id offsets

    :param html_src: html str to parse
    :return: SectionText
    """
    parser = HTMLtoText()
    parser.feed(html_src)
    parser.close()
    return parser.get_section_text()
