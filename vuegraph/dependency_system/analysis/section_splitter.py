# analysis/section_splitter.py

"""
Splits a project file into independently parseable sections.

Plain script files become one implicit script section. Single-file components
(``.vue``) are parsed with the HTML grammar and split into their top-level
``<script>``, ``<template>`` and ``<style>`` blocks. Line numbers are always
recomputed from the raw bytes, never taken from the markup parser.
"""

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple

from vuegraph.dependency_system.analysis.ts_utils import (
    HTML_LANGUAGE,
    Node,
    get_ts_node_text,
    line_at,
    parse_bytes,
)
from vuegraph.dependency_system.utils.path_utils import get_extension

logger = logging.getLogger(__name__)

SCRIPT_EXTENSIONS = {
    ".ts": "ts",
    ".mts": "ts",
    ".cts": "ts",
    ".tsx": "tsx",
    ".js": "js",
    ".mjs": "js",
    ".cjs": "js",
    ".jsx": "jsx",
}
COMPONENT_EXTENSIONS = frozenset({".vue"})
SCRIPT_LANG_ALIASES = {
    "ts": "ts",
    "typescript": "ts",
    "tsx": "tsx",
    "js": "js",
    "javascript": "js",
    "jsx": "jsx",
}

# Opening or closing template tag; quoted attribute values may contain ">".
TEMPLATE_TAG_PATTERN = re.compile(
    rb"""<(/?)template(?=[\s/>])(?:'[^']*'|"[^"]*"|[^'">])*?(/?)>""",
    re.IGNORECASE,
)


class SectionKind(str, Enum):
    SCRIPT = "script"
    TEMPLATE = "template"
    STYLE = "style"
    OPAQUE = "opaque"


@dataclass
class Section:
    """
    One block of a file. ``start_byte``/``end_byte`` delimit ``content`` inside the
    UTF-8 encoded file. Template sections keep their ``<template>`` tags.
    """

    kind: SectionKind
    content: str
    start_line: int
    end_line: int
    start_byte: int
    end_byte: int
    lang: str = ""
    attrs: Dict[str, str] = field(default_factory=dict)

    @property
    def setup(self) -> bool:
        return "setup" in self.attrs


@dataclass
class SplitResult:
    file_path: str
    sections: List[Section]

    @property
    def scripts(self) -> List[Section]:
        return [s for s in self.sections if s.kind == SectionKind.SCRIPT]

    @property
    def script(self) -> Optional[Section]:
        """The primary script: a ``setup`` script wins over a plain one."""
        scripts = self.scripts
        for section in scripts:
            if section.setup:
                return section
        return scripts[0] if scripts else None

    @property
    def template(self) -> Optional[Section]:
        for section in self.sections:
            if section.kind == SectionKind.TEMPLATE:
                return section
        return None

    @property
    def styles(self) -> List[Section]:
        return [s for s in self.sections if s.kind == SectionKind.STYLE]

    @property
    def is_opaque(self) -> bool:
        return len(self.sections) == 1 and self.sections[0].kind == SectionKind.OPAQUE


def _make_section(
    kind: SectionKind,
    file_bytes: bytes,
    start: int,
    end: int,
    lang: str = "",
    attrs: Optional[Dict[str, str]] = None,
) -> Section:
    last = end - 1 if end > start else start
    return Section(
        kind=kind,
        content=file_bytes[start:end].decode("utf8", errors="ignore"),
        start_line=line_at(file_bytes, start),
        end_line=line_at(file_bytes, last),
        start_byte=start,
        end_byte=end,
        lang=lang,
        attrs=attrs or {},
    )


def _whole_file_section(kind: SectionKind, file_bytes: bytes, lang: str = "") -> Section:
    return _make_section(kind, file_bytes, 0, len(file_bytes), lang)


def _read_attributes(start_tag: Node, file_bytes: bytes) -> Dict[str, str]:
    attrs: Dict[str, str] = {}
    for sub in start_tag.children:
        if sub.type != "attribute":
            continue
        attr_name = ""
        attr_val = ""
        for part in sub.children:
            if part.type == "attribute_name":
                attr_name = get_ts_node_text(part, file_bytes)
            elif part.type == "quoted_attribute_value":
                inner = [c for c in part.children if c.type == "attribute_value"]
                attr_val = get_ts_node_text(inner[0], file_bytes) if inner else ""
            elif part.type == "attribute_value":
                attr_val = get_ts_node_text(part, file_bytes)
        if attr_name:
            attrs[attr_name] = attr_val
    return attrs


def _start_tag(element: Node) -> Optional[Node]:
    return next((c for c in element.children if c.type == "start_tag"), None)


def _tag_name(start_tag: Node, file_bytes: bytes) -> str:
    for child in start_tag.children:
        if child.type == "tag_name":
            return get_ts_node_text(child, file_bytes).lower()
    return ""


def _raw_block(
    kind: SectionKind, element: Node, file_bytes: bytes
) -> Optional[Section]:
    start_tag = _start_tag(element)
    if start_tag is None:
        return None
    attrs = _read_attributes(start_tag, file_bytes)
    body = next((c for c in element.children if c.type in ("raw_text", "text")), None)
    if body is not None:
        start, end = body.start_byte, body.end_byte
    else:
        start = end = start_tag.end_byte
    lang = ""
    if kind == SectionKind.SCRIPT:
        lang = SCRIPT_LANG_ALIASES.get(attrs.get("lang", "js").lower(), "js")
    else:
        lang = attrs.get("lang", "")
    return _make_section(kind, file_bytes, start, end, lang, attrs)


def _top_level_elements(root: Node, file_bytes: bytes) -> List[Node]:
    """
    Root children, looking through ERROR wrappers the markup parser may introduce.

    Element children are searched too: when error recovery runs a template past
    its real closing tag, later blocks end up nested inside it. A bare template
    start tag stranded in an ERROR node is returned as is.
    """
    elements: List[Node] = []
    pending = list(root.children)
    while pending:
        node = pending.pop(0)
        if node.type == "ERROR":
            pending = list(node.children) + pending
        elif node.type in ("script_element", "style_element"):
            elements.append(node)
        elif node.type == "element":
            elements.append(node)
            pending = [c for c in node.children if c.type != "start_tag"] + pending
        elif node.type == "start_tag" and _tag_name(node, file_bytes) == "template":
            elements.append(node)
    return elements


def _template_block_end(file_bytes: bytes, open_tag_end: int) -> int:
    """
    Offset just past the ``</template>`` matching an opening tag that ends at
    ``open_tag_end``, or the end of the file when it is never closed.
    """
    depth = 1
    for match in TEMPLATE_TAG_PATTERN.finditer(file_bytes, open_tag_end):
        closing, self_closing = match.group(1), match.group(2)
        if closing:
            depth -= 1
            if depth == 0:
                return match.end()
        elif not self_closing:
            depth += 1
    return len(file_bytes)


def _split_component(file_path: str, file_bytes: bytes) -> List[Section]:
    tree = parse_bytes(file_bytes, HTML_LANGUAGE)
    sections: List[Section] = []
    template_span: Optional[Tuple[int, int]] = None
    for element in _top_level_elements(tree.root_node, file_bytes):
        if template_span is not None and template_span[0] < element.start_byte < template_span[1]:
            # Nested markup of the template already taken
            continue
        if element.type == "script_element":
            section = _raw_block(SectionKind.SCRIPT, element, file_bytes)
        elif element.type == "style_element":
            section = _raw_block(SectionKind.STYLE, element, file_bytes)
        else:
            start_tag = element if element.type == "start_tag" else _start_tag(element)
            if start_tag is None or _tag_name(start_tag, file_bytes) != "template":
                continue
            if template_span is not None:
                logger.warning(f"Ignoring extra <template> block in {file_path}")
                continue
            # Markup error recovery can close the element early (a "<" inside an
            # expression), so the block ends at the matching closing tag in the raw bytes.
            end = _template_block_end(file_bytes, start_tag.end_byte)
            template_span = (start_tag.start_byte, end)
            section = _make_section(
                SectionKind.TEMPLATE,
                file_bytes,
                start_tag.start_byte,
                end,
                attrs=_read_attributes(start_tag, file_bytes),
            )
        if section is not None:
            sections.append(section)
    sections.sort(key=lambda s: s.start_line)
    return sections


def split_sections(file_path: str, content: str) -> SplitResult:
    """Splits ``content`` into sections. Never raises: failures degrade to one opaque section."""
    file_bytes = content.encode("utf8")
    ext = get_extension(file_path)

    if ext in SCRIPT_EXTENSIONS:
        return SplitResult(
            file_path,
            [_whole_file_section(SectionKind.SCRIPT, file_bytes, SCRIPT_EXTENSIONS[ext])],
        )

    if ext in COMPONENT_EXTENSIONS:
        try:
            sections = _split_component(file_path, file_bytes)
        except Exception as e:
            logger.warning(f"Could not split sections of {file_path}: {e}", exc_info=True)
            sections = []
        if any(s.kind in (SectionKind.SCRIPT, SectionKind.TEMPLATE) for s in sections):
            return SplitResult(file_path, sections)
        logger.warning(f"No script or template block found in {file_path}; treating it as opaque")

    return SplitResult(file_path, [_whole_file_section(SectionKind.OPAQUE, file_bytes)])
