# analysis/template_parser.py

"""
Dependency extraction for view markup.

A component template (including its ``<template>`` tags) is parsed with the
HTML grammar. Mustache interpolations and directive attribute values (``v-*``,
``:prop``, ``@event``) are parsed as JavaScript, so object keys, member
properties, string contents and arrow parameters never count as references.
Component tags match either directly or after kebab-case to PascalCase
conversion. JSX returned from a script is read the same way from its syntax
tree. Only names already known from the script side are kept. Token offsets
are UTF-8 byte offsets relative to the view snippet.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Tuple

from vuegraph.dependency_system.analysis.ts_utils import (
    HTML_LANGUAGE,
    JS_LANGUAGE,
    Node,
    Query,
    QueryCursor,
    ScriptSource,
    get_ts_node_text,
    parse_bytes,
    scoped_references,
    unwrap_expression,
    walk,
)
from vuegraph.dependency_system.core.graph_types import TokenKind, TokenRange

logger = logging.getLogger(__name__)

MUSTACHE_PATTERN = re.compile(rb"\{\{(.*?)\}\}", re.DOTALL)
# "item in items", "(item, index) of items": only the source expression is read.
V_FOR_ALIAS_PATTERN = re.compile(rb"^(.*?)\s+(?:in|of)\s+", re.DOTALL)
DIRECTIVE_PREFIXES = ("v-", ":", "@", "#")
EVENT_PREFIXES = ("@", "v-on:")
SLOT_PREFIXES = ("#", "v-slot")
JSX_NODE_TYPES = frozenset({"jsx_element", "jsx_self_closing_element", "jsx_fragment"})

TEMPLATE_QUERY = """
[
  (start_tag (tag_name) @tag)
  (self_closing_tag (tag_name) @tag)
  (comment) @comment
  (attribute (attribute_name) @attr.name (quoted_attribute_value (attribute_value) @attr.value))
  (attribute (attribute_name) @attr.name (attribute_value) @attr.value)
]
"""
_TEMPLATE_QUERY = Query(HTML_LANGUAGE, TEMPLATE_QUERY)


def kebab_to_pascal(name: str) -> str:
    """``user-list`` -> ``UserList``; names without dashes only get their first letter raised."""
    return "".join(part[:1].upper() + part[1:] for part in name.split("-") if part)


def is_directive(attribute_name: str) -> bool:
    return attribute_name.startswith(DIRECTIVE_PREFIXES)


def find_jsx_root(root: Node) -> Optional[Node]:
    """Markup of the first return statement, in source order, whose value is JSX."""
    for node in walk(root):
        if node.type != "return_statement":
            continue
        value = next((c for c in node.named_children if c.type != "comment"), None)
        value = unwrap_expression(value)
        if value is not None and value.type in JSX_NODE_TYPES:
            return value
    return None


@dataclass
class TemplateParseResult:
    """Matched names in first-occurrence order plus their highlighted ranges."""

    names: List[str] = field(default_factory=list)
    dependencies: List[str] = field(default_factory=list)
    token_ranges: List[TokenRange] = field(default_factory=list)


def _inside(offset: int, spans: List[Tuple[int, int]]) -> bool:
    return any(start <= offset < end for start, end in spans)


class TemplateParser:
    def __init__(self, known_names: Mapping[str, str]):
        """``known_names`` maps a script-level name to the id of its defining node."""
        self.known_names = known_names
        self._matches: List[Tuple[int, int, str]] = []

    def _scan_expression(self, expression: bytes, base: int, statement: bool = False) -> None:
        """Records known names read by the JavaScript ``expression`` found at ``base``."""
        if not expression.strip():
            return
        # Parenthesized so an object literal is not read as a block.
        code = expression if statement else b"(" + expression + b")"
        shift = 0 if statement else 1
        tree = parse_bytes(code, JS_LANGUAGE)
        for ident in scoped_references(tree.root_node, code):
            name = get_ts_node_text(ident, code)
            if name in self.known_names:
                self._matches.append(
                    (base + ident.start_byte - shift, base + ident.end_byte - shift, name)
                )

    def _scan_directive(self, attr_name: str, value: bytes, base: int) -> None:
        if attr_name.startswith(SLOT_PREFIXES):
            # Slot props are bindings, not reads.
            return
        if attr_name == "v-for":
            alias = V_FOR_ALIAS_PATTERN.match(value)
            if alias is not None:
                self._scan_expression(value[alias.end() :], base + alias.end())
                return
        self._scan_expression(value, base, statement=attr_name.startswith(EVENT_PREFIXES))

    def _scan_tag(self, tag_node: Node, content_bytes: bytes) -> None:
        tag = get_ts_node_text(tag_node, content_bytes)
        for candidate in (tag, kebab_to_pascal(tag)):
            if candidate in self.known_names:
                self._matches.append((tag_node.start_byte, tag_node.end_byte, candidate))
                return

    def parse(self, template_text: str) -> TemplateParseResult:
        content_bytes = template_text.encode("utf8")
        self._matches = []
        comments: List[Tuple[int, int]] = []
        try:
            tree = parse_bytes(content_bytes, HTML_LANGUAGE)
            cursor = QueryCursor(_TEMPLATE_QUERY)
            for _pattern_index, captures in cursor.matches(tree.root_node):
                for node in captures.get("comment", []):
                    comments.append((node.start_byte, node.end_byte))
                for node in captures.get("tag", []):
                    self._scan_tag(node, content_bytes)
                names = captures.get("attr.name", [])
                values = captures.get("attr.value", [])
                if names and values:
                    attr_name = get_ts_node_text(names[0], content_bytes)
                    if is_directive(attr_name):
                        value_node = values[0]
                        self._scan_directive(
                            attr_name,
                            content_bytes[value_node.start_byte : value_node.end_byte],
                            value_node.start_byte,
                        )
        except Exception as e:
            logger.error(f"Error parsing template markup with tree-sitter: {e}", exc_info=True)

        for match in MUSTACHE_PATTERN.finditer(content_bytes):
            if _inside(match.start(), comments):
                continue
            self._scan_expression(match.group(1), match.start(1))

        return self._build_result(content_bytes)

    def parse_jsx(self, src: ScriptSource, jsx_node: Node) -> TemplateParseResult:
        """
        Known names read by returned JSX markup.

        Offsets are relative to ``src.full_line_snippet(jsx_node)``. Closing tags
        are not highlighted.
        """
        self._matches = []
        line_start = src.line_start(jsx_node)
        for ident in scoped_references(jsx_node, src.section_bytes):
            if ident.parent is not None and ident.parent.type == "jsx_closing_element":
                continue
            name = src.text(ident)
            if name in self.known_names:
                self._matches.append(
                    (src.abs_start(ident) - line_start, src.abs_end(ident) - line_start, name)
                )
        return self._build_result(src.full_line_snippet(jsx_node).encode("utf8"))

    def _build_result(self, content_bytes: bytes) -> TemplateParseResult:
        result = TemplateParseResult()
        seen_starts = set()
        for start, end, name in sorted(self._matches):
            if start in seen_starts:
                continue
            seen_starts.add(start)
            node_id = self.known_names[name]
            if name not in result.names:
                result.names.append(name)
            if node_id not in result.dependencies:
                result.dependencies.append(node_id)
            result.token_ranges.append(
                TokenRange(
                    start=start,
                    end=end,
                    text=content_bytes[start:end].decode("utf8", errors="ignore"),
                    kind=TokenKind.DEPENDENCY,
                    token_ids=[node_id],
                )
            )
        return result


def parse_template(
    template_text: str, known_names: Mapping[str, str]
) -> TemplateParseResult:
    return TemplateParser(known_names).parse(template_text)


def template_label(file_name: str) -> str:
    return f"{file_name} <template>"


def known_template_names(
    file_scope: Mapping[str, str], local_names: Optional[Mapping[str, str]] = None
) -> Dict[str, str]:
    names = dict(file_scope)
    for name, node_id in (local_names or {}).items():
        names.setdefault(name, node_id)
    return names


def view_label(file_name: str) -> str:
    return f"{file_name} (View)"
