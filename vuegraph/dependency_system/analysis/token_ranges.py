# analysis/token_ranges.py

"""
Highlight ranges for a declaration's code snippet.

The snippet is re-parsed on its own as TSX. Parsing is error tolerant, so
condensed snippets (which are not valid syntax) still yield ranges for the
parts that parse. Property keys, member properties and method names are
``property_identifier`` nodes in this grammar and are never collected; names
inside an import specifier are binding sites and are skipped explicitly.
"""

import logging
from typing import Iterable, List, Optional

from vuegraph.dependency_system.analysis.ts_utils import (
    TSX_LANGUAGE,
    Node,
    get_ts_node_text,
    parse_bytes,
    walk,
)
from vuegraph.dependency_system.core.graph_types import (
    ID_SEPARATOR,
    TokenKind,
    TokenRange,
    short_name,
)
from vuegraph.dependency_system.core.primitives import is_primitive

logger = logging.getLogger(__name__)

TOKEN_IDENTIFIER_TYPES = frozenset({"identifier", "shorthand_property_identifier", "type_identifier"})
SOURCE_STATEMENTS = frozenset({"import_statement", "export_statement"})


def _range(node_start: int, node_end: int, content_bytes: bytes, kind: TokenKind, token_ids=None) -> TokenRange:
    return TokenRange(
        start=node_start,
        end=node_end,
        text=content_bytes[node_start:node_end].decode("utf8", errors="ignore"),
        kind=kind,
        token_ids=list(token_ids or []),
    )


def _template_string_parts(node: Node) -> Iterable[tuple]:
    """Literal spans of a template string, between the backticks and substitutions."""
    cursor = node.start_byte + 1
    for child in node.children:
        if child.type == "template_substitution":
            if child.start_byte > cursor:
                yield cursor, child.start_byte
            cursor = child.end_byte
    end = node.end_byte - 1
    if end > cursor:
        yield cursor, end


def _matching_dependency(name: str, dependencies: List[str]) -> Optional[str]:
    suffix = f"{ID_SEPARATOR}{name}"
    for dep in dependencies:
        if dep.endswith(suffix):
            return dep
    return None


def extract_token_ranges(
    code_snippet: str,
    node_id: str,
    dependencies: List[str],
    is_template: bool = False,
) -> List[TokenRange]:
    """
    Collects self, dependency, primitive, string and import-source ranges.

    Returns ranges deduplicated by start offset and sorted by start offset.
    Template snippets are handled by the template parser and yield ``[]``.
    """
    if is_template:
        return []

    content_bytes = code_snippet.encode("utf8")
    own_name = short_name(node_id)
    ranges: List[TokenRange] = []

    try:
        tree = parse_bytes(content_bytes, TSX_LANGUAGE)
    except Exception as e:
        logger.warning(f"Could not parse snippet of {node_id} for token ranges: {e}")
        return []

    for node in walk(tree.root_node):
        node_type = node.type
        parent = node.parent

        if node_type in SOURCE_STATEMENTS:
            source = node.child_by_field_name("source")
            if source is not None:
                ranges.append(
                    _range(source.start_byte, source.end_byte, content_bytes, TokenKind.IMPORT_SOURCE)
                )
        elif node_type == "string":
            if parent is None or parent.type not in SOURCE_STATEMENTS:
                ranges.append(_range(node.start_byte, node.end_byte, content_bytes, TokenKind.STRING))
        elif node_type == "template_string":
            for start, end in _template_string_parts(node):
                ranges.append(_range(start, end, content_bytes, TokenKind.STRING))
        elif node_type in TOKEN_IDENTIFIER_TYPES:
            if parent is not None and parent.type == "import_specifier":
                continue
            name = get_ts_node_text(node, content_bytes)
            dependency = _matching_dependency(name, dependencies)
            if name == own_name:
                kind = TokenKind.SELF
            elif is_primitive(name):
                kind = TokenKind.PRIMITIVE
            elif dependency is not None:
                kind = TokenKind.DEPENDENCY
            else:
                continue
            token_ids = [dependency] if kind == TokenKind.DEPENDENCY else []
            ranges.append(_range(node.start_byte, node.end_byte, content_bytes, kind, token_ids))

    unique: List[TokenRange] = []
    seen_starts = set()
    for token in sorted(ranges, key=lambda r: r.start):
        if token.start in seen_starts:
            continue
        seen_starts.add(token.start)
        unique.append(token)
    return unique
