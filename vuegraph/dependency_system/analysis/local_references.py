# analysis/local_references.py

"""Finds which scope-visible names an expression reads, with a one-line summary of each."""

import logging
from typing import List, Mapping, Optional

from vuegraph.dependency_system.analysis.ts_utils import (
    Node,
    get_ts_node_text,
    reference_identifiers,
)
from vuegraph.dependency_system.core.graph_types import (
    DEFAULT_EXPORT,
    LocalReference,
    NodeKind,
    ProgramNode,
)

logger = logging.getLogger(__name__)

FUNCTION_KINDS = frozenset({NodeKind.FUNCTION, NodeKind.PURE_FUNCTION, NodeKind.HOOK})


def summarize(node: ProgramNode) -> str:
    """First line of the node's snippet, stripped."""
    return node.code_snippet.split("\n", 1)[0].strip()


def summarize_export(node: ProgramNode, export_name: str) -> str:
    """Signature-only stand-in: ``export function f(...) { ... }`` or ``export const x = ...``."""
    keyword = "export default" if export_name == DEFAULT_EXPORT else "export"
    if node.kind in FUNCTION_KINDS:
        name = "" if node.short_name == DEFAULT_EXPORT else f" {node.label}"
        return f"{keyword} function{name}(...) {{ ... }}"
    if export_name == DEFAULT_EXPORT:
        return f"{keyword} {node.label}"
    return f"{keyword} const {node.label} = ..."


def make_reference(name: str, node: ProgramNode) -> LocalReference:
    return LocalReference(
        name=name,
        defining_node_id=node.id,
        summary=summarize(node),
        kind=node.kind,
    )


def extract_local_references(
    expression: Optional[Node],
    content_bytes: bytes,
    visible: Mapping[str, str],
    nodes: Mapping[str, ProgramNode],
) -> List[LocalReference]:
    """
    Walks ``expression`` and returns one LocalReference per distinct visible name it reads.

    Args:
        expression: Syntax node to inspect (typically a return statement's argument).
        content_bytes: Bytes the node offsets refer to.
        visible: Name -> defining node id for everything in lexical scope.
        nodes: Node map of the current pass, used to look up the defining node.
    """
    if expression is None:
        return []
    references: List[LocalReference] = []
    found = set()
    for ident in reference_identifiers(expression):
        name = get_ts_node_text(ident, content_bytes)
        if name in found or name not in visible:
            continue
        found.add(name)
        defining = nodes.get(visible[name])
        if defining is None:
            logger.debug(f"Visible name '{name}' has no node ({visible[name]})")
            continue
        references.append(make_reference(name, defining))
    return references
