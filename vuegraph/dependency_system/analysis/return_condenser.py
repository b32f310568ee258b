# analysis/return_condenser.py

"""
Purity classification and "signature + return" condensation for function nodes.

Pure ``function``/``hook`` nodes are re-tagged ``pure-function`` and keep their
full body. Impure functions get their locals extracted as nodes of their own and
their snippet rewritten to the signature line, an elision marker and the
outermost return statement.
"""

import logging
from collections import deque
from typing import Dict, List, MutableMapping, Optional

from vuegraph.dependency_system.analysis.declaration_extractor import (
    DECLARATION_STATEMENTS,
    ExtractedDeclaration,
    binding_names,
    infer_kind,
    pattern_shape,
)
from vuegraph.dependency_system.analysis.local_references import extract_local_references
from vuegraph.dependency_system.analysis.purity_checker import is_pure_function
from vuegraph.dependency_system.analysis.ts_utils import (
    Node,
    ScriptSource,
    is_function_node,
    parameter_names,
    unwrap_expression,
    walk,
)
from vuegraph.dependency_system.core.graph_types import NodeKind, ProgramNode, make_node_id

logger = logging.getLogger(__name__)

ELISION_MARKER = "  ..."
PURE_CANDIDATE_KINDS = frozenset({NodeKind.FUNCTION, NodeKind.HOOK})


def condense_snippet(original_snippet: str, return_snippet: str) -> str:
    signature = original_snippet.split("\n", 1)[0]
    return f"{signature}\n{ELISION_MARKER}\n\n{return_snippet}\n}}"


def find_return_statement(function_node: Node) -> Optional[Node]:
    """First, lexically outermost return statement; nested functions are not entered."""
    body = function_node.child_by_field_name("body")
    if body is None:
        return None
    queue = deque(body.children)
    while queue:
        node = queue.popleft()
        if node.type == "return_statement":
            return node
        if is_function_node(node) or node.type in ("class_declaration", "class"):
            continue
        queue.extend(node.children)
    return None


def return_expression(return_node: Node) -> Optional[Node]:
    for child in return_node.named_children:
        if child.type != "comment":
            return child
    return None


def extract_function_locals(
    function_node: Node, src: ScriptSource
) -> List[ExtractedDeclaration]:
    """
    Variable declarations in the function body, one entry per bound name.

    Snippets cover the full source lines of the declaring statement. Nested
    functions are not entered.
    """
    body = function_node.child_by_field_name("body")
    if body is None:
        return []
    locals_: List[ExtractedDeclaration] = []
    for node in walk(body, descend=lambda n: not is_function_node(n)):
        if node.type not in DECLARATION_STATEMENTS:
            continue
        for declarator in node.named_children:
            if declarator.type != "variable_declarator":
                continue
            pattern = declarator.child_by_field_name("name")
            if pattern is None or pattern_shape(pattern) is None:
                continue
            value = declarator.child_by_field_name("value")
            unwrapped = unwrap_expression(value)
            for name in binding_names(pattern, src):
                program_node = ProgramNode(
                    id=make_node_id(src.file_path, name),
                    label=name,
                    file_path=src.file_path,
                    kind=infer_kind(name, value, src),
                    code_snippet=src.full_line_snippet(node),
                    start_line=src.line_of(node),
                )
                locals_.append(
                    ExtractedDeclaration(
                        program_node,
                        value if value is not None else pattern,
                        unwrapped if is_function_node(unwrapped) else None,
                    )
                )
    return locals_


def condense_function(
    decl: ExtractedDeclaration,
    src: ScriptSource,
    nodes: MutableMapping[str, ProgramNode],
    file_scope: Dict[str, str],
    condense: bool = True,
) -> List[ExtractedDeclaration]:
    """
    Classifies ``decl`` and, when impure, condenses it in place.

    Locals not already present in ``nodes`` are inserted and returned so the
    caller can resolve their dependencies. Inside the body, parameters and
    locals shadow same-named entries of ``file_scope``; the resulting name table
    is stored on ``decl`` and on each local.
    """
    node = decl.node
    function_node = decl.function_node
    if function_node is None:
        return []

    visible = dict(file_scope)
    for name in parameter_names(function_node, src.section_bytes):
        visible.pop(name, None)
    locals_ = extract_function_locals(function_node, src)

    if is_pure_function(function_node, src.section_bytes):
        # Locals of a pure function get no nodes, so they hide outer names.
        for local in locals_:
            visible.pop(local.node.label, None)
        decl.scope = visible
        if node.kind in PURE_CANDIDATE_KINDS:
            node.kind = NodeKind.PURE_FUNCTION
            logger.debug(f"Pure function detected: {node.label}")
        return []

    inserted: List[ExtractedDeclaration] = []
    for local in locals_:
        visible[local.node.label] = local.node.id
        local.scope = visible
        if local.node.id in nodes:
            continue
        nodes[local.node.id] = local.node
        inserted.append(local)
    decl.scope = visible

    if not condense:
        return inserted

    return_node = find_return_statement(function_node)
    if return_node is None:
        return inserted

    references = extract_local_references(
        return_expression(return_node), src.section_bytes, visible, nodes
    )
    node.code_snippet = condense_snippet(node.code_snippet, src.full_line_snippet(return_node))
    if references:
        node.local_references = references
    return inserted
