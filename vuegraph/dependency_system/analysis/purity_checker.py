# analysis/purity_checker.py

"""
Best-effort side-effect detection for function bodies.

A function is impure when its body calls a stateful or effectful primitive, a
``use``-prefixed hook, touches an I/O / DOM / non-deterministic API, or assigns
to a member or subscript expression. Read-only standard methods are whitelisted
and win over every other rule.
"""

import logging
from typing import Optional

from vuegraph.dependency_system.analysis.ts_utils import (
    Node,
    callee_name,
    member_path,
    walk,
)
from vuegraph.dependency_system.core.primitives import (
    is_effectful_call,
    is_pure_method,
    matches_side_effect_pattern,
)

logger = logging.getLogger(__name__)

ASSIGNMENT_TYPES = frozenset({"assignment_expression", "augmented_assignment_expression"})
MUTABLE_TARGET_TYPES = frozenset({"member_expression", "subscript_expression"})


def _call_has_side_effect(name: Optional[str]) -> bool:
    if not name or is_pure_method(name):
        return False
    return is_effectful_call(name) or matches_side_effect_pattern(name)


def _member_has_side_effect(path: str) -> bool:
    if not path or is_pure_method(path):
        return False
    return matches_side_effect_pattern(path)


def find_side_effect(function_node: Node, content_bytes: bytes) -> Optional[Node]:
    """Returns the first syntax node that makes the function impure, or None."""
    body = function_node.child_by_field_name("body")
    if body is None:
        return None
    for node in walk(body):
        if node.type == "call_expression":
            if _call_has_side_effect(callee_name(node, content_bytes)):
                return node
        elif node.type == "member_expression":
            if _member_has_side_effect(member_path(node, content_bytes)):
                return node
        elif node.type in ASSIGNMENT_TYPES:
            # No scope analysis: mutating a freshly created local object counts too.
            left = node.child_by_field_name("left")
            if left is not None and left.type in MUTABLE_TARGET_TYPES:
                return node
    return None


def is_pure_function(function_node: Optional[Node], content_bytes: bytes) -> bool:
    """True iff no side-effect signal was found in the function body."""
    if function_node is None:
        return True
    has_side_effect = find_side_effect(function_node, content_bytes) is not None
    if has_side_effect:
        logger.debug(
            f"Function at line {function_node.start_point[0] + 1} classified impure"
        )
    return not has_side_effect
