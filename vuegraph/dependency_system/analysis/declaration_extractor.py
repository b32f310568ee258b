# analysis/declaration_extractor.py

"""
Top-level declaration extraction for script sections.

Every declared name (functions, classes, variables and names pulled out of
array/object destructuring) becomes one ProgramNode whose snippet is the whole
top-level statement taken from the file, and whose start line is file-relative.
Top-level call statements (``init()``, ``await load()``) become call-expression
nodes.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional

from vuegraph.dependency_system.analysis.ts_utils import (
    CLASS_NODE_TYPES,
    Node,
    ScriptSource,
    callee_name,
    is_function_node,
    pattern_names,
    unwrap_expression,
)
from vuegraph.dependency_system.core.graph_types import (
    NodeKind,
    ProgramNode,
    make_node_id,
)
from vuegraph.dependency_system.core.primitives import is_hook_name, kind_for_callee

logger = logging.getLogger(__name__)

DECLARATION_STATEMENTS = frozenset({"lexical_declaration", "variable_declaration"})
FUNCTION_DECLARATIONS = frozenset(
    {"function_declaration", "generator_function_declaration"}
)


class PatternShape(str, Enum):
    """Closed set of binding targets a declarator can have."""

    IDENTIFIER = "identifier"
    ARRAY = "array"
    OBJECT = "object"


def pattern_shape(pattern: Node) -> Optional[PatternShape]:
    if pattern.type == "identifier":
        return PatternShape.IDENTIFIER
    if pattern.type == "array_pattern":
        return PatternShape.ARRAY
    if pattern.type == "object_pattern":
        return PatternShape.OBJECT
    return None


def binding_names(pattern: Node, src: ScriptSource) -> List[str]:
    """Names bound by a declarator target, in source order."""
    return pattern_names(pattern, src.section_bytes)


def infer_kind(name: str, value: Optional[Node], src: ScriptSource) -> NodeKind:
    """Declaration kind from its initializer expression."""
    value = unwrap_expression(value)
    if value is None:
        return NodeKind.STATEFUL_BINDING
    if is_function_node(value):
        return NodeKind.HOOK if is_hook_name(name) else NodeKind.FUNCTION
    if value.type in CLASS_NODE_TYPES:
        return NodeKind.FUNCTION
    if value.type == "call_expression":
        kind = kind_for_callee(callee_name(value, src.section_bytes))
        if kind is not None:
            return kind
    return NodeKind.STATEFUL_BINDING


@dataclass
class ExtractedDeclaration:
    """A node plus the syntax it came from, kept until the pass finishes."""

    node: ProgramNode
    ast_node: Node
    function_node: Optional[Node] = None
    # Name table for resolving this declaration; None means the file scope.
    scope: Optional[Dict[str, str]] = None


class DeclarationExtractor:
    def __init__(self, src: ScriptSource):
        self.src = src
        self.file_path = src.file_path
        # Local name -> exported name, filled by extract()
        self.exported_names: Dict[str, str] = {}

    def _make(
        self,
        name: str,
        kind: NodeKind,
        statement: Node,
        ast_node: Node,
        function_node: Optional[Node] = None,
        label: Optional[str] = None,
    ) -> ExtractedDeclaration:
        node = ProgramNode(
            id=make_node_id(self.file_path, name),
            label=label or name,
            file_path=self.file_path,
            kind=kind,
            code_snippet=self.src.text(statement),
            start_line=self.src.line_of(statement),
        )
        return ExtractedDeclaration(node, ast_node, function_node)

    def _from_declaration(self, statement: Node, target: Node) -> List[ExtractedDeclaration]:
        results: List[ExtractedDeclaration] = []
        if target.type in FUNCTION_DECLARATIONS:
            name_node = target.child_by_field_name("name")
            name = self.src.text(name_node) if name_node is not None else "default"
            kind = NodeKind.HOOK if is_hook_name(name) else NodeKind.FUNCTION
            results.append(self._make(name, kind, statement, target, target))
        elif target.type in CLASS_NODE_TYPES:
            name_node = target.child_by_field_name("name")
            name = self.src.text(name_node) if name_node is not None else "default"
            results.append(self._make(name, NodeKind.FUNCTION, statement, target))
        elif target.type in DECLARATION_STATEMENTS:
            for declarator in target.named_children:
                if declarator.type != "variable_declarator":
                    continue
                results.extend(self._from_declarator(statement, declarator))
        return results

    def _from_declarator(self, statement: Node, declarator: Node) -> List[ExtractedDeclaration]:
        pattern = declarator.child_by_field_name("name")
        if pattern is None or pattern_shape(pattern) is None:
            return []
        value = declarator.child_by_field_name("value")
        unwrapped = unwrap_expression(value)
        function_node = unwrapped if is_function_node(unwrapped) else None
        # Dependencies are read from the initializer so destructured siblings
        # do not reference each other.
        ast_node = value if value is not None else pattern
        results = []
        for name in binding_names(pattern, self.src):
            kind = infer_kind(name, value, self.src)
            results.append(self._make(name, kind, statement, ast_node, function_node))
        return results

    def _record_export_clause(self, clause: Node) -> None:
        for spec in clause.named_children:
            if spec.type != "export_specifier":
                continue
            name_node = spec.child_by_field_name("name")
            if name_node is None:
                continue
            alias_node = spec.child_by_field_name("alias")
            local = self.src.text(name_node)
            self.exported_names[local] = self.src.text(alias_node) if alias_node is not None else local

    def _from_export(self, statement: Node) -> List[ExtractedDeclaration]:
        if statement.child_by_field_name("source") is not None:
            # Re-exports are followed as imports, they bind nothing here.
            return []
        is_default = any(c.type == "default" for c in statement.children)
        declaration = statement.child_by_field_name("declaration")
        if declaration is not None:
            results = self._from_declaration(statement, declaration)
            for decl in results:
                self.exported_names[decl.node.label] = "default" if is_default else decl.node.label
            return results
        clause = next((c for c in statement.named_children if c.type == "export_clause"), None)
        if clause is not None:
            self._record_export_clause(clause)
            return []
        value = unwrap_expression(statement.child_by_field_name("value"))
        if value is None:
            return []
        if value.type == "identifier":
            # export default App
            self.exported_names[self.src.text(value)] = "default"
            return []
        # export default function () {} / export default class {}
        if is_function_node(value):
            decl = self._make("default", NodeKind.FUNCTION, statement, value, value)
        elif value.type in CLASS_NODE_TYPES:
            decl = self._make("default", NodeKind.FUNCTION, statement, value)
        else:
            return []
        self.exported_names["default"] = "default"
        return [decl]

    def _from_call_statement(self, statement: Node) -> Optional[ExtractedDeclaration]:
        expressions = [c for c in statement.named_children if c.type != "comment"]
        if not expressions:
            return None
        expr = expressions[0]
        awaited = False
        if expr.type == "await_expression":
            awaited = True
            expr = unwrap_expression(expr)
        if expr is None or expr.type != "call_expression":
            return None
        name = callee_name(expr, self.src.section_bytes)
        base_label = f"{name.rsplit('.', 1)[-1]}()" if name else "Expression"
        label = f"await {base_label}" if awaited else base_label
        line = self.src.line_of(statement)
        return self._make(
            f"setup_call_{line}",
            NodeKind.CALL_EXPRESSION,
            statement,
            expr,
            label=label,
        )

    def extract(self) -> List[ExtractedDeclaration]:
        """Walks the program's top-level statements in source order."""
        results: List[ExtractedDeclaration] = []
        self.exported_names = {}
        for statement in self.src.root.named_children:
            if statement.type == "export_statement":
                results.extend(self._from_export(statement))
            elif statement.type == "expression_statement":
                call = self._from_call_statement(statement)
                if call is not None:
                    results.append(call)
            else:
                results.extend(self._from_declaration(statement, statement))
        logger.debug(f"Extracted {len(results)} top-level declarations from {self.file_path}")
        return results
