# analysis/ts_utils.py

"""
Tree-sitter setup and small helpers shared by the script and template analyzers.

All offsets handled here are UTF-8 byte offsets. A script section is parsed on its
own, so node offsets are section-local; ScriptSource converts them back to
whole-file coordinates.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, FrozenSet, Iterator, List, Optional

# Languages are created once at import time; parsers are created per call.
import tree_sitter
import tree_sitter_html as tshtml
import tree_sitter_javascript as tsjavascript
import tree_sitter_typescript as tstypescript

Language = tree_sitter.Language
Parser = tree_sitter.Parser
Query = tree_sitter.Query
QueryCursor = tree_sitter.QueryCursor
Node = tree_sitter.Node
Tree = tree_sitter.Tree

JS_LANGUAGE = Language(tsjavascript.language())
HTML_LANGUAGE = Language(tshtml.language())
TS_LANGUAGE = Language(tstypescript.language_typescript())
TSX_LANGUAGE = Language(tstypescript.language_tsx())

SCRIPT_LANGUAGES = {
    "ts": TS_LANGUAGE,
    "tsx": TSX_LANGUAGE,
    "js": JS_LANGUAGE,
    "jsx": JS_LANGUAGE,
}

logger = logging.getLogger(__name__)

FUNCTION_NODE_TYPES = frozenset(
    {
        "function_declaration",
        "generator_function_declaration",
        "function_expression",
        "function",
        "generator_function",
        "arrow_function",
        "method_definition",
    }
)
CLASS_NODE_TYPES = frozenset({"class_declaration", "abstract_class_declaration", "class"})

# Expression wrappers that do not change what an initializer is.
WRAPPER_NODE_TYPES = frozenset(
    {
        "await_expression",
        "as_expression",
        "satisfies_expression",
        "non_null_expression",
        "parenthesized_expression",
        "type_assertion",
    }
)

REFERENCE_IDENTIFIER_TYPES = frozenset(
    {"identifier", "shorthand_property_identifier", "type_identifier"}
)
IMPORT_BINDING_PARENTS = frozenset({"import_specifier", "namespace_import", "import_clause"})


def get_ts_node_text(node: Node, content_bytes: bytes) -> str:
    """Safely decodes the text of a tree-sitter node."""
    return content_bytes[node.start_byte : node.end_byte].decode("utf8", errors="ignore")


def parse_bytes(content_bytes: bytes, language: Language) -> Tree:
    parser = Parser(language)
    return parser.parse(content_bytes)


def line_at(content_bytes: bytes, offset: int) -> int:
    """1-based line containing ``offset``, counted from the raw bytes."""
    return content_bytes.count(b"\n", 0, max(0, offset)) + 1


def walk(
    node: Node,
    descend: Optional[Callable[[Node], bool]] = None,
) -> Iterator[Node]:
    """
    Depth-first pre-order traversal guarded by a visited set of node ids.

    ``descend`` decides whether the children of a yielded node (other than the
    starting node) are visited.
    """
    visited = set()
    stack = [node]
    while stack:
        current = stack.pop()
        if current.id in visited:
            continue
        visited.add(current.id)
        yield current
        if current is not node and descend is not None and not descend(current):
            continue
        stack.extend(reversed(current.children))


def first_error_node(node: Node) -> Optional[Node]:
    """Returns the first ERROR or missing node below ``node`` in source order."""
    for current in walk(node, descend=lambda n: n.has_error):
        if current.type == "ERROR" or current.is_missing:
            return current
    return None


def unwrap_expression(node: Optional[Node]) -> Optional[Node]:
    while node is not None and node.type in WRAPPER_NODE_TYPES:
        inner = node.named_children
        if not inner:
            break
        node = inner[0]
    return node


def member_path(node: Node, content_bytes: bytes) -> str:
    """Dotted path of a member expression (``window.localStorage.setItem``)."""
    if node.type in ("identifier", "this", "super"):
        return get_ts_node_text(node, content_bytes)
    if node.type == "member_expression":
        obj = node.child_by_field_name("object")
        prop = node.child_by_field_name("property")
        base = member_path(obj, content_bytes) if obj is not None else ""
        if prop is None or prop.type not in ("property_identifier", "private_property_identifier"):
            return base
        prop_text = get_ts_node_text(prop, content_bytes)
        return f"{base}.{prop_text}" if base else prop_text
    return ""


def callee_name(call_node: Node, content_bytes: bytes) -> Optional[str]:
    """Name of the function invoked by a call expression, or None for computed callees."""
    func = call_node.child_by_field_name("function")
    if func is None:
        return None
    func = unwrap_expression(func)
    if func.type == "identifier":
        return get_ts_node_text(func, content_bytes)
    if func.type == "member_expression":
        return member_path(func, content_bytes) or None
    return None


def is_function_node(node: Optional[Node]) -> bool:
    return node is not None and node.type in FUNCTION_NODE_TYPES


def is_reference_identifier(node: Node) -> bool:
    """True for identifiers in a position that reads a binding."""
    if node.type not in REFERENCE_IDENTIFIER_TYPES:
        return False
    parent = node.parent
    return parent is None or parent.type not in IMPORT_BINDING_PARENTS


@dataclass
class ScriptSource:
    """A parsed script section plus the coordinates needed to map it back into its file."""

    file_path: str
    file_bytes: bytes
    base_offset: int
    end_offset: int
    tree: Tree
    lang: str = "ts"
    section_bytes: bytes = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self.section_bytes = self.file_bytes[self.base_offset : self.end_offset]

    @classmethod
    def parse(cls, file_path: str, file_bytes: bytes, start: int, end: int, lang: str) -> "ScriptSource":
        language = SCRIPT_LANGUAGES.get(lang, TS_LANGUAGE)
        tree = parse_bytes(file_bytes[start:end], language)
        return cls(file_path, file_bytes, start, end, tree, lang)

    @property
    def root(self) -> Node:
        return self.tree.root_node

    def abs_start(self, node: Node) -> int:
        return self.base_offset + node.start_byte

    def abs_end(self, node: Node) -> int:
        return self.base_offset + node.end_byte

    def text(self, node: Node) -> str:
        return self.file_bytes[self.abs_start(node) : self.abs_end(node)].decode(
            "utf8", errors="ignore"
        )

    def line_of(self, node: Node) -> int:
        return line_at(self.file_bytes, self.abs_start(node))

    def line_start(self, node: Node) -> int:
        """File offset of the first byte of the line the node starts on."""
        return self.file_bytes.rfind(b"\n", 0, self.abs_start(node)) + 1

    def full_line_snippet(self, node: Node) -> str:
        """Source text of every line the node touches, from column 0 to the end of its last line."""
        start = self.line_start(node)
        end = self.file_bytes.find(b"\n", self.abs_end(node))
        if end == -1:
            end = len(self.file_bytes)
        return self.file_bytes[start:end].decode("utf8", errors="ignore")

    def syntax_error(self) -> Optional[Node]:
        if not self.root.has_error:
            return None
        return first_error_node(self.root) or self.root


def reference_identifiers(node: Node) -> List[Node]:
    return [n for n in walk(node) if is_reference_identifier(n)]


def _collect_pattern_names(node: Node, content_bytes: bytes, names: List[str]) -> None:
    node_type = node.type
    if node_type in ("identifier", "shorthand_property_identifier_pattern"):
        names.append(get_ts_node_text(node, content_bytes))
    elif node_type == "pair_pattern":
        value = node.child_by_field_name("value")
        if value is not None:
            _collect_pattern_names(value, content_bytes, names)
    elif node_type in ("assignment_pattern", "object_assignment_pattern"):
        left = node.child_by_field_name("left")
        if left is not None:
            _collect_pattern_names(left, content_bytes, names)
    elif node_type in ("object_pattern", "array_pattern", "rest_pattern"):
        for child in node.named_children:
            _collect_pattern_names(child, content_bytes, names)
    elif node_type in ("required_parameter", "optional_parameter"):
        pattern = node.child_by_field_name("pattern")
        if pattern is not None:
            _collect_pattern_names(pattern, content_bytes, names)


def pattern_names(pattern: Node, content_bytes: bytes) -> List[str]:
    """
    Names bound by a binding pattern, in source order.

    Handles plain identifiers, nested object/array patterns, defaults
    (``{ a = 1 }``, ``[b = 2]``), renames (``{ a: c }``), rest elements and
    TypeScript parameter wrappers.
    """
    names: List[str] = []
    _collect_pattern_names(pattern, content_bytes, names)
    return names


def parameter_names(function_node: Node, content_bytes: bytes) -> List[str]:
    """Names bound by a function's parameter list (``x => ...`` included)."""
    params = function_node.child_by_field_name("parameters")
    if params is None:
        single = function_node.child_by_field_name("parameter")
        return pattern_names(single, content_bytes) if single is not None else []
    names: List[str] = []
    for child in params.named_children:
        names.extend(pattern_names(child, content_bytes))
    return names


def scoped_references(
    node: Node, content_bytes: bytes, shadowed: FrozenSet[str] = frozenset()
) -> Iterator[Node]:
    """
    Reference identifiers below ``node`` in source order.

    Inside a function found below ``node``, names bound by that function's
    parameters are not references (``u => u.name`` reads nothing from outside).
    """
    if is_function_node(node):
        inner = shadowed | frozenset(parameter_names(node, content_bytes))
        body = node.child_by_field_name("body")
        if body is not None:
            yield from scoped_references(body, content_bytes, inner)
        return
    for current in walk(node, descend=lambda n: not is_function_node(n)):
        if current is not node and is_function_node(current):
            yield from scoped_references(current, content_bytes, shadowed)
        elif is_reference_identifier(current):
            if get_ts_node_text(current, content_bytes) not in shadowed:
                yield current
