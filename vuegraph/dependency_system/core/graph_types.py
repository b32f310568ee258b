# core/graph_types.py

"""
Graph data types shared by every analysis stage.

A parse pass produces a flat, ordered collection of ProgramNode values. Edges are
encoded as the ordered ``dependencies`` id list on each node (directed from the
node to the nodes its code reads).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Tuple

TEMPLATE_ROOT = "TEMPLATE_ROOT"
JSX_ROOT = "JSX_ROOT"
DEFAULT_EXPORT = "default"
ID_SEPARATOR = "::"


class NodeKind(str, Enum):
    """Closed set of program element kinds."""

    MODULE = "module"
    FUNCTION = "function"
    PURE_FUNCTION = "pure-function"
    HOOK = "hook"
    STATEFUL_BINDING = "stateful-binding"
    DERIVED_BINDING = "derived-binding"
    PROP = "prop"
    STORE_BINDING = "store-binding"
    CALL_EXPRESSION = "call-expression"
    TEMPLATE = "template"


class TokenKind(str, Enum):
    SELF = "self"
    DEPENDENCY = "dependency"
    PRIMITIVE = "primitive"
    STRING = "string"
    IMPORT_SOURCE = "import-source"


def make_node_id(file_path: str, local_name: str) -> str:
    return f"{file_path}{ID_SEPARATOR}{local_name}"


def short_name(node_id: str) -> str:
    """Returns the part after the last ``::`` (the whole id for file-level ids)."""
    return node_id.rsplit(ID_SEPARATOR, 1)[-1]


def template_node_id(file_path: str) -> str:
    return make_node_id(file_path, TEMPLATE_ROOT)


def view_node_id(file_path: str) -> str:
    return make_node_id(file_path, JSX_ROOT)


def default_export_id(file_path: str) -> str:
    return make_node_id(file_path, DEFAULT_EXPORT)


@dataclass
class LocalReference:
    """A name a condensed snippet relies on, with a one-line summary of its definition."""

    name: str
    defining_node_id: str
    summary: str
    kind: NodeKind

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "nodeId": self.defining_node_id,
            "summary": self.summary,
            "type": self.kind.value,
        }


@dataclass
class TokenRange:
    """
    A highlighted span inside a node's code snippet.

    ``start``/``end`` are UTF-8 byte offsets into ``code_snippet``; for ASCII
    snippets they coincide with string indices.
    """

    start: int
    end: int
    text: str
    kind: TokenKind
    token_ids: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "start": self.start,
            "end": self.end,
            "text": self.text,
            "type": self.kind.value,
        }
        if self.token_ids:
            data["tokenIds"] = list(self.token_ids)
        return data


@dataclass
class ProgramNode:
    id: str
    label: str
    file_path: str
    kind: NodeKind
    code_snippet: str
    start_line: int
    dependencies: List[str] = field(default_factory=list)
    local_references: Optional[List[LocalReference]] = None
    token_ranges: Optional[List[TokenRange]] = None

    @property
    def short_name(self) -> str:
        return short_name(self.id)

    def add_dependency(self, dep_id: str) -> None:
        if dep_id != self.id and dep_id not in self.dependencies:
            self.dependencies.append(dep_id)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "label": self.label,
            "filePath": self.file_path,
            "type": self.kind.value,
            "codeSnippet": self.code_snippet,
            "startLine": self.start_line,
            "dependencies": list(self.dependencies),
        }
        if self.local_references:
            data["localReferences"] = [r.to_dict() for r in self.local_references]
        if self.token_ranges is not None:
            data["tokenRanges"] = [t.to_dict() for t in self.token_ranges]
        return data


@dataclass(frozen=True)
class GraphData:
    """Result of one parse pass. Nodes keep their insertion order."""

    nodes: Tuple[ProgramNode, ...]
    entry_file: str

    def __iter__(self) -> Iterator[ProgramNode]:
        return iter(self.nodes)

    def __len__(self) -> int:
        return len(self.nodes)

    def get(self, node_id: str) -> Optional[ProgramNode]:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def ids(self) -> List[str]:
        return [n.id for n in self.nodes]

    def nodes_in_file(self, file_path: str) -> List[ProgramNode]:
        return [n for n in self.nodes if n.file_path == file_path]

    def nodes_of_kind(self, kind: NodeKind) -> List[ProgramNode]:
        return [n for n in self.nodes if n.kind == kind]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "entryFile": self.entry_file,
            "nodes": [n.to_dict() for n in self.nodes],
        }
