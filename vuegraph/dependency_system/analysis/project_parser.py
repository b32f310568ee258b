# analysis/project_parser.py

"""
Whole-project dependency graph construction.

Starting from the entry file, each reachable file is visited exactly once in
depth-first import order: its sections are split, its imports are resolved and
visited, its top-level declarations become nodes, function nodes are classified
and condensed, declaration dependencies are resolved against the file's name
table and the view node (template or returned JSX) and the default export node
are built. After the pass, dependencies on ids that never made it into the graph
are dropped and token ranges are attached.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Set

from vuegraph.dependency_system.analysis.declaration_extractor import (
    DeclarationExtractor,
    ExtractedDeclaration,
)
from vuegraph.dependency_system.analysis.local_references import make_reference, summarize_export
from vuegraph.dependency_system.analysis.return_condenser import condense_function
from vuegraph.dependency_system.analysis.section_splitter import Section, split_sections
from vuegraph.dependency_system.analysis.template_parser import (
    TemplateParseResult,
    TemplateParser,
    find_jsx_root,
    known_template_names,
    parse_template,
    template_label,
    view_label,
)
from vuegraph.dependency_system.analysis.token_ranges import extract_token_ranges
from vuegraph.dependency_system.analysis.ts_utils import (
    SCRIPT_LANGUAGES,
    Node,
    Query,
    QueryCursor,
    ScriptSource,
    get_ts_node_text,
    reference_identifiers,
)
from vuegraph.dependency_system.core.exceptions import ProjectParseError, ScriptSyntaxError
from vuegraph.dependency_system.core.graph_types import (
    DEFAULT_EXPORT,
    GraphData,
    LocalReference,
    NodeKind,
    ProgramNode,
    default_export_id,
    make_node_id,
    template_node_id,
    view_node_id,
)
from vuegraph.dependency_system.core.primitives import is_primitive
from vuegraph.dependency_system.utils.config_manager import ConfigManager
from vuegraph.dependency_system.utils.path_utils import (
    get_file_name,
    get_file_stem,
    normalize_path,
    resolve_import,
)

logger = logging.getLogger(__name__)

IMPORT_QUERY = """
[
  (import_statement source: (string) @path) @statement
  (export_statement source: (string) @path) @statement
]
"""
_IMPORT_QUERIES = {
    lang: Query(language, IMPORT_QUERY) for lang, language in SCRIPT_LANGUAGES.items()
}
JSX_LANGS = frozenset({"tsx", "jsx"})
COMPONENT_KINDS = frozenset({NodeKind.FUNCTION, NodeKind.PURE_FUNCTION})


@dataclass
class ParseState:
    """Per-invocation accumulator. Never shared between passes."""

    entry_file: str
    nodes: Dict[str, ProgramNode] = field(default_factory=dict)
    visited: Set[str] = field(default_factory=set)

    def insert(self, node: ProgramNode) -> bool:
        """Inserts ``node`` unless its id is taken (first occurrence wins)."""
        if node.id in self.nodes:
            logger.debug(f"Skipping duplicate node id {node.id}")
            return False
        self.nodes[node.id] = node
        return True


@dataclass
class FileContext:
    """Names visible at the top level of one file while it is being processed."""

    file_path: str
    scope: Dict[str, str] = field(default_factory=dict)
    local_names: Dict[str, str] = field(default_factory=dict)
    imported_files: List[str] = field(default_factory=list)
    top_level_ids: List[str] = field(default_factory=list)
    pending: List[ExtractedDeclaration] = field(default_factory=list)
    # Local name -> exported name
    exports: Dict[str, str] = field(default_factory=dict)


def _strip_quotes(text: str) -> str:
    if len(text) >= 2 and text[0] in ('"', "'", "`") and text[-1] == text[0]:
        return text[1:-1]
    return text


def _describe_error(src: ScriptSource, error: Node) -> str:
    if error.is_missing:
        return f"missing '{error.type}'"
    snippet = src.text(error).strip().split("\n", 1)[0]
    if len(snippet) > 40:
        snippet = snippet[:40] + "..."
    return f"unexpected '{snippet}'" if snippet else "unexpected token"


class ProjectParser:
    def __init__(self, files: Mapping[str, str], config: Optional[ConfigManager] = None):
        self.files: Dict[str, str] = {normalize_path(k): v for k, v in files.items()}
        self.config = config or ConfigManager()
        self.aliases = self.config.get_path_aliases()
        self.resolve_suffixes = self.config.get_resolve_suffixes()
        self.condense = bool(self.config.get_analysis_setting("condense_impure_functions", True))
        self.annotate_tokens = bool(self.config.get_analysis_setting("annotate_token_ranges", True))

    def parse_project(self, entry_file: str) -> GraphData:
        """
        Builds the graph reachable from ``entry_file``.

        Raises:
            ProjectParseError: The entry file is not in the project.
            ScriptSyntaxError: The entry file's script does not parse.
        """
        entry = normalize_path(entry_file)
        if entry not in self.files:
            raise ProjectParseError(f"Entry file '{entry_file}' is not part of the project", entry)

        state = ParseState(entry_file=entry)
        self._visit_file(entry, state)
        self._prune_dependencies(state)
        if self.annotate_tokens:
            self._annotate_token_ranges(state)

        logger.info(f"Parsed {len(state.visited)} files into {len(state.nodes)} nodes from {entry}")
        return GraphData(nodes=tuple(state.nodes.values()), entry_file=entry)

    # --- Per-file pass ---

    def _parse_script(self, file_path: str, file_bytes: bytes, script: Section) -> ScriptSource:
        return ScriptSource.parse(file_path, file_bytes, script.start_byte, script.end_byte, script.lang)

    def _visit_file(self, file_path: str, state: ParseState) -> None:
        if file_path in state.visited:
            return
        state.visited.add(file_path)

        content = self.files[file_path]
        file_bytes = content.encode("utf8")
        split = split_sections(file_path, content)

        src: Optional[ScriptSource] = None
        if split.script is not None:
            src = self._parse_script(file_path, file_bytes, split.script)
            error = src.syntax_error()
            if error is not None:
                line = src.line_of(error)
                if file_path == state.entry_file:
                    raise ScriptSyntaxError(file_path, line, _describe_error(src, error))
                logger.warning(f"Skipping {file_path}: syntax error at line {line}")
                return

        state.insert(
            ProgramNode(
                id=file_path,
                label=get_file_stem(file_path),
                file_path=file_path,
                kind=NodeKind.MODULE,
                code_snippet=content,
                start_line=1,
            )
        )
        ctx = FileContext(file_path)

        if src is not None:
            self._process_imports(src, ctx, state)
            self._process_declarations(src, ctx, state)
            self._process_functions(src, ctx, state)
            self._resolve_dependencies(src, ctx)

        view_id = None
        if split.template is not None:
            view_id = self._build_template_node(split.template, ctx, state)
        elif src is not None and src.lang in JSX_LANGS:
            view_id = self._build_view_node(src, ctx, state)
            if view_id is not None:
                self._link_components(ctx, state, view_id)
        default_id = self._ensure_default_export(ctx, view_id, state)

        module_node = state.nodes[file_path]
        for dep_id in ctx.imported_files + ctx.top_level_ids:
            module_node.add_dependency(dep_id)
        for dep_id in (view_id, default_id):
            if dep_id is not None:
                module_node.add_dependency(dep_id)
        exports = self._export_references(ctx, state)
        if exports:
            module_node.local_references = exports

    # --- Imports ---

    def _process_imports(self, src: ScriptSource, ctx: FileContext, state: ParseState) -> None:
        query = _IMPORT_QUERIES.get(src.lang, _IMPORT_QUERIES["ts"])
        statements = []
        for _pattern_index, captures in QueryCursor(query).matches(src.root):
            for statement in captures.get("statement", []):
                path_node = captures.get("path", [None])[0]
                if path_node is not None:
                    statements.append((statement, path_node))
        statements.sort(key=lambda item: item[0].start_byte)

        for statement, path_node in statements:
            specifier = _strip_quotes(get_ts_node_text(path_node, src.section_bytes))
            target = resolve_import(
                self.files, ctx.file_path, specifier, self.aliases, self.resolve_suffixes
            )
            if target is None:
                logger.debug(f"Unresolved import '{specifier}' in {ctx.file_path}")
                continue

            self._visit_file(target, state)
            if target not in ctx.imported_files:
                ctx.imported_files.append(target)
            if statement.type == "import_statement":
                self._bind_imported_names(statement, target, src, ctx, state)

    def _bind_imported_names(
        self,
        statement: Node,
        target: str,
        src: ScriptSource,
        ctx: FileContext,
        state: ParseState,
    ) -> None:
        clause = next((c for c in statement.named_children if c.type == "import_clause"), None)
        if clause is None:
            return
        # Default imports bind to the target's default export node once it exists.
        default_id = default_export_id(target)
        default_binding = default_id if default_id in state.nodes else target
        for child in clause.named_children:
            if child.type == "identifier":
                ctx.scope[src.text(child)] = default_binding
            elif child.type == "namespace_import":
                ident = next((c for c in child.named_children if c.type == "identifier"), None)
                if ident is not None:
                    ctx.scope[src.text(ident)] = target
            elif child.type == "named_imports":
                for spec in child.named_children:
                    if spec.type != "import_specifier":
                        continue
                    name_node = spec.child_by_field_name("name")
                    if name_node is None:
                        continue
                    alias_node = spec.child_by_field_name("alias")
                    imported = _strip_quotes(src.text(name_node))
                    local = src.text(alias_node) if alias_node is not None else imported
                    if is_primitive(imported):
                        continue
                    if imported == DEFAULT_EXPORT:
                        ctx.scope[local] = default_binding
                    else:
                        ctx.scope[local] = make_node_id(target, imported)

    # --- Declarations ---

    def _process_declarations(self, src: ScriptSource, ctx: FileContext, state: ParseState) -> None:
        extractor = DeclarationExtractor(src)
        declarations = extractor.extract()
        ctx.exports = extractor.exported_names
        for decl in declarations:
            if not state.insert(decl.node):
                continue
            if decl.node.kind != NodeKind.CALL_EXPRESSION:
                ctx.scope[decl.node.short_name] = decl.node.id
            ctx.top_level_ids.append(decl.node.id)
            ctx.pending.append(decl)

    def _process_functions(self, src: ScriptSource, ctx: FileContext, state: ParseState) -> None:
        # Locals found while condensing are appended to ``pending`` and processed in turn.
        index = 0
        while index < len(ctx.pending):
            decl = ctx.pending[index]
            index += 1
            if decl.function_node is None:
                continue
            outer = decl.scope if decl.scope is not None else ctx.scope
            for local in condense_function(decl, src, state.nodes, outer, self.condense):
                ctx.local_names.setdefault(local.node.label, local.node.id)
                ctx.pending.append(local)

    def _resolve_dependencies(self, src: ScriptSource, ctx: FileContext) -> None:
        for decl in ctx.pending:
            names = decl.scope if decl.scope is not None else ctx.scope
            for ident in reference_identifiers(decl.ast_node):
                target = names.get(src.text(ident))
                if target is not None:
                    decl.node.add_dependency(target)

    # --- Views ---

    def _view_references(
        self, result: TemplateParseResult, known: Dict[str, str], state: ParseState
    ) -> List[LocalReference]:
        return [
            make_reference(name, state.nodes[known[name]])
            for name in result.names
            if known[name] in state.nodes
        ]

    def _build_template_node(
        self, template: Section, ctx: FileContext, state: ParseState
    ) -> Optional[str]:
        node_id = template_node_id(ctx.file_path)
        known = known_template_names(ctx.scope, ctx.local_names)
        result = parse_template(template.content, known)
        node = ProgramNode(
            id=node_id,
            label=template_label(get_file_name(ctx.file_path)),
            file_path=ctx.file_path,
            kind=NodeKind.TEMPLATE,
            code_snippet=template.content,
            start_line=template.start_line,
            dependencies=list(result.dependencies),
            local_references=self._view_references(result, known, state) or None,
            token_ranges=result.token_ranges,
        )
        return node_id if state.insert(node) else None

    def _names_at(self, node: Node, ctx: FileContext) -> Dict[str, str]:
        """Name table of the innermost function declaration enclosing ``node``."""
        best: Optional[Node] = None
        names: Optional[Dict[str, str]] = None
        for decl in ctx.pending:
            fn = decl.function_node
            if fn is None or decl.scope is None:
                continue
            if fn.start_byte <= node.start_byte and node.end_byte <= fn.end_byte:
                if best is None or fn.end_byte - fn.start_byte < best.end_byte - best.start_byte:
                    best, names = fn, decl.scope
        if names is not None:
            return dict(names)
        return known_template_names(ctx.scope, ctx.local_names)

    def _build_view_node(self, src: ScriptSource, ctx: FileContext, state: ParseState) -> Optional[str]:
        """View node for the JSX returned by a component, snippet widened to whole lines."""
        jsx_node = find_jsx_root(src.root)
        if jsx_node is None:
            return None
        known = self._names_at(jsx_node, ctx)
        result = TemplateParser(known).parse_jsx(src, jsx_node)
        node_id = view_node_id(ctx.file_path)
        node = ProgramNode(
            id=node_id,
            label=view_label(get_file_name(ctx.file_path)),
            file_path=ctx.file_path,
            kind=NodeKind.TEMPLATE,
            code_snippet=src.full_line_snippet(jsx_node),
            start_line=src.line_of(jsx_node),
            dependencies=list(result.dependencies),
            local_references=self._view_references(result, known, state) or None,
            token_ranges=result.token_ranges,
        )
        return node_id if state.insert(node) else None

    def _link_components(self, ctx: FileContext, state: ParseState, view_id: str) -> None:
        # PascalCase functions of the file are the components rendering the view.
        for node_id in ctx.top_level_ids:
            node = state.nodes.get(node_id)
            if node is None or node.kind not in COMPONENT_KINDS:
                continue
            if node.label[:1].isupper():
                node.add_dependency(view_id)

    # --- Exports ---

    def _ensure_default_export(
        self, ctx: FileContext, view_id: Optional[str], state: ParseState
    ) -> Optional[str]:
        """
        Makes ``<file>::default`` depend on what the file exports by default and
        on its view. Returns the id when the node had to be created.
        """
        default_id = default_export_id(ctx.file_path)
        local = next((name for name, exported in ctx.exports.items() if exported == DEFAULT_EXPORT), None)
        target_id = ctx.scope.get(local) if local is not None else None
        created = None
        if default_id not in state.nodes:
            if view_id is None and target_id is None:
                return None
            state.insert(
                ProgramNode(
                    id=default_id,
                    label=get_file_name(ctx.file_path),
                    file_path=ctx.file_path,
                    kind=NodeKind.FUNCTION,
                    code_snippet="",
                    start_line=1,
                )
            )
            created = default_id
        default_node = state.nodes[default_id]
        for dep_id in (target_id, view_id):
            if dep_id is not None:
                default_node.add_dependency(dep_id)
        return created

    def _export_references(self, ctx: FileContext, state: ParseState) -> List[LocalReference]:
        references = []
        for local, exported in ctx.exports.items():
            node = state.nodes.get(ctx.scope.get(local, ""))
            if node is None or node.kind == NodeKind.MODULE:
                continue
            references.append(
                LocalReference(
                    name=exported,
                    defining_node_id=node.id,
                    summary=summarize_export(node, exported),
                    kind=node.kind,
                )
            )
        return references

    # --- Finalization ---

    def _prune_dependencies(self, state: ParseState) -> None:
        valid = set(state.nodes)
        for node in state.nodes.values():
            dangling = [d for d in node.dependencies if d not in valid]
            if dangling:
                logger.debug(f"Dropping dangling dependencies of {node.id}: {dangling}")
                node.dependencies = [d for d in node.dependencies if d in valid]
            if node.token_ranges:
                node.token_ranges = [
                    t for t in node.token_ranges if all(i in valid for i in t.token_ids)
                ]

    def _annotate_token_ranges(self, state: ParseState) -> None:
        for node in state.nodes.values():
            if node.kind in (NodeKind.MODULE, NodeKind.TEMPLATE):
                continue
            node.token_ranges = extract_token_ranges(node.code_snippet, node.id, node.dependencies)


def parse_vue_code(
    files: Mapping[str, str], entry_file: str, config: Optional[ConfigManager] = None
) -> GraphData:
    """Convenience wrapper: one snapshot in, one graph out."""
    return ProjectParser(files, config).parse_project(entry_file)
