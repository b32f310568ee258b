"""Tests for top-level declaration extraction and kind inference."""

from conftest import make_source

from vuegraph.dependency_system.analysis.declaration_extractor import DeclarationExtractor
from vuegraph.dependency_system.core.graph_types import NodeKind


def _by_label(code, file_path="src/module.ts", lang="ts"):
    src = make_source(code, file_path, lang)
    return {d.node.label: d for d in DeclarationExtractor(src).extract()}


class TestKinds:
    def test_reactive_primitives(self):
        decls = _by_label("""
            const count = ref(0)
            const state = reactive({ open: false })
            const doubled = computed(() => count.value * 2)
            const frozen = readonly(state)
        """)
        assert decls["count"].node.kind == NodeKind.STATEFUL_BINDING
        assert decls["state"].node.kind == NodeKind.STATEFUL_BINDING
        assert decls["doubled"].node.kind == NodeKind.DERIVED_BINDING
        assert decls["frozen"].node.kind == NodeKind.DERIVED_BINDING

    def test_props_and_stores(self):
        decls = _by_label("""
            const props = defineProps<{ title: string }>()
            const cart = useCartStore()
            const { items } = storeToRefs(cart)
        """)
        assert decls["props"].node.kind == NodeKind.PROP
        assert decls["cart"].node.kind == NodeKind.STORE_BINDING
        assert decls["items"].node.kind == NodeKind.STORE_BINDING

    def test_hook_call_destructuring(self):
        decls = _by_label("""
            const { users, load: reload, total = 0 } = useUsers()
        """)
        assert set(decls) == {"users", "reload", "total"}
        for decl in decls.values():
            assert decl.node.kind == NodeKind.HOOK
            assert decl.node.code_snippet == "const { users, load: reload, total = 0 } = useUsers()"

    def test_array_destructuring_with_defaults(self):
        decls = _by_label("""
            const [first = 1, , ...rest] = pair
        """)
        assert list(decls) == ["first", "rest"]
        assert decls["first"].node.kind == NodeKind.STATEFUL_BINDING

    def test_functions_and_hooks(self):
        decls = _by_label("""
            function useThing() {
              return 1
            }
            const handler = async () => {}
            const useOther = function () {}
            class Service {}
        """)
        assert decls["useThing"].node.kind == NodeKind.HOOK
        assert decls["handler"].node.kind == NodeKind.FUNCTION
        assert decls["useOther"].node.kind == NodeKind.HOOK
        assert decls["Service"].node.kind == NodeKind.FUNCTION
        assert decls["handler"].function_node is not None
        assert decls["Service"].function_node is None

    def test_plain_values_are_stateful(self):
        decls = _by_label("""
            let label = 'x'
            var total = compute(label)
        """)
        assert decls["label"].node.kind == NodeKind.STATEFUL_BINDING
        assert decls["total"].node.kind == NodeKind.STATEFUL_BINDING


class TestExports:
    def test_exported_function_keeps_export_in_snippet(self):
        decls = _by_label("""
            export function add(a: number, b: number) {
              return a + b
            }
        """)
        node = decls["add"].node
        assert node.id == "src/module.ts::add"
        assert node.code_snippet.startswith("export function add(")
        assert node.start_line == 2

    def test_export_default_function(self):
        decls = _by_label("""
            export default function () {
              return 1
            }
        """)
        assert decls["default"].node.id == "src/module.ts::default"
        assert decls["default"].node.kind == NodeKind.FUNCTION

    def test_exported_const(self):
        decls = _by_label("""
            export const LIMIT = 10, OFFSET = 2
        """)
        assert set(decls) == {"LIMIT", "OFFSET"}
        assert decls["OFFSET"].node.code_snippet == "export const LIMIT = 10, OFFSET = 2"

    def test_exported_names(self):
        src = make_source("""
            import { shared } from './shared'
            export const LIMIT = 10
            export function load() {}
            const local = 1
            const other = 2
            export { local, other as renamed }
            export { shared as again } from './shared'
            export default local
        """)
        extractor = DeclarationExtractor(src)
        labels = [d.node.label for d in extractor.extract()]
        assert labels == ["LIMIT", "load", "local", "other"]
        assert extractor.exported_names == {
            "LIMIT": "LIMIT",
            "load": "load",
            "local": "default",
            "other": "renamed",
        }

    def test_anonymous_default_is_exported(self):
        src = make_source("export default class {}\n")
        extractor = DeclarationExtractor(src)
        extractor.extract()
        assert extractor.exported_names == {"default": "default"}


class TestCallStatements:
    def test_call_nodes(self):
        src = make_source("""\
            init()
            await load()
            api.client.fetchAll()
        """)
        decls = DeclarationExtractor(src).extract()
        assert [d.node.id for d in decls] == [
            "src/module.ts::setup_call_1",
            "src/module.ts::setup_call_2",
            "src/module.ts::setup_call_3",
        ]
        assert [d.node.label for d in decls] == ["init()", "await load()", "fetchAll()"]
        assert all(d.node.kind == NodeKind.CALL_EXPRESSION for d in decls)

    def test_non_call_expressions_ignored(self):
        src = make_source("""\
            a + b
            x = 1
        """)
        assert DeclarationExtractor(src).extract() == []
