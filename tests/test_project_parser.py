"""End-to-end tests for whole-project graph construction."""

import json
import textwrap

import pytest

from vuegraph.dependency_system.analysis.project_parser import ProjectParser, parse_vue_code
from vuegraph.dependency_system.core.exceptions import ProjectParseError, ScriptSyntaxError
from vuegraph.dependency_system.core.graph_types import NodeKind
from vuegraph.dependency_system.utils.config_manager import ConfigManager


def _dedent_all(files):
    return {path: textwrap.dedent(content) for path, content in files.items()}


PROJECT = _dedent_all(
    {
        "src/App.vue": """\
            <template>
              <UserList :users="users" />
              <p>{{ title }}</p>
            </template>

            <script setup lang="ts">
            import UserList from './components/UserList.vue'
            import { useUsers } from '@/composables/useUsers'
            import { formatName } from './utils/format'

            const { users } = useUsers()
            const title = formatName('app')
            </script>
            """,
        "src/components/UserList.vue": """\
            <template>
              <li v-for="u in props.users">{{ display(u) }}</li>
            </template>

            <script setup lang="ts">
            import { formatName } from '../utils/format'

            const props = defineProps<{ users: string[] }>()
            const display = (u: string) => formatName(u)
            </script>
            """,
        "src/composables/useUsers.ts": """\
            import { ref } from 'vue'
            import { formatName } from '../utils/format'

            export function useUsers() {
              const users = ref([])
              const names = users.value.map(formatName)
              return { users, names }
            }
            """,
        "src/utils/format.ts": """\
            export function formatName(name: string) {
              return name.trim().toUpperCase()
            }
            """,
    }
)

APP = "src/App.vue"
USER_LIST = "src/components/UserList.vue"
USE_USERS = "src/composables/useUsers.ts"
FORMAT = "src/utils/format.ts"


@pytest.fixture
def graph():
    return parse_vue_code(PROJECT, APP, ConfigManager.from_dict({}))


class TestGraphShape:
    def test_ids_unique_and_dependencies_resolve(self, graph):
        ids = graph.ids()
        assert len(ids) == len(set(ids))
        for node in graph:
            for dep in node.dependencies:
                assert dep in ids, f"{node.id} -> {dep}"
            assert node.id not in node.dependencies

    def test_one_module_per_reachable_file(self, graph):
        modules = graph.nodes_of_kind(NodeKind.MODULE)
        assert sorted(m.id for m in modules) == sorted([APP, USER_LIST, USE_USERS, FORMAT])
        assert graph.nodes[0].id == APP

    def test_shared_dependency_processed_once(self, graph):
        format_nodes = graph.nodes_in_file(FORMAT)
        assert [n.id for n in format_nodes] == [FORMAT, f"{FORMAT}::formatName"]

    def test_module_node(self, graph):
        module = graph.get(APP)
        assert module.label == "App"
        assert module.start_line == 1
        assert module.code_snippet == PROJECT[APP]
        assert module.dependencies == [
            USER_LIST,
            USE_USERS,
            FORMAT,
            f"{APP}::users",
            f"{APP}::title",
            f"{APP}::TEMPLATE_ROOT",
            f"{APP}::default",
        ]

    def test_script_lines_are_file_relative(self, graph):
        assert graph.get(f"{APP}::users").start_line == 11
        assert graph.get(f"{APP}::title").start_line == 12

    def test_json_serializable(self, graph):
        payload = json.loads(json.dumps(graph.to_dict()))
        assert payload["entryFile"] == APP
        assert {n["type"] for n in payload["nodes"]} >= {"module", "template", "pure-function", "hook"}


class TestDeclarations:
    def test_imported_bindings_resolve_to_defining_nodes(self, graph):
        users = graph.get(f"{APP}::users")
        assert users.kind == NodeKind.HOOK
        assert users.dependencies == [f"{USE_USERS}::useUsers"]
        title = graph.get(f"{APP}::title")
        assert title.kind == NodeKind.STATEFUL_BINDING
        assert title.dependencies == [f"{FORMAT}::formatName"]

    def test_pure_and_impure_functions(self, graph):
        assert graph.get(f"{FORMAT}::formatName").kind == NodeKind.PURE_FUNCTION
        assert graph.get(f"{USER_LIST}::display").kind == NodeKind.PURE_FUNCTION
        use_users = graph.get(f"{USE_USERS}::useUsers")
        assert use_users.kind == NodeKind.HOOK
        assert use_users.code_snippet.splitlines()[1] == "  ..."

    def test_function_locals(self, graph):
        names = graph.get(f"{USE_USERS}::names")
        assert names.dependencies == [f"{USE_USERS}::users", f"{FORMAT}::formatName"]
        refs = graph.get(f"{USE_USERS}::useUsers").local_references
        assert [r.defining_node_id for r in refs] == [f"{USE_USERS}::users", f"{USE_USERS}::names"]
        # Locals are not top-level declarations of the module.
        assert graph.get(USE_USERS).dependencies == [FORMAT, f"{USE_USERS}::useUsers"]

    def test_props(self, graph):
        assert graph.get(f"{USER_LIST}::props").kind == NodeKind.PROP


class TestTemplate:
    def test_template_node(self, graph):
        template = graph.get(f"{APP}::TEMPLATE_ROOT")
        assert template.kind == NodeKind.TEMPLATE
        assert template.label == "App.vue <template>"
        assert template.start_line == 1
        assert template.code_snippet.startswith("<template>")
        assert template.dependencies == [f"{USER_LIST}::default", f"{APP}::users", f"{APP}::title"]
        assert [r.name for r in template.local_references] == ["UserList", "users", "title"]

    def test_template_token_ranges_point_into_snippet(self, graph):
        template = graph.get(f"{APP}::TEMPLATE_ROOT")
        encoded = template.code_snippet.encode("utf8")
        for token in template.token_ranges:
            assert encoded[token.start : token.end].decode("utf8") == token.text

    def test_declaration_token_ranges(self, graph):
        title = graph.get(f"{APP}::title")
        texts = [(t.text, t.kind.value) for t in title.token_ranges]
        assert texts == [("title", "self"), ("formatName", "dependency"), ("'app'", "string")]

    def test_token_annotation_can_be_disabled(self):
        config = ConfigManager.from_dict({"analysis": {"annotate_token_ranges": False}})
        graph = parse_vue_code(PROJECT, APP, config)
        assert graph.get(f"{APP}::title").token_ranges is None
        assert graph.get(f"{APP}::TEMPLATE_ROOT").token_ranges


class TestEdgeCases:
    def test_import_cycle(self):
        files = {
            "src/a.ts": "import { b } from './b'\nexport const a = () => b()\n",
            "src/b.ts": "import { a } from './a'\nexport const b = () => a()\n",
        }
        graph = parse_vue_code(files, "src/a.ts")
        assert graph.ids() == ["src/a.ts", "src/b.ts", "src/b.ts::b", "src/a.ts::a"]
        assert graph.get("src/a.ts::a").dependencies == ["src/b.ts::b"]
        assert graph.get("src/b.ts::b").dependencies == ["src/a.ts::a"]

    def test_missing_entry(self):
        with pytest.raises(ProjectParseError) as excinfo:
            parse_vue_code({"src/a.ts": ""}, "src/main.ts")
        assert "src/main.ts" in excinfo.value.message

    def test_entry_syntax_error(self):
        with pytest.raises(ScriptSyntaxError) as excinfo:
            parse_vue_code({"src/main.ts": "const = ;\n"}, "src/main.ts")
        assert excinfo.value.line == 1
        assert excinfo.value.message.startswith("Syntax error in src/main.ts at line 1")

    def test_broken_dependency_is_skipped(self):
        files = {
            "src/main.ts": "import { x } from './broken'\nexport const y = 1\n",
            "src/broken.ts": "export const = ;\n",
        }
        graph = parse_vue_code(files, "src/main.ts")
        assert "src/broken.ts" not in graph.ids()
        assert graph.get("src/main.ts").dependencies == ["src/main.ts::y"]

    def test_external_and_missing_imports_ignored(self):
        files = {
            "src/main.ts": textwrap.dedent("""\
                import { ref } from 'vue'
                import missing from './missing'
                export const n = ref(missing)
                """),
        }
        graph = parse_vue_code(files, "src/main.ts")
        assert graph.ids() == ["src/main.ts", "src/main.ts::n"]
        assert graph.get("src/main.ts::n").dependencies == []

    def test_setup_calls(self):
        files = {
            "src/main.ts": textwrap.dedent("""\
                import { createApp } from 'vue'
                import App from './App.vue'

                const app = createApp(App)
                app.mount('#app')
                """),
            "src/App.vue": "<template><div /></template>\n",
        }
        graph = parse_vue_code(files, "src/main.ts")
        call = graph.get("src/main.ts::setup_call_5")
        assert call.kind == NodeKind.CALL_EXPRESSION
        assert call.label == "mount()"
        assert call.dependencies == ["src/main.ts::app"]
        assert graph.get("src/main.ts::app").dependencies == ["src/App.vue::default"]
        assert graph.get("src/App.vue").dependencies == [
            "src/App.vue::TEMPLATE_ROOT",
            "src/App.vue::default",
        ]

    def test_paths_are_normalized(self):
        files = {".\\src\\main.ts": "export const a = 1\n"}
        graph = ProjectParser(files).parse_project("./src/main.ts")
        assert graph.entry_file == "src/main.ts"
        assert graph.ids() == ["src/main.ts", "src/main.ts::a"]

    def test_opaque_files_become_bare_modules(self):
        files = {
            "src/main.ts": "import notes from './notes.vue'\nexport const n = notes\n",
            "src/notes.vue": "just text\n",
        }
        graph = parse_vue_code(files, "src/main.ts")
        notes = graph.get("src/notes.vue")
        assert notes.kind == NodeKind.MODULE
        assert notes.dependencies == []
        assert graph.get("src/main.ts::n").dependencies == ["src/notes.vue"]

    def test_repeated_parses_are_independent(self):
        first = parse_vue_code(PROJECT, APP)
        second = parse_vue_code(PROJECT, APP)
        assert first.ids() == second.ids()
        assert first.get(APP) is not second.get(APP)


class TestScopes:
    def test_function_locals_shadow_imports(self):
        files = _dedent_all(
            {
                "src/main.ts": """\
                    import { users } from './store'

                    export function useA() {
                      const users = fetch('/x')
                      return users
                    }
                    export const count = users.length
                    """,
                "src/store.ts": "export const users = []\n",
            }
        )
        graph = parse_vue_code(files, "src/main.ts")
        use_a = graph.get("src/main.ts::useA")
        assert [(r.name, r.defining_node_id) for r in use_a.local_references] == [
            ("users", "src/main.ts::users")
        ]
        assert use_a.dependencies == ["src/main.ts::users"]
        assert graph.get("src/main.ts::count").dependencies == ["src/store.ts::users"]

    def test_parameters_are_not_dependencies(self):
        files = {
            "src/main.ts": "import { item } from './item'\nexport const label = (item) => item.name\n",
            "src/item.ts": "export const item = { name: 'x' }\n",
        }
        graph = parse_vue_code(files, "src/main.ts")
        assert graph.get("src/main.ts::label").dependencies == []


class TestExports:
    def test_module_summarizes_exports(self, graph):
        refs = graph.get(USE_USERS).local_references
        assert [(r.name, r.defining_node_id, r.summary) for r in refs] == [
            ("useUsers", f"{USE_USERS}::useUsers", "export function useUsers(...) { ... }")
        ]
        assert refs[0].kind == NodeKind.HOOK
        assert graph.get(APP).local_references is None

    def test_export_clause_and_renames(self):
        files = {"src/main.ts": "const a = 1\nconst b = () => a\nexport { a, b as bee }\n"}
        graph = parse_vue_code(files, "src/main.ts")
        refs = graph.get("src/main.ts").local_references
        assert [(r.name, r.summary) for r in refs] == [
            ("a", "export const a = ..."),
            ("bee", "export function b(...) { ... }"),
        ]

    def test_component_default_node(self, graph):
        default = graph.get(f"{USER_LIST}::default")
        assert default.kind == NodeKind.FUNCTION
        assert default.label == "UserList.vue"
        assert default.code_snippet == ""
        assert default.dependencies == [f"{USER_LIST}::TEMPLATE_ROOT"]
        assert graph.get(USER_LIST).dependencies[-1] == f"{USER_LIST}::default"

    def test_default_import_follows_named_default(self):
        files = _dedent_all(
            {
                "src/main.ts": """\
                    import helper from './helper'
                    export const value = helper(1)
                    """,
                "src/helper.ts": """\
                    function helper(n: number) {
                      return n + 1
                    }
                    export default helper
                    """,
            }
        )
        graph = parse_vue_code(files, "src/main.ts")
        assert graph.get("src/main.ts::value").dependencies == ["src/helper.ts::default"]
        assert graph.get("src/helper.ts::default").dependencies == ["src/helper.ts::helper"]
        refs = graph.get("src/helper.ts").local_references
        assert [(r.name, r.summary) for r in refs] == [
            ("default", "export default function helper(...) { ... }")
        ]

    def test_anonymous_default_export_is_reused(self):
        files = {
            "src/main.ts": "import { default as make } from './make'\nexport const made = make()\n",
            "src/make.ts": "export default function () {\n  return 1\n}\n",
        }
        graph = parse_vue_code(files, "src/main.ts")
        assert graph.nodes_in_file("src/make.ts")[1].id == "src/make.ts::default"
        assert len(graph.nodes_in_file("src/make.ts")) == 2
        assert graph.get("src/main.ts::made").dependencies == ["src/make.ts::default"]

    def test_files_without_default_bind_to_module(self):
        files = {
            "src/main.ts": "import util from './util'\nexport const u = util\n",
            "src/util.ts": "export const one = 1\n",
        }
        graph = parse_vue_code(files, "src/main.ts")
        assert graph.get("src/util.ts::default") is None
        assert graph.get("src/main.ts::u").dependencies == ["src/util.ts"]


JSX_PROJECT = _dedent_all(
    {
        "src/App.tsx": """\
            import { useState } from 'react'
            import UserCard from './UserCard'

            function App() {
              const [users, setUsers] = useState([])
              return (
                <ul>
                  {users.map(u => <UserCard user={u} />)}
                </ul>
              )
            }

            export default App
            """,
        "src/UserCard.tsx": """\
            function UserCard({ user }) {
              return <li className="card">{user}</li>
            }

            export default UserCard
            """,
    }
)


class TestJsxViews:
    @pytest.fixture
    def jsx_graph(self):
        return parse_vue_code(JSX_PROJECT, "src/App.tsx")

    def test_view_node(self, jsx_graph):
        view = jsx_graph.get("src/App.tsx::JSX_ROOT")
        assert view.kind == NodeKind.TEMPLATE
        assert view.label == "App.tsx (View)"
        assert view.start_line == 7
        assert view.code_snippet.splitlines()[0] == "    <ul>"
        assert view.code_snippet.splitlines()[-1] == "    </ul>"
        assert view.dependencies == ["src/App.tsx::users", "src/UserCard.tsx::default"]
        assert [r.name for r in view.local_references] == ["users", "UserCard"]

    def test_view_token_ranges_point_into_snippet(self, jsx_graph):
        view = jsx_graph.get("src/App.tsx::JSX_ROOT")
        encoded = view.code_snippet.encode("utf8")
        assert [t.text for t in view.token_ranges] == ["users", "UserCard"]
        for token in view.token_ranges:
            assert encoded[token.start : token.end].decode("utf8") == token.text

    def test_parameters_inside_markup_are_not_references(self, jsx_graph):
        card_view = jsx_graph.get("src/UserCard.tsx::JSX_ROOT")
        assert card_view.start_line == 2
        assert card_view.dependencies == []

    def test_components_depend_on_their_view(self, jsx_graph):
        assert jsx_graph.get("src/App.tsx::App").dependencies[-1] == "src/App.tsx::JSX_ROOT"
        assert "src/UserCard.tsx::JSX_ROOT" in jsx_graph.get("src/UserCard.tsx::UserCard").dependencies

    def test_default_export_links_component_and_view(self, jsx_graph):
        assert jsx_graph.get("src/App.tsx::default").dependencies == [
            "src/App.tsx::App",
            "src/App.tsx::JSX_ROOT",
        ]
        assert jsx_graph.get("src/App.tsx").dependencies == [
            "src/UserCard.tsx",
            "src/App.tsx::App",
            "src/App.tsx::JSX_ROOT",
            "src/App.tsx::default",
        ]

    def test_plain_scripts_get_no_view(self, graph):
        assert graph.get(f"{USE_USERS}::JSX_ROOT") is None
