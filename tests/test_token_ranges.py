"""Tests for snippet token highlighting."""

from vuegraph.dependency_system.analysis.token_ranges import extract_token_ranges
from vuegraph.dependency_system.core.graph_types import TokenKind

DEPS = ["src/a.ts::cart", "src/a.ts::price"]


def _summary(ranges):
    return [(t.text, t.kind) for t in ranges]


class TestIdentifiers:
    def test_self_primitive_and_dependencies(self):
        ranges = extract_token_ranges(
            "const total = computed(() => cart.items.length + price)", "src/a.ts::total", DEPS
        )
        assert _summary(ranges) == [
            ("total", TokenKind.SELF),
            ("computed", TokenKind.PRIMITIVE),
            ("cart", TokenKind.DEPENDENCY),
            ("price", TokenKind.DEPENDENCY),
        ]
        assert ranges[2].token_ids == ["src/a.ts::cart"]
        assert ranges[0].token_ids == []

    def test_object_keys_excluded(self):
        snippet = "const opts = { price: price, cart }"
        ranges = extract_token_ranges(snippet, "src/a.ts::opts", DEPS)
        assert [t.text for t in ranges] == ["opts", "price", "cart"]
        assert ranges[1].start == snippet.index(": price") + 2

    def test_unknown_names_skipped(self):
        ranges = extract_token_ranges("const x = y + z", "src/a.ts::x", DEPS)
        assert _summary(ranges) == [("x", TokenKind.SELF)]

    def test_import_specifiers_are_binding_sites(self):
        snippet = "import { ref, helper } from './helper'\nhelper(ref(1))"
        ranges = extract_token_ranges(snippet, "src/a.ts", ["src/helper.ts::helper"])
        assert _summary(ranges) == [
            ("'./helper'", TokenKind.IMPORT_SOURCE),
            ("helper", TokenKind.DEPENDENCY),
            ("ref", TokenKind.PRIMITIVE),
        ]
        assert ranges[1].start == snippet.index("\n") + 1


class TestStrings:
    def test_string_literal(self):
        ranges = extract_token_ranges("const k = 'abc'", "src/a.ts::k", [])
        assert _summary(ranges) == [("k", TokenKind.SELF), ("'abc'", TokenKind.STRING)]

    def test_template_string_parts(self):
        ranges = extract_token_ranges(
            "const msg = `Hello ${name}!`", "src/a.ts::msg", ["src/a.ts::name"]
        )
        assert _summary(ranges) == [
            ("msg", TokenKind.SELF),
            ("Hello ", TokenKind.STRING),
            ("name", TokenKind.DEPENDENCY),
            ("!", TokenKind.STRING),
        ]

    def test_re_export_source(self):
        ranges = extract_token_ranges("export { a } from './a'", "src/index.ts", [])
        assert _summary(ranges) == [("'./a'", TokenKind.IMPORT_SOURCE)]


class TestOrdering:
    def test_sorted_and_unique(self):
        snippet = "export function useCart(items) {\n  ...\n\n  return { count, total }\n}"
        ranges = extract_token_ranges(
            snippet, "src/a.ts::useCart", ["src/a.ts::count", "src/a.ts::total"]
        )
        starts = [t.start for t in ranges]
        assert starts == sorted(set(starts))
        assert ranges[0].text == "useCart"
        assert ranges[0].kind == TokenKind.SELF

    def test_template_snippets_are_skipped(self):
        assert extract_token_ranges("<template></template>", "a.vue::TEMPLATE_ROOT", [], is_template=True) == []

    def test_to_dict_omits_empty_token_ids(self):
        ranges = extract_token_ranges("const k = cart", "src/a.ts::k", DEPS)
        assert ranges[0].to_dict() == {"start": 6, "end": 7, "text": "k", "type": "self"}
        assert ranges[1].to_dict()["tokenIds"] == ["src/a.ts::cart"]
