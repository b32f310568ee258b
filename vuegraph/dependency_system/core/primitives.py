# core/primitives.py

"""
Static name tables used to classify declarations, function purity and highlighted tokens.

Kept free of tree-walking code so each table can be checked in isolation.
"""

import re
from typing import FrozenSet, Optional, Tuple

from vuegraph.dependency_system.core.graph_types import NodeKind

REACT_PRIMITIVES: FrozenSet[str] = frozenset(
    {
        "useState",
        "useEffect",
        "useMemo",
        "useCallback",
        "useRef",
        "useContext",
        "useReducer",
        "useLayoutEffect",
        "useImperativeHandle",
        "useDebugValue",
        "useDeferredValue",
        "useTransition",
        "useId",
        "useSyncExternalStore",
        "useInsertionEffect",
    }
)

VUE_PRIMITIVES: FrozenSet[str] = frozenset(
    {
        "ref",
        "computed",
        "reactive",
        "watch",
        "watchEffect",
        "onMounted",
        "onUnmounted",
        "onUpdated",
        "onBeforeMount",
        "onBeforeUnmount",
        "onBeforeUpdate",
        "provide",
        "inject",
        "toRefs",
        "storeToRefs",
        "defineProps",
        "defineEmits",
        "defineExpose",
        "withDefaults",
        "shallowRef",
        "triggerRef",
        "customRef",
        "shallowReactive",
        "toRef",
        "unref",
        "isRef",
        "isProxy",
        "isReactive",
        "isReadonly",
        "readonly",
    }
)

# Framework primitives are never bound to a project file when imported.
FRAMEWORK_PRIMITIVES: FrozenSet[str] = REACT_PRIMITIVES | VUE_PRIMITIVES

# --- Declaration kind tables ---
STATEFUL_PRIMITIVES: FrozenSet[str] = frozenset(
    {
        "ref",
        "reactive",
        "shallowRef",
        "shallowReactive",
        "customRef",
        "toRef",
        "toRefs",
        "useState",
        "useReducer",
        "useRef",
    }
)
DERIVED_PRIMITIVES: FrozenSet[str] = frozenset(
    {"computed", "useMemo", "useCallback", "readonly"}
)
PROP_PRIMITIVES: FrozenSet[str] = frozenset({"defineProps", "withDefaults"})
STORE_PRIMITIVES: FrozenSet[str] = frozenset({"storeToRefs"})

HOOK_NAME_PATTERN = re.compile(r"^use[A-Z]")
STORE_NAME_PATTERN = re.compile(r"^use\w*Store$")

# --- Purity tables ---
EFFECTFUL_PRIMITIVES: FrozenSet[str] = REACT_PRIMITIVES | frozenset(
    {
        # jotai
        "useAtom",
        "useAtomValue",
        "useSetAtom",
        # vue reactivity and lifecycle
        "ref",
        "reactive",
        "shallowRef",
        "shallowReactive",
        "customRef",
        "computed",
        "watch",
        "watchEffect",
        "onMounted",
        "onUnmounted",
        "onUpdated",
        "onBeforeMount",
        "onBeforeUnmount",
        "onBeforeUpdate",
        "provide",
        "inject",
        "triggerRef",
    }
)

SIDE_EFFECT_PATTERNS: Tuple[str, ...] = (
    # I/O
    "console",
    "alert",
    "confirm",
    "prompt",
    # browser APIs
    "localStorage",
    "sessionStorage",
    "document",
    "window",
    "navigator",
    # network
    "fetch",
    "axios",
    "XMLHttpRequest",
    # non-deterministic
    "Math.random",
    "Date.now",
    "performance.now",
    # DOM
    "getElementById",
    "querySelector",
    "querySelectorAll",
    "createElement",
    "appendChild",
    "removeChild",
)

PURE_METHODS: Tuple[str, ...] = (
    # array (non-mutating)
    "includes",
    "indexOf",
    "lastIndexOf",
    "find",
    "findIndex",
    "filter",
    "map",
    "reduce",
    "reduceRight",
    "some",
    "every",
    "slice",
    "concat",
    "join",
    "flat",
    "flatMap",
    # string
    "charAt",
    "charCodeAt",
    "endsWith",
    "match",
    "padEnd",
    "padStart",
    "repeat",
    "replace",
    "replaceAll",
    "search",
    "split",
    "startsWith",
    "substring",
    "toLowerCase",
    "toUpperCase",
    "trim",
    "trimEnd",
    "trimStart",
    # object
    "hasOwnProperty",
    "toString",
    "valueOf",
    # math (random excluded)
    "Math.abs",
    "Math.ceil",
    "Math.floor",
    "Math.round",
    "Math.max",
    "Math.min",
    "Math.sqrt",
    "Math.pow",
)


def is_primitive(name: str) -> bool:
    return name in FRAMEWORK_PRIMITIVES


def is_hook_name(name: str) -> bool:
    return bool(HOOK_NAME_PATTERN.match(name))


def is_pure_method(name: str) -> bool:
    return any(name.endswith(method) for method in PURE_METHODS)


def is_effectful_call(name: str) -> bool:
    return name in EFFECTFUL_PRIMITIVES or is_hook_name(name)


def matches_side_effect_pattern(name: str) -> bool:
    return any(pattern in name for pattern in SIDE_EFFECT_PATTERNS)


def kind_for_callee(callee: Optional[str]) -> Optional[NodeKind]:
    """
    Maps the name of an initializer's callee to a declaration kind.
    Returns None when the callee matches no table.
    """
    if not callee:
        return None
    # Member callees (e.g. ``Vue.ref``) classify by their final segment.
    name = callee.rsplit(".", 1)[-1]
    if name in PROP_PRIMITIVES:
        return NodeKind.PROP
    if name in STORE_PRIMITIVES or STORE_NAME_PATTERN.match(name):
        return NodeKind.STORE_BINDING
    if name in STATEFUL_PRIMITIVES:
        return NodeKind.STATEFUL_BINDING
    if name in DERIVED_PRIMITIVES:
        return NodeKind.DERIVED_BINDING
    if is_hook_name(name):
        return NodeKind.HOOK
    return None
