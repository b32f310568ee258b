import textwrap

import pytest

from vuegraph.dependency_system.analysis.ts_utils import ScriptSource
from vuegraph.dependency_system.utils.cache_manager import clear_all_caches
from vuegraph.dependency_system.utils.config_manager import ConfigManager


def make_source(code, file_path="src/module.ts", lang="ts"):
    """Parses dedented ``code`` as a whole-file script section."""
    file_bytes = textwrap.dedent(code).encode("utf8")
    return ScriptSource.parse(file_path, file_bytes, 0, len(file_bytes), lang)


def first_function(src):
    """First function-like node in the tree, in source order."""
    from vuegraph.dependency_system.analysis.ts_utils import is_function_node, walk

    for node in walk(src.root):
        if is_function_node(node):
            return node
    raise AssertionError("no function in snippet")


@pytest.fixture
def default_config():
    return ConfigManager.from_dict({})


@pytest.fixture(autouse=True)
def _isolated_caches():
    clear_all_caches()
    yield
    clear_all_caches()
