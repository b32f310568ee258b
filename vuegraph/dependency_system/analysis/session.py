# analysis/session.py

"""
Caller-side helpers around the project parser: snapshot memoization and a
session that keeps the last good graph when a newer snapshot fails to parse.
"""

import logging
from typing import Mapping, Optional

from vuegraph.dependency_system.analysis.project_parser import ProjectParser
from vuegraph.dependency_system.core.exceptions import ProjectParseError
from vuegraph.dependency_system.core.graph_types import GraphData
from vuegraph.dependency_system.utils.cache_manager import (
    cache_manager,
    cached,
    get_cache_stats,
    snapshot_key,
)
from vuegraph.dependency_system.utils.config_manager import ConfigManager

logger = logging.getLogger(__name__)

GRAPH_CACHE = "project_graphs"


def _graph_cache_key(
    files: Mapping[str, str], entry_file: str, config: Optional[ConfigManager] = None
) -> str:
    settings = config.config if config is not None else None
    return snapshot_key(files, entry_file, settings)


@cached(GRAPH_CACHE, key_func=_graph_cache_key)
def parse_project_cached(
    files: Mapping[str, str], entry_file: str, config: Optional[ConfigManager] = None
) -> GraphData:
    """Memoized ``parse_project`` for identical snapshots. Failures are not cached."""
    return ProjectParser(files, config).parse_project(entry_file)


class ProjectGraphSession:
    """
    Holds the last successfully produced graph.

    ``update`` adopts a new graph only when the pass succeeds; on failure the
    previous graph stays current and the error message is kept in ``last_error``.
    """

    def __init__(self, config: Optional[ConfigManager] = None, use_cache: bool = True):
        self.config = config or ConfigManager()
        self.use_cache = use_cache
        self.graph: Optional[GraphData] = None
        self.last_error: Optional[str] = None
        if use_cache:
            cache_manager.configure(
                GRAPH_CACHE,
                ttl=int(self.config.get_cache_setting("ttl", 600)),
                max_size=int(self.config.get_cache_setting("max_size", 64)),
            )

    @property
    def has_error(self) -> bool:
        return self.last_error is not None

    def update(self, files: Mapping[str, str], entry_file: str) -> Optional[GraphData]:
        try:
            if self.use_cache:
                graph = parse_project_cached(files, entry_file, self.config)
            else:
                graph = ProjectParser(files, self.config).parse_project(entry_file)
        except ProjectParseError as e:
            self.last_error = e.message
            logger.warning(f"Keeping previous graph: {e.message}")
            return self.graph
        self.graph = graph
        self.last_error = None
        if self.use_cache:
            stats = get_cache_stats(GRAPH_CACHE)
            logger.debug(
                f"Graph cache: {stats['total_items']}/{stats['max_size']} entries, "
                f"hit rate {stats['hit_rate']:.1f}%"
            )
        return graph
