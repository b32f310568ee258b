import json
import logging
import os
import sys

from vuegraph.dependency_system.analysis.project_parser import ProjectParser
from vuegraph.dependency_system.core.exceptions import ProjectParseError
from vuegraph.dependency_system.utils.config_manager import ConfigManager

logger = logging.getLogger(__name__)

PROJECT_EXTENSIONS = (".vue", ".ts", ".tsx", ".js", ".jsx", ".mjs", ".mts")
SKIPPED_DIRS = {"node_modules", ".git", "dist", "build", ".nuxt", ".output", "coverage"}


def load_snapshot(root):
    """Reads every script/component file under ``root`` into a {posix relative path: text} map."""
    files = {}
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(d for d in dirnames if d not in SKIPPED_DIRS)
        for filename in sorted(filenames):
            if not filename.endswith(PROJECT_EXTENSIONS):
                continue
            full_path = os.path.join(dirpath, filename)
            rel_path = os.path.relpath(full_path, root).replace(os.sep, "/")
            try:
                with open(full_path, "r", encoding="utf-8") as f:
                    files[rel_path] = f.read()
            except (OSError, UnicodeDecodeError) as e:
                logger.warning(f"Skipping unreadable file {full_path}: {e}")
    return files


def main(args):
    config = ConfigManager(args.config) if args.config else ConfigManager()
    if args.no_tokens:
        config.config.setdefault("analysis", {})["annotate_token_ranges"] = False

    files = load_snapshot(args.root)
    logger.info(f"Loaded {len(files)} files from {args.root}")
    try:
        graph = ProjectParser(files, config).parse_project(args.entry)
    except ProjectParseError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1

    payload = json.dumps(graph.to_dict(), indent=2)
    if args.output:
        with open(args.output, "w", encoding="utf-8") as f:
            f.write(payload)
        print(f"Wrote {len(graph)} nodes to {args.output}")
    else:
        print(payload)
    return 0
