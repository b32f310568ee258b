import argparse
import logging
import sys


def build_graph(args):
    from vuegraph.cli.commands import graph
    return graph.main(args)


def resolve_specifier(args):
    from vuegraph.cli.commands import resolve
    return resolve.main(args)


def _log_level(level_name, config_path=None):
    """Explicit --log-level first, then the logging.level of the selected config file."""
    from vuegraph.dependency_system.utils.config_manager import ConfigManager

    level_name = level_name or ConfigManager(config_path).get_log_level()
    return getattr(logging, level_name.upper(), logging.WARNING)


def _configure_logging(level_name, config_path=None):
    logging.basicConfig(
        level=_log_level(level_name, config_path),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="vuegraph - static dependency graphs for Vue/TypeScript projects"
    )
    parser.add_argument("--log-level", default=None, help="Logging level (DEBUG, INFO, WARNING, ...)")
    parser.add_argument("--config", default=None, help="Path to a vuegraph.config.json file")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # graph
    parser_graph = subparsers.add_parser("graph", help="Build the dependency graph of a project directory")
    parser_graph.add_argument("root", help="Project root directory")
    parser_graph.add_argument("--entry", required=True, help="Entry file, relative to the root")
    parser_graph.add_argument("--output", "-o", default=None, help="Write JSON here instead of stdout")
    parser_graph.add_argument("--no-tokens", action="store_true", help="Skip token range annotation")
    parser_graph.set_defaults(func=build_graph)

    # resolve
    parser_resolve = subparsers.add_parser("resolve", help="Show how an import specifier resolves")
    parser_resolve.add_argument("current_file", help="File containing the import, relative to the root")
    parser_resolve.add_argument("specifier", help="Import specifier as written")
    parser_resolve.add_argument("--root", default=".", help="Project root directory")
    parser_resolve.set_defaults(func=resolve_specifier)

    args = parser.parse_args(argv)
    _configure_logging(args.log_level, args.config)
    return args.func(args) or 0


if __name__ == "__main__":
    sys.exit(main())
