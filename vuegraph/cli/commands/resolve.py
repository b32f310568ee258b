from vuegraph.cli.commands.graph import load_snapshot
from vuegraph.dependency_system.utils.config_manager import ConfigManager
from vuegraph.dependency_system.utils.path_utils import find_file_in_project, resolve_path


def main(args):
    config = ConfigManager(args.config) if args.config else ConfigManager()
    resolved = resolve_path(args.current_file, args.specifier, config.get_path_aliases())
    print(f"Resolved: {resolved}")

    files = load_snapshot(args.root)
    found = find_file_in_project(files, resolved, config.get_resolve_suffixes())
    if found is None:
        print("Project file: not found")
        return 1
    print(f"Project file: {found}")
    return 0
