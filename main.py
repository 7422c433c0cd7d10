"""
Entry point for the WordPress import tool.

Two commands are available::

    python main.py preview export.xml
    python main.py import export.xml --user-id 42 [--dry-run] [--skip media comments]

``import`` deletes the export file once the run is over, exactly like an
import triggered from the admin API.
"""

import argparse
import json
import sys

from wp_importer.config import CONFIG_FILE, load_config
from wp_importer.import_tool import PHASES
from wp_importer.status import ImportStatusRegistry
from wp_importer.utils.errors import WPImportError, log_message


def parse_args(argv=None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Import a WordPress export (WXR) into the content store")
    p.add_argument("--config", default=CONFIG_FILE, help="Path to the JSON configuration file")
    sub = p.add_subparsers(dest="command", required=True)

    preview = sub.add_parser("preview", help="Count the entities of an export file")
    preview.add_argument("file")

    run = sub.add_parser("import", help="Import an export file and wait for the result")
    run.add_argument("file")
    run.add_argument("--user-id", required=True, help="Target id of the operator; fallback author")
    run.add_argument("--dry-run", action="store_true", help="Create entities in memory only")
    run.add_argument("--skip", nargs="*", default=[], choices=PHASES, help="Phases to leave out")
    return p.parse_args(argv)


def main(argv=None) -> int:
    """
    Main function to run the WordPress import tool.
    """
    args = parse_args(argv)
    config = load_config(config_file=args.config)
    if getattr(args, "dry_run", False):
        config["import"]["dry_run"] = True

    registry = ImportStatusRegistry(config)
    try:
        if args.command == "preview":
            print(json.dumps(registry.preview(args.file), indent=2, ensure_ascii=False))
            return 0

        options = {f"import_{phase}": phase not in args.skip for phase in PHASES}
        registry.begin(args.file, args.user_id, options)
        snapshot = registry.wait()
        print(json.dumps(snapshot, indent=2, ensure_ascii=False))
        return 0 if snapshot["status"] == "success" else 1
    except WPImportError as e:
        log_message(str(e), level="ERROR")
        return 2
    finally:
        registry.shutdown()


if __name__ == "__main__":
    sys.exit(main())
