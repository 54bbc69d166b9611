"""Show a class routine from a JSON export as a table or JSON.

Standalone CLI script around the sync engine. Loads the export into an
in-memory source, subscribes like a live viewer would, selects the class
and prints the merged weekly routine.

Run with: python scripts/show_routine.py --data data/routines.json --list
Table:    python scripts/show_routine.py --data data/routines.json --class 10A --table
JSON:     python scripts/show_routine.py --data data/routines.json --class 10A

Exit codes:
  0 = success (JSON or table on stdout)
  1 = error (message on stderr)
"""

import argparse
import json
import os
import sys

from dotenv import load_dotenv

load_dotenv()

# Add project root to path for src imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from src.routine_sync.config import get_config  # noqa: E402
from src.routine_sync.controller import SelectionController  # noqa: E402
from src.routine_sync.grid import build_grid, format_grid  # noqa: E402
from src.routine_sync.logging import setup_logging  # noqa: E402
from src.routine_sync.sources import load_fixture  # noqa: E402


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse CLI arguments using argparse."""
    parser = argparse.ArgumentParser(
        description="Show a weekly class routine from a JSON export.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--data",
        type=str,
        required=True,
        help="Path to the JSON export ({\"routines\": {...}}).",
    )

    mode_group = parser.add_mutually_exclusive_group()
    mode_group.add_argument(
        "--list",
        action="store_true",
        help="List the available classes and exit.",
    )
    mode_group.add_argument(
        "--class",
        dest="class_id",
        type=str,
        default=None,
        help="Class id to show (default: first class when auto-select is on).",
    )

    parser.add_argument(
        "--table",
        action="store_true",
        help="Output a human-readable day x period table instead of JSON.",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    config = get_config()
    setup_logging(json_output=config.log_json, log_level=config.log_level)

    source = load_fixture(args.data, root=config.entity_collection)

    with SelectionController.from_source(source, config) as controller:
        if args.list:
            for entity in controller.entities:
                print(f"{entity.id}\t{entity.name}")
            return 0

        if args.class_id is not None:
            controller.select(args.class_id)

        view = controller.view_state()
        if view.selection is None:
            print("No class selected. Use --class or --list.", file=sys.stderr)
            return 1

        if args.table:
            print(view.title)
            print(format_grid(build_grid(view.schedule)))
        else:
            output = {
                "class": view.selection.entity_id,
                "title": view.title,
                "loading": view.loading,
                "schedule": {
                    day: [p.model_dump(mode="json") for p in periods]
                    for day, periods in view.schedule.items()
                },
            }
            print(json.dumps(output, indent=2))
    return 0


if __name__ == "__main__":
    try:
        sys.exit(main())
    except Exception as e:
        print(f"ERROR: {e}", file=sys.stderr)
        sys.exit(1)
