"""Command-line interface for gridbuilder."""

import argparse
import logging
import sys
from dataclasses import replace
from pathlib import Path

from gridbuilder.audit import audit_grid
from gridbuilder.compatibility import CompatibilityOracle
from gridbuilder.engine import build_grid
from gridbuilder.exceptions import GridBuilderException
from gridbuilder.history import invalidate_index_cache, load_or_build_index
from gridbuilder.ledger import record_houses, refresh_months_apart
from gridbuilder.models import Controls, House
from gridbuilder.output import format_audit, format_grid_csv, format_guests_csv, format_results
from gridbuilder.parser import (
    create_controls_template,
    parse_controls_yaml,
    parse_grid_csv,
    parse_guests_csv,
    parse_hosts_csv,
    parse_ledger_csv,
    parse_never_match,
    write_ledger_csv,
)

DEFAULT_LEDGER = Path("connections.csv")
DEFAULT_CACHE = Path(".gridbuilder-cache.json")


def _load_controls(args: argparse.Namespace) -> Controls | None:
    if args.controls is None or not args.controls.exists():
        template_path = args.output_template or Path("controls_template.yaml")
        create_controls_template(template_path)
        missing = f"Controls file not found: {args.controls}" if args.controls else "No controls file provided"
        print(f"Error: {missing}", file=sys.stderr)
        print(f"Created template at: {template_path}. Edit it and run again.", file=sys.stderr)
        return None
    return parse_controls_yaml(args.controls)


def _require(*paths: Path | None) -> bool:
    for path in paths:
        if path is not None and not path.exists():
            print(f"Error: File not found: {path}", file=sys.stderr)
            return False
    return True


def _grid_houses(grid_path: Path) -> list[House]:
    houses: list[House] = []
    for row in parse_grid_csv(grid_path):
        houses.append(
            House(
                house_id=row.house_id or len(houses) + 1,
                capacity=row.capacity or 0,
                members=row.members,
                occupied_seats=row.occupied_seats or 0,
            )
        )
    return houses


def cmd_build(args: argparse.Namespace) -> int:
    if not _require(args.hosts_csv, args.guests_csv, args.grid, args.never_match):
        return 1
    controls = _load_controls(args)
    if controls is None:
        return 1
    if args.seed is not None:
        controls = replace(controls, seed=args.seed)
    if args.strategy is not None:
        controls = replace(controls, strategy=args.strategy)

    hosts = parse_hosts_csv(args.hosts_csv)
    guests = parse_guests_csv(args.guests_csv)
    grid_rows = parse_grid_csv(args.grid) if args.grid else None
    never_match = parse_never_match(args.never_match) if args.never_match else set()
    history = load_or_build_index(args.ledger, args.cache)
    print(f"Loaded {len(hosts)} hosts, {len(guests)} guests and {len(history)} past pairings")

    assignment = build_grid(hosts, guests, never_match, history, controls, grid_rows)

    print()
    print(format_results(assignment))

    args.output_grid.write_text(format_grid_csv(assignment), encoding="utf-8")
    print(f"\nGrid written to {args.output_grid}")
    if args.output_guests:
        supplied = {g.code: g.prior_connections for g in guests if g.prior_connections is not None}
        args.output_guests.write_text(format_guests_csv(assignment, supplied), encoding="utf-8")
        print(f"Guest seated flags written to {args.output_guests}")
    return 0


def cmd_audit(args: argparse.Namespace) -> int:
    if not _require(args.grid_csv, args.guests, args.never_match):
        return 1
    controls = _load_controls(args)
    if controls is None:
        return 1

    houses = _grid_houses(args.grid_csv)
    guests = parse_guests_csv(args.guests) if args.guests else []
    never_match = parse_never_match(args.never_match) if args.never_match else set()
    history = load_or_build_index(args.ledger, args.cache)
    oracle = CompatibilityOracle(history, never_match, controls.time_lapse_threshold)

    report = audit_grid(houses, guests, oracle)
    print(format_audit(report))
    return 2 if report.never_match_violations else 0


def cmd_prep_connections(args: argparse.Namespace) -> int:
    if not _require(args.ledger):
        return 1
    controls = _load_controls(args)
    if controls is None:
        return 1

    entries = parse_ledger_csv(args.ledger)
    refresh_months_apart(entries, controls.next_dinner_date)
    write_ledger_csv(args.ledger, entries)
    invalidate_index_cache(args.cache)
    print(f"Updated months apart for {len(entries)} ledger entries (dinner date {controls.next_dinner_date})")
    return 0


def cmd_update_connections(args: argparse.Namespace) -> int:
    if not _require(args.grid_csv):
        return 1
    controls = _load_controls(args)
    if controls is None:
        return 1

    entries = parse_ledger_csv(args.ledger)
    recorded = record_houses(entries, _grid_houses(args.grid_csv), controls.next_dinner_date)
    refresh_months_apart(entries, controls.next_dinner_date)
    write_ledger_csv(args.ledger, entries)
    invalidate_index_cache(args.cache)
    print(f"Recorded {recorded} pairs from {args.grid_csv} ({len(entries)} ledger entries)")
    return 0


def _add_common(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--controls",
        type=Path,
        help="Path to the control parameters YAML file",
    )
    parser.add_argument(
        "--output-template",
        type=Path,
        help="Path for the controls template (default: controls_template.yaml)",
    )
    parser.add_argument(
        "--ledger",
        type=Path,
        default=DEFAULT_LEDGER,
        help=f"Path to the connections ledger CSV (default: {DEFAULT_LEDGER})",
    )
    parser.add_argument(
        "--cache",
        type=Path,
        default=DEFAULT_CACHE,
        help=f"Path to the pair history cache (default: {DEFAULT_CACHE})",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Show progress (-v) or every move (-vv)",
    )


def main(argv: list[str] | None = None) -> int:
    """Main entry point for gridbuilder CLI."""
    parser = argparse.ArgumentParser(
        description="Seat dinner guests in hosts' houses, keeping apart people who met recently.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""\
Examples:
  gridbuilder build hosts.csv guests.csv --controls controls.yaml --never-match never.csv
  gridbuilder build hosts.csv guests.csv --controls controls.yaml --grid grid.csv --strategy restart --seed 7
  gridbuilder audit grid.csv --guests guests.csv --controls controls.yaml
  gridbuilder prep-connections --controls controls.yaml
  gridbuilder update-connections grid.csv --controls controls.yaml
""",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    build = subparsers.add_parser("build", help="Build the seating grid for the next dinner")
    build.add_argument("hosts_csv", type=Path, help="Path to the hosts CSV file")
    build.add_argument("guests_csv", type=Path, help="Path to the guests CSV file")
    build.add_argument("--grid", type=Path, help="Grid CSV carried over from a previous run")
    build.add_argument("--never-match", type=Path, help="Never-match list (one codeA-codeB per row)")
    build.add_argument(
        "--output-grid",
        type=Path,
        default=Path("grid_out.csv"),
        help="Where to write the finished grid (default: grid_out.csv)",
    )
    build.add_argument("--output-guests", type=Path, help="Where to write guests with updated seated flags")
    build.add_argument("--strategy", choices=["scored", "restart"], help="Override the placement strategy")
    build.add_argument("--seed", type=int, help="Seed for the restart shuffle")
    _add_common(build)
    build.set_defaults(func=cmd_build)

    audit = subparsers.add_parser("audit", help="Audit a grid against the history and never-match list")
    audit.add_argument("grid_csv", type=Path, help="Path to the grid CSV file")
    audit.add_argument("--guests", type=Path, help="Guests CSV, to list unseated members")
    audit.add_argument("--never-match", type=Path, help="Never-match list (one codeA-codeB per row)")
    _add_common(audit)
    audit.set_defaults(func=cmd_audit)

    prep = subparsers.add_parser("prep-connections", help="Recompute months apart before building a grid")
    _add_common(prep)
    prep.set_defaults(func=cmd_prep_connections)

    update = subparsers.add_parser("update-connections", help="Record a dinner's grid in the ledger")
    update.add_argument("grid_csv", type=Path, help="Path to the final grid CSV file")
    _add_common(update)
    update.set_defaults(func=cmd_update_connections)

    args = parser.parse_args(argv)

    level = {0: logging.WARNING, 1: logging.INFO}.get(args.verbose, logging.DEBUG)
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")

    try:
        return args.func(args)
    except GridBuilderException as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
