"""CSV and YAML parsing for gridbuilder."""

import csv
import datetime
from pathlib import Path

import yaml

from gridbuilder.exceptions import InputValidationError, LedgerError
from gridbuilder.ledger import LedgerEntry
from gridbuilder.models import Attendee, Controls, GridRow, PairKey, pair_key, split_pair

HOST_COLUMNS = ("code", "count", "seats")
GUEST_COLUMNS = ("code", "count", "seated")
GRID_COLUMNS = ("house", "seats", "seated", "host", "guest_1", "guest_2", "guest_3", "guest_4", "guest_5")
LEDGER_COLUMNS = ("pair", "member_1", "member_2", "year", "date", "host_role", "months_apart")

SEATED_YES = "Yes"
SEATED_NO = "No"

BOOLEAN_CONTROLS = (
    "throttle_singles",
    "sort_hosts",
    "sort_guests",
    "clear_seated",
    "clear_grid",
    "unseated_options",
)


def _open_dict_reader(csv_path: Path, required: tuple[str, ...]):
    f = csv_path.open(newline="", encoding="utf-8")
    reader = csv.DictReader(f)
    fieldnames = [name.strip().lower() for name in reader.fieldnames or []]
    reader.fieldnames = fieldnames
    missing = [c for c in required if c not in fieldnames]
    if missing:
        f.close()
        raise InputValidationError(f"{csv_path.name}: missing columns: {', '.join(missing)}")
    return f, reader


def _int(value: str | None, column: str, line: int, path: Path, default: int | None = None) -> int | None:
    value = (value or "").strip()
    if not value:
        if default is None:
            raise InputValidationError(f"{path.name} line {line}: {column} is required")
        return default
    try:
        return int(float(value))
    except ValueError:
        raise InputValidationError(f"{path.name} line {line}: {column} is not a number: {value!r}") from None


def _float(value: str | None, default: float = 0.0) -> float:
    value = (value or "").strip()
    try:
        return float(value) if value else default
    except ValueError:
        return default


def parse_hosts_csv(csv_path: Path) -> list[Attendee]:
    """
    Parse the hosts CSV file.

    Columns: code, count (seats the host's own party takes), seats, and
    optionally order and connections. Rows without a code are skipped.
    """
    hosts: list[Attendee] = []
    f, reader = _open_dict_reader(csv_path, HOST_COLUMNS)
    with f:
        for line, row in enumerate(reader, start=2):
            code = (row.get("code") or "").strip()
            if not code:
                continue
            occupancy = _int(row.get("count"), "count", line, csv_path)
            connections = (row.get("connections") or "").strip()
            hosts.append(
                Attendee(
                    code=code,
                    party_size=occupancy,
                    role="host",
                    seated=True,
                    seat_capacity=_int(row.get("seats"), "seats", line, csv_path),
                    self_occupancy=occupancy,
                    prior_connections=int(connections) if connections.isdigit() else None,
                    order=_float(row.get("order")),
                )
            )
    return hosts


def parse_guests_csv(csv_path: Path) -> list[Attendee]:
    """
    Parse the guests CSV file.

    Columns: code, count (party size), seated (Yes/No), and optionally
    order and connections. A blank seated cell means not seated.
    """
    guests: list[Attendee] = []
    f, reader = _open_dict_reader(csv_path, GUEST_COLUMNS)
    with f:
        for line, row in enumerate(reader, start=2):
            code = (row.get("code") or "").strip()
            if not code:
                continue
            seated = (row.get("seated") or "").strip().lower()
            if seated not in ("", "yes", "no"):
                raise InputValidationError(f"{csv_path.name} line {line}: seated must be Yes or No")
            connections = (row.get("connections") or "").strip()
            guests.append(
                Attendee(
                    code=code,
                    party_size=_int(row.get("count"), "count", line, csv_path),
                    seated=seated == "yes",
                    prior_connections=int(connections) if connections.isdigit() else None,
                    order=_float(row.get("order")),
                )
            )
    return guests


def parse_grid_csv(csv_path: Path) -> list[GridRow]:
    """Parse a seating grid carried over from a previous run. Empty rows are skipped."""
    rows: list[GridRow] = []
    f, reader = _open_dict_reader(csv_path, GRID_COLUMNS)
    with f:
        for line, row in enumerate(reader, start=2):
            members = [(row.get(c) or "").strip() for c in GRID_COLUMNS[3:]]
            if not members[0]:
                continue
            rows.append(
                GridRow(
                    house_id=_int(row.get("house"), "house", line, csv_path, default=0) or None,
                    capacity=_int(row.get("seats"), "seats", line, csv_path),
                    occupied_seats=_int(row.get("seated"), "seated", line, csv_path, default=0) or None,
                    members=[m for m in members if m],
                )
            )
    return rows


def parse_never_match(path: Path) -> set[PairKey]:
    """
    Parse the never-match list: one "codeA-codeB" per row after a header row.

    Each entry is stored in one direction; the returned keys are symmetric.
    """
    pairs: set[PairKey] = set()
    with path.open(newline="", encoding="utf-8") as f:
        reader = csv.reader(f)
        next(reader, None)
        for line, row in enumerate(reader, start=2):
            if not row or not row[0].strip():
                continue
            try:
                pairs.add(pair_key(*split_pair(row[0])))
            except ValueError as e:
                raise InputValidationError(f"{path.name} line {line}: {e}") from None
    return pairs


def _parse_date(value) -> datetime.date:
    if isinstance(value, datetime.datetime):
        return value.date()
    if isinstance(value, datetime.date):
        return value
    return datetime.date.fromisoformat(str(value).strip()[:10])


def parse_ledger_csv(csv_path: Path) -> list[LedgerEntry]:
    """Parse the connections ledger. A missing file is an empty history."""
    if not csv_path.exists():
        return []

    entries: list[LedgerEntry] = []
    f, reader = _open_dict_reader(csv_path, ("pair", "date"))
    with f:
        for line, row in enumerate(reader, start=2):
            pair = (row.get("pair") or "").strip()
            if not pair:
                continue
            try:
                member_1, member_2 = split_pair(pair)
                date = _parse_date(row["date"])
                months = (row.get("months_apart") or "").strip()
                year = (row.get("year") or "").strip()
                entries.append(
                    LedgerEntry(
                        pair=pair,
                        member_1=(row.get("member_1") or member_1).strip(),
                        member_2=(row.get("member_2") or member_2).strip(),
                        year=int(year) if year else date.year,
                        date=date,
                        host_role=(row.get("host_role") or "").strip(),
                        months_apart=int(float(months)) if months else 0,
                    )
                )
            except (ValueError, TypeError) as e:
                raise LedgerError(f"{csv_path.name} line {line}: {e}") from None
    return entries


def write_ledger_csv(csv_path: Path, entries: list[LedgerEntry]) -> None:
    with csv_path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(LEDGER_COLUMNS)
        for e in entries:
            writer.writerow(
                [e.pair, e.member_1, e.member_2, e.year, e.date.isoformat(), e.host_role, e.months_apart]
            )


def _bool(data: dict, key: str, default: bool) -> bool:
    value = data.get(key, default)
    if isinstance(value, bool):
        return value
    if value in (0, 1):
        return bool(value)
    raise InputValidationError(f"Control {key} must be true/false or 1/0, got {value!r}")


def _int_control(data: dict, key: str, default: int | None = None, minimum: int = 0) -> int | None:
    value = data.get(key, default)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise InputValidationError(f"Control {key} must be a whole number, got {value!r}")
    if value < minimum:
        raise InputValidationError(f"Control {key} must be at least {minimum}")
    return value


def parse_controls_yaml(yaml_path: Path) -> Controls:
    """Parse and validate the control parameters YAML file."""
    with yaml_path.open(encoding="utf-8") as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise InputValidationError(f"{yaml_path.name}: {e}") from None

    if not isinstance(data, dict):
        raise InputValidationError(f"{yaml_path.name}: expected a mapping of control values")
    threshold = _int_control(data, "time_lapse_threshold")
    if threshold is None:
        raise InputValidationError("Control time_lapse_threshold is required")
    if "next_dinner_date" not in data:
        raise InputValidationError("Control next_dinner_date is required")
    try:
        dinner_date = _parse_date(data["next_dinner_date"])
    except (ValueError, TypeError):
        raise InputValidationError(f"Invalid dinner date: {data['next_dinner_date']!r}") from None

    strategy = data.get("strategy", "scored")
    if strategy not in ("scored", "restart"):
        raise InputValidationError(f"Control strategy must be scored or restart, got {strategy!r}")

    steps = data.get("relaxation_steps", list(Controls.relaxation_steps))
    if not isinstance(steps, list) or not all(isinstance(s, int) and not isinstance(s, bool) for s in steps):
        raise InputValidationError("Control relaxation_steps must be a list of whole numbers")

    return Controls(
        time_lapse_threshold=threshold,
        next_dinner_date=dinner_date,
        strategy=strategy,
        max_attempts=_int_control(data, "max_attempts", Controls.max_attempts, minimum=1),
        seed=_int_control(data, "seed"),
        critical_ceiling=_int_control(data, "critical_ceiling", Controls.critical_ceiling),
        relaxation_steps=tuple(steps),
        relaxation_floor=_int_control(data, "relaxation_floor", Controls.relaxation_floor),
        **{key: _bool(data, key, getattr(Controls, key)) for key in BOOLEAN_CONTROLS},
    )


def create_controls_template(output_path: Path, dinner_date: datetime.date | None = None):
    """Create a control parameters template YAML file."""
    template = {
        "time_lapse_threshold": 12,
        "next_dinner_date": dinner_date or datetime.date.today(),
        "throttle_singles": False,
        "sort_hosts": True,
        "sort_guests": True,
        "clear_seated": True,
        "clear_grid": True,
        "unseated_options": True,
        "strategy": "scored",
        "max_attempts": 10,
        "seed": None,
    }

    header = """\
# Control parameters for gridbuilder
#
# time_lapse_threshold: minimum months since two members last shared a house
# next_dinner_date:     date of the dinner being planned (YYYY-MM-DD)
# throttle_singles:     hold back parties of one until a house has two members
# sort_hosts/guests:    seat members with the most past connections first
# clear_seated:         mark every guest unseated before building
# clear_grid:           ignore any grid carried over from a previous run
# unseated_options:     list the houses each unseated guest could take
# strategy:             scored (one pass, best house per guest) or restart
#                       (greedy fill with randomized restarts)
# seed:                 fix the restart shuffle for reproducible grids

"""

    with output_path.open("w", encoding="utf-8") as f:
        f.write(header)
        yaml.dump(template, f, default_flow_style=False, sort_keys=False)
