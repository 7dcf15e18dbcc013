"""Output formatting for gridbuilder."""

import csv
import io

from gridbuilder.audit import AuditReport, PairAudit, SeparationStats
from gridbuilder.models import MAX_HOUSE_MEMBERS, Assignment
from gridbuilder.parser import GRID_COLUMNS, SEATED_NO, SEATED_YES


def format_results(assignment: Assignment) -> str:
    """Format a grid build for display."""
    lines: list[str] = ["=== Seating Grid ==="]

    for house in assignment.houses:
        if not house.active:
            continue
        lines.append(f"House {house.house_id} ({house.occupied_seats}/{house.capacity} seats):")
        lines.append(f"  Host: {house.host}")
        for code in house.guests:
            suffix = ""
            if code in assignment.relaxed:
                suffix = f" (threshold relaxed to {assignment.relaxed[code]} months)"
            lines.append(f"    - {code}{suffix}")
    lines.append("")

    if assignment.phase_residuals:
        phases = ", ".join(f"{phase.replace('_', ' ')}: {count}" for phase, count in assignment.phase_residuals.items())
        lines.append(f"Unseated after each phase: {phases}")
        lines.append("")

    if not assignment.residual:
        lines.append("All members seated successfully!")
        return "\n".join(lines)

    lines.append(f"=== Unseated members ({len(assignment.residual)}) ===")
    for member in assignment.residual:
        lines.append(f"  {member.code} (party of {member.party_size})")
        for option in assignment.options.get(member.code, []):
            obstacles = []
            if option.blockers:
                obstacles.append(f"can't sit with {', '.join(option.blockers)}")
            if option.seat_shortfall:
                obstacles.append(f"{option.seat_shortfall} seat(s) short")
            detail = "; ".join(obstacles) if obstacles else "house is full"
            lines.append(f"      option: house {option.house_id} (host {option.host}): {detail}")

    return "\n".join(lines)


def _months(pair: PairAudit) -> str:
    return "Never met" if pair.months_apart is None else str(pair.months_apart)


def _stats(stats: SeparationStats) -> str:
    if not stats.count:
        return "N/A"
    return f"Min: {stats.minimum} | Max: {stats.maximum} | Avg: {round(stats.average)}"


def _pair_table(pairs: list[PairAudit], with_warning: bool = True) -> list[str]:
    headers = ["House", "Member 1", "Member 2", "Months Apart"] + (["Warning"] if with_warning else [])
    rows = [
        [str(p.house_id), p.member_1, p.member_2, _months(p)] + ([p.warning] if with_warning else [])
        for p in pairs
    ]
    widths = [max([len(h)] + [len(r[i]) for r in rows]) for i, h in enumerate(headers)]
    header_line = " | ".join(h.ljust(widths[i]) for i, h in enumerate(headers))
    lines = [header_line, "-" * len(header_line)]
    for row in rows:
        lines.append(" | ".join(cell.ljust(widths[i]) for i, cell in enumerate(row)).rstrip())
    return lines


def format_audit(report: AuditReport) -> str:
    """Format a grid audit: summary, violations, unseated members, pairs by house."""
    overall = report.overall
    lines = [
        "=== Audit Summary ===",
        f"Total connections: {overall.count}",
        f"Never met: {report.never_met}",
        f"Average separation: {round(overall.average) if overall.count else 0} months",
        f"Minimum separation: {'N/A' if overall.minimum is None else f'{overall.minimum} months'}",
        f"Maximum separation: {'N/A' if overall.maximum is None else f'{overall.maximum} months'}",
        f"Threshold setting: {report.threshold} months",
        f"Unseated members: {len(report.unseated)}",
        f"NEVER MATCH VIOLATIONS: {len(report.never_match_violations)}",
        f"Problem pairs (below threshold): {len(report.problem_pairs)}",
        "",
    ]

    if report.never_match_violations:
        lines.append("=== NEVER MATCH VIOLATIONS - CRITICAL ===")
        lines.extend(_pair_table(report.never_match_violations, with_warning=False))
        lines.append("")

    if report.problem_pairs:
        lines.append("=== Problem pairs (below threshold) ===")
        lines.extend(_pair_table(report.problem_pairs, with_warning=False))
        lines.append("")

    if report.unseated:
        lines.append("=== Unseated members ===")
        for member in report.unseated:
            lines.append(f"  {member.code} (party of {member.party_size})")
        lines.append("")

    lines.append("=== Detailed audit by house ===")
    for house_id, stats in report.by_house.items():
        pairs = [p for p in report.pairs if p.house_id == house_id]
        if not pairs:
            continue
        lines.extend(_pair_table(pairs))
        lines.append(f"  House {house_id} summary: {_stats(stats)}")
        lines.append("")

    lines.append("=== All pairs by separation time ===")
    lines.extend(_pair_table(report.sorted_by_separation()))
    return "\n".join(lines)


def format_grid_csv(assignment: Assignment) -> str:
    """Format the finished grid as CSV, one row per house."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(GRID_COLUMNS)
    for house in assignment.houses:
        slots = house.members + [""] * (MAX_HOUSE_MEMBERS - len(house.members))
        writer.writerow([house.house_id, house.capacity, house.occupied_seats, *slots])
    return buffer.getvalue()


def format_guests_csv(assignment: Assignment, connections: dict[str, int] | None = None) -> str:
    """
    Format the guest list with updated seated flags.

    `connections` holds the connection counts supplied with the input; other
    guests get a blank cell so a re-run derives theirs from the history again.
    """
    connections = connections or {}
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(["code", "count", "seated", "order", "connections"])
    for guest in assignment.guests:
        order = int(guest.order) if float(guest.order).is_integer() else guest.order
        writer.writerow(
            [
                guest.code,
                guest.party_size,
                SEATED_YES if guest.seated else SEATED_NO,
                order,
                connections.get(guest.code, ""),
            ]
        )
    return buffer.getvalue()
