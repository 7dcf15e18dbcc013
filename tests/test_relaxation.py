from gridbuilder.engine import build_grid
from gridbuilder.relaxation import ConstraintRelaxationPass
from tests.utils import assert_houses_valid, controls, guest, history_of, host, house, make_context, never

RECENT = history_of(
    {
        ("R", "H1"): 6,
        ("R", "H2"): 6,
        ("N", "H1"): 6,
        ("N", "H2"): 6,
        ("R", "N"): 6,
    }
)


def test_steps_stay_below_threshold_and_above_floor():
    context = make_context([host("H1", seats=4)], [guest("R")], threshold=12)

    assert ConstraintRelaxationPass(context).steps == [6, 3, 0]
    assert ConstraintRelaxationPass(context, floor=3).steps == [6, 3]
    assert ConstraintRelaxationPass(context, steps=(10, 10, 11, 12, 30)).steps == [11, 10]


def test_relaxation_seats_recently_met_guest_but_not_never_match():
    context = make_context(
        [host("H1", seats=4), host("H2", seats=4)],
        [guest("R"), guest("N")],
        history=RECENT,
        never_match=never(("N", "H1"), ("N", "H2")),
    )

    relaxed = ConstraintRelaxationPass(context).run()

    assert relaxed == {"R": 6}
    assert house(context, "H1").members == ["H1", "R"]
    assert context.unseated() == ["N"]
    assert_houses_valid(context.houses, context.attendees, context.oracle, relaxed=relaxed)


def test_guest_blocked_only_by_a_full_house_is_skipped():
    context = make_context(
        [host("H1", seats=1), host("H2", seats=3)],
        [guest("G")],
        history=history_of({("G", "H2"): 6}),
    )

    assert ConstraintRelaxationPass(context).compatible_house_count("G") == 1
    assert ConstraintRelaxationPass(context).run() == {}
    assert context.unseated() == ["G"]


def test_floor_above_every_step_seats_nobody():
    context = make_context([host("H1", seats=4)], [guest("R")], history=history_of({("R", "H1"): 6}))

    assert ConstraintRelaxationPass(context, floor=10).run() == {}
    assert context.unseated() == ["R"]


def test_engine_reports_relaxation_phase():
    hosts = [host("H1", seats=4), host("H2", seats=4)]
    guests = [guest("R"), guest("N")]

    assignment = build_grid(
        hosts,
        guests,
        never(("N", "H1"), ("N", "H2")),
        RECENT,
        controls(),
    )

    assert assignment.phase_residuals == {"placement": 2, "local_search": 2, "relaxation": 1}
    assert assignment.relaxed == {"R": 6}
    assert [m.code for m in assignment.residual] == ["N"]
    assert all("N" not in h.members for h in assignment.houses)
