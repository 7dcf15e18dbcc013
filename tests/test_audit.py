import pytest

from gridbuilder.audit import NEVER_MATCH_WARNING, TOO_SOON_WARNING, audit_grid, unseated_options
from gridbuilder.compatibility import CompatibilityOracle
from gridbuilder.models import House, HouseOption
from tests.utils import guest, history_of, host, house, make_context, never


@pytest.fixture
def report():
    history = history_of({("H1", "A"): 30, ("A", "B"): 3, ("A", "C"): 20})
    oracle = CompatibilityOracle(history, never(("B", "C")), threshold=12)
    houses = [House(1, 6, ["H1", "A", "B", "C"], 4), House(2, 4, [], 0)]
    guests = [guest("A", seated=True), guest("B", seated=True), guest("C", seated=True), guest("D", size=2)]
    return audit_grid(houses, guests, oracle)


def test_flags_never_match_and_recent_pairs(report):
    assert [(p.member_1, p.member_2) for p in report.never_match_violations] == [("B", "C")]
    assert [(p.member_1, p.member_2) for p in report.problem_pairs] == [("A", "B")]
    assert report.never_met == 2
    assert {p.warning for p in report.pairs} == {"", NEVER_MATCH_WARNING, TOO_SOON_WARNING}


def test_separation_statistics(report):
    assert report.overall.count == 3
    assert (report.overall.minimum, report.overall.maximum) == (3, 30)
    assert report.overall.average == pytest.approx(53 / 3)
    assert list(report.by_house) == [1]


def test_unseated_and_sort_order(report):
    assert [(m.code, m.party_size) for m in report.unseated] == [("D", 2)]
    ordered = report.sorted_by_separation()
    assert [p.months_apart for p in ordered[:3]] == [3, 20, 30]
    assert all(p.months_apart is None for p in ordered[3:])


def test_unseated_options_rank_fewest_obstacles_first():
    context = make_context(
        [host("H1", seats=3), host("H2", seats=2), host("H3", seats=4)],
        [guest("A"), guest("B"), guest("U")],
        history=history_of({("U", "A"): 1}),
        never_match=never(("U", "H3")),
    )
    context.seat("A", house(context, "H1"))
    context.seat("B", house(context, "H2"))

    options = unseated_options(context)

    assert options == {
        "U": [
            HouseOption(2, "H2", 0, 1, []),
            HouseOption(1, "H1", 1, 0, ["A"]),
        ]
    }
