import numpy as np

from gridbuilder.placement import (
    fill_house,
    order_attendees,
    ordered_houses,
    place_scored,
    place_with_restarts,
    score_house,
    shuffle_tail,
)
from tests.utils import (
    assert_houses_valid,
    controls,
    guest,
    history_of,
    host,
    house,
    make_context,
    seated_members,
)


def _three_houses():
    hosts = [host("H1", seats=4), host("H2", seats=4), host("H3", seats=2)]
    guests = [guest(f"G{i}") for i in range(1, 7)]
    return make_context(hosts, guests)


def test_order_attendees_most_connected_first():
    people = [
        guest("A", connections=1, order=2),
        guest("B", connections=4),
        guest("C", connections=1, order=1),
        guest("D", connections=None),
    ]

    assert [a.code for a in order_attendees(people)] == ["B", "C", "A", "D"]
    assert [a.code for a in order_attendees(people, sort=False)] == ["A", "B", "C", "D"]


def test_ordered_houses_follow_host_connections():
    context = make_context(
        [host("H1", seats=4, connections=1), host("H2", seats=4, connections=9), host("H3", seats=4, connections=1)],
        [],
    )

    assert [h.host for h in ordered_houses(context)] == ["H2", "H1", "H3"]
    assert [h.host for h in ordered_houses(context, sort_hosts=False)] == ["H1", "H2", "H3"]


def test_shuffle_tail_keeps_head_in_place():
    items = list(range(10))

    shuffle_tail(items, np.random.default_rng(3))

    assert items[:7] == [0, 1, 2, 3, 4, 5, 6]
    assert sorted(items) == list(range(10))


def test_shuffle_tail_is_reproducible():
    first, second = list(range(20)), list(range(20))

    shuffle_tail(first, np.random.default_rng(42))
    shuffle_tail(second, np.random.default_rng(42))

    assert first == second


def test_score_prefers_fresh_pairings():
    context = make_context(
        [host("H1", seats=4), host("H2", seats=4)],
        [guest("G"), guest("A"), guest("B")],
        history=history_of({("G", "A"): 12, ("G", "B"): 40}),
    )
    context.seat("A", house(context, "H1"))
    context.seat("B", house(context, "H2"))

    assert score_house(context, "G", house(context, "H2")) > score_house(context, "G", house(context, "H1"))


def test_score_prefers_emptier_house():
    context = _three_houses()
    context.seat("G1", house(context, "H1"))

    assert score_house(context, "G2", house(context, "H2")) > score_house(context, "G2", house(context, "H1"))


def test_scored_placement_seats_everyone():
    context = _three_houses()

    seated = place_scored(context, controls())

    assert seated == 6
    assert context.unseated() == []
    assert sorted(seated_members(context.houses)) == ["G1", "G2", "G3", "G4", "G5", "G6"]
    assert_houses_valid(context.houses, context.attendees, context.oracle)


def test_scored_placement_checks_every_member():
    context = make_context(
        [host("H1", seats=6)],
        [guest("A"), guest("B"), guest("C")],
        history=history_of({("B", "A"): 2}),
    )

    place_scored(context, controls())

    assert house(context, "H1").members == ["H1", "A", "C"]
    assert context.unseated() == ["B"]


def test_fill_house_throttles_singles():
    context = make_context(
        [host("H1", seats=5)],
        [guest("S1"), guest("C1", size=2), guest("S2")],
    )

    seated = fill_house(context, house(context, "H1"), ["S1", "C1", "S2"], throttle_singles=True)

    assert seated == 3
    assert house(context, "H1").members == ["H1", "C1", "S1", "S2"]


def test_fill_house_throttle_leaves_only_singles_unseated():
    context = make_context([host("H1", seats=5)], [guest("S1"), guest("S2")])

    assert fill_house(context, house(context, "H1"), ["S1", "S2"], throttle_singles=True) == 0
    assert fill_house(context, house(context, "H1"), ["S1", "S2"], throttle_singles=False) == 2


def test_fill_house_stops_at_six_members():
    context = make_context([host("H1", seats=20)], [guest(f"G{i}") for i in range(8)])

    fill_house(context, house(context, "H1"), [f"G{i}" for i in range(8)], throttle_singles=False)

    assert house(context, "H1").members == ["H1", "G0", "G1", "G2", "G3", "G4"]


def test_restarts_stop_on_perfect_attempt():
    context = _three_houses()

    best, attempts = place_with_restarts(context, controls(strategy="restart", seed=1))

    assert attempts == 1
    assert best.unseated() == []
    assert house(best, "H1").members == ["H1", "G1", "G2", "G3"]
    # The original context is untouched
    assert context.unseated() == ["G1", "G2", "G3", "G4", "G5", "G6"]


def test_restarts_are_reproducible_with_a_seed():
    hosts = [host(f"H{i}", seats=3) for i in range(4)]
    guests = [guest(f"G{i}", size=1 + i % 2) for i in range(10)]
    history = history_of({("G0", "G2"): 1, ("G4", "G6"): 1, ("G1", "H0"): 1, ("G3", "G5"): 1})

    results = []
    for _ in range(2):
        context = make_context(hosts, guests, history=history)
        best, attempts = place_with_restarts(context, controls(strategy="restart", seed=11, max_attempts=5))
        results.append(([h.members for h in best.houses], attempts))
        assert_houses_valid(best.houses, best.attendees, best.oracle)

    assert results[0] == results[1]
