from __future__ import annotations

from typing import List

import pytest

from banko_gen.core.builder import generate_batch
from banko_gen.core.optimizer import (
    ExclusionPlan,
    PrankOptimizer,
    ScoringPolicy,
    calculate_exclusions,
    greedy_exclusion_set,
    run_prank,
    safe_exclusions,
)
from banko_gen.errors import InvalidConfiguration, PrankInfeasible
from banko_gen.models import Card
from banko_gen.rng import RandomSource, create_rng


def _bare(card_id: str, numbers: List[int]) -> Card:
    return Card(id=card_id, grid=(), numbers=tuple(sorted(numbers)))


def _assert_partition(cards, winning_ids, excluded):
    excluded = set(excluded)
    winners = set(winning_ids)
    for card in cards:
        if card.id in winners:
            assert excluded.isdisjoint(card.numbers), card.id
        else:
            assert not excluded.isdisjoint(card.numbers), card.id


def test_safe_exclusions_are_other_minus_winning():
    cards = [_bare("w", [1, 2, 3]), _bare("a", [3, 4]), _bare("b", [5])]
    win, other, safe = safe_exclusions(cards, ["w"])
    assert win == {1, 2, 3}
    assert other == {3, 4, 5}
    assert safe == {4, 5}


def test_greedy_picks_largest_marginal_coverage_first():
    cards = [_bare("a", [1, 2]), _bare("b", [2, 3]), _bare("c", [4])]
    excluded, unblocked = greedy_exclusion_set(cards, [1, 2, 3, 4])
    assert excluded == [2, 4]
    assert unblocked == []


def test_greedy_breaks_ties_by_lowest_number():
    cards = [_bare("a", [7, 5, 6])]
    excluded, _ = greedy_exclusion_set(cards, [6, 7, 5])
    assert excluded == [5]


def test_greedy_never_adds_zero_coverage_numbers():
    cards = [_bare("a", [1]), _bare("b", [1, 2])]
    excluded, unblocked = greedy_exclusion_set(cards, [1, 2, 99])
    assert excluded == [1]
    assert unblocked == []


def test_unblockable_card_is_reported():
    cards = [_bare("w", [1, 2, 3]), _bare("x", [1, 2]), _bare("y", [4])]
    plan = calculate_exclusions(cards, ["w"])
    assert plan.excluded_numbers == [4]
    assert plan.unblocked_ids == ["x"]
    assert not plan.feasible


def test_calculate_exclusions_is_deterministic_for_fixed_winners():
    cards = generate_batch(20, create_rng("py_random", 3))
    winners = [c.id for c in cards[:4]]
    first = calculate_exclusions(cards, winners)
    second = calculate_exclusions(cards, winners)
    assert first.excluded_numbers == second.excluded_numbers
    assert first.excluded_numbers == sorted(first.excluded_numbers)
    if first.feasible:
        _assert_partition(cards, winners, first.excluded_numbers)


def test_scoring_policy_prefers_small_nonempty_sets():
    policy = ScoringPolicy()
    small = ExclusionPlan(winner_ids=["a"], excluded_numbers=list(range(1, 6)))
    large = ExclusionPlan(winner_ids=["a"], excluded_numbers=list(range(1, 26)))
    empty = ExclusionPlan(winner_ids=["a"], excluded_numbers=[])
    infeasible = ExclusionPlan(winner_ids=["a"], excluded_numbers=[1], unblocked_ids=["b"])
    assert policy.score(small) == 95
    assert policy.score(large) == 25
    assert policy.score(empty) == policy.infeasible_score
    assert policy.score(infeasible) == policy.infeasible_score
    assert policy.good_enough(small)
    assert not policy.good_enough(large)


def test_optimizer_same_seed_same_plan():
    cards = generate_batch(30, create_rng("py_random", 11))
    plan_a = PrankOptimizer(create_rng("py_random", 5)).optimize(cards, 5)
    plan_b = PrankOptimizer(create_rng("py_random", 5)).optimize(cards, 5)
    assert plan_a.winner_ids == plan_b.winner_ids
    assert plan_a.excluded_numbers == plan_b.excluded_numbers


@pytest.mark.parametrize("winners", [0, -2, 30, 31])
def test_optimizer_rejects_bad_winner_counts(winners):
    cards = generate_batch(30, create_rng("py_random", 11))
    with pytest.raises(InvalidConfiguration):
        PrankOptimizer(create_rng("py_random", 1)).optimize(cards, winners)


def test_optimizer_rejects_duplicate_ids():
    cards = [_bare("a", [1]), _bare("a", [2]), _bare("b", [3])]
    with pytest.raises(InvalidConfiguration):
        PrankOptimizer(create_rng("py_random", 1)).optimize(cards, 1)


def test_infeasible_batch_falls_back_to_first_cards():
    # Each card's numbers are covered by the union of the other two.
    cards = [_bare("a", [1, 5]), _bare("b", [2, 5]), _bare("c", [1, 2])]
    plan = PrankOptimizer(create_rng("py_random", 1), max_trials=10).optimize(cards, 2)
    assert not plan.feasible
    assert plan.winner_ids == ["a", "b"]
    assert plan.excluded_numbers == []
    assert plan.trials == 10


def test_good_enough_trial_stops_search():
    cards = [_bare("a", [1]), _bare("b", [2]), _bare("c", [3])]
    policy = ScoringPolicy(good_min=1, good_max=2)
    plan = PrankOptimizer(create_rng("py_random", 1), policy=policy).optimize(cards, 1)
    assert plan.trials == 1
    assert plan.feasible
    _assert_partition(cards, plan.winner_ids, plan.excluded_numbers)


@pytest.mark.parametrize(
    "total, winners",
    [(0, 1), (5, 0), (5, 5), (5, 7)],
)
def test_run_prank_rejects_invalid_configuration(total, winners):
    with pytest.raises(InvalidConfiguration):
        run_prank(total, winners, rng=create_rng("py_random", 1))


def test_run_prank_strict_raises_when_degraded(monkeypatch):
    def _never_feasible(self, cards, winning_count):
        return ExclusionPlan(
            winner_ids=[c.id for c in cards[:winning_count]],
            excluded_numbers=[],
            unblocked_ids=[c.id for c in cards[winning_count:]],
            trials=100,
        )

    monkeypatch.setattr(PrankOptimizer, "optimize", _never_feasible)
    degraded = run_prank(4, 2, rng=create_rng("py_random", 1))
    assert degraded.degraded
    assert degraded.excluded_numbers == []
    with pytest.raises(PrankInfeasible) as excinfo:
        run_prank(4, 2, rng=create_rng("py_random", 1), strict=True)
    assert excinfo.value.result.degraded


def test_each_trial_draws_from_its_own_spawned_source(monkeypatch):
    calls = []
    original = RandomSource.spawn

    def recording_spawn(self, index, purpose):
        calls.append((index, purpose))
        return original(self, index, purpose)

    monkeypatch.setattr(RandomSource, "spawn", recording_spawn)
    cards = [_bare("a", [1, 5]), _bare("b", [2, 5]), _bare("c", [1, 2])]
    PrankOptimizer(create_rng("py_random", 1), max_trials=4).optimize(cards, 2)
    assert calls == [(trial, "prank_trial") for trial in range(4)]
