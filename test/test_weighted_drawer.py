import random
import sys
import unittest
from collections import Counter
from dataclasses import dataclass
from pathlib import Path

_BACKEND_ROOT = Path(__file__).resolve().parents[1] / "backend"
if str(_BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(_BACKEND_ROOT))

from watchpick import (
    DEFAULT_WEIGHT_TABLE,
    EmptyCandidateSet,
    Priority,
    WeightedDrawer,
    WeightTable,
    candidate_weights,
    draw,
    draw_cumulative,
)


@dataclass(frozen=True)
class _Entry:
    id: str
    priority: object


class _FixedRandom:
    """Returns a preset integer and records every call."""

    def __init__(self, value: int) -> None:
        self.value = value
        self.calls: list[int] = []

    def randrange(self, stop: int) -> int:
        self.calls.append(stop)
        return self.value


class TestWeightedDrawer(unittest.TestCase):
    def test_result_is_always_a_member_of_the_input(self) -> None:
        rng = random.Random(7)
        entries = [_Entry(str(i), p) for i, p in enumerate(Priority)]
        for _ in range(500):
            picked = draw(entries, rng=rng)
            self.assertTrue(any(picked is e for e in entries))

    def test_same_seed_same_sequence(self) -> None:
        entries = [_Entry("a", "LOW"), _Entry("b", "HIGH"), _Entry("c", "URGENT"), _Entry("d", "MEDIUM")]
        rng_a = random.Random(42)
        rng_b = random.Random(42)
        first = [draw(entries, rng=rng_a).id for _ in range(50)]
        second = [draw(entries, rng=rng_b).id for _ in range(50)]
        self.assertEqual(first, second)

    def test_single_candidate_always_returned(self) -> None:
        rng = random.Random(0)
        for priority in [*Priority, "BOGUS", None]:
            only = _Entry("only", priority)
            for _ in range(20):
                self.assertIs(draw([only], rng=rng), only)
                self.assertIs(draw_cumulative([only], rng=rng), only)

    def test_empty_input_raises_and_consumes_no_randomness(self) -> None:
        rng = _FixedRandom(0)
        with self.assertRaises(EmptyCandidateSet):
            draw([], rng=rng)
        with self.assertRaises(EmptyCandidateSet):
            draw_cumulative(iter(()), rng=rng)
        with self.assertRaises(EmptyCandidateSet):
            WeightedDrawer(rng=rng, strategy="cumulative").draw([])
        self.assertEqual(rng.calls, [])

    def test_unknown_priority_weighs_one_and_stays_selectable(self) -> None:
        entries = [_Entry("known", "MEDIUM"), _Entry("typo", "URGNET")]
        self.assertEqual(candidate_weights(entries), [2, 1])
        # Pool is [known, known, typo]; slot 2 belongs to the unknown entry.
        self.assertEqual(draw(entries, rng=_FixedRandom(2)).id, "typo")

    def test_unknown_priority_hook_does_not_change_outcome(self) -> None:
        seen: list[object] = []
        entries = [_Entry("a", "HIGH"), _Entry("b", "nope"), _Entry("c", None)]
        with_hook = draw(entries, rng=_FixedRandom(5), on_unknown_priority=lambda c, p: seen.append(p))
        without_hook = draw(entries, rng=_FixedRandom(5))
        self.assertIs(with_hook, without_hook)
        self.assertEqual(seen, ["nope", None])

    def test_one_random_integer_per_draw_over_total_weight(self) -> None:
        entries = [_Entry("a", Priority.URGENT), _Entry("b", Priority.LOW)]
        for fn in (draw, draw_cumulative):
            rng = _FixedRandom(0)
            fn(entries, rng=rng)
            self.assertEqual(rng.calls, [11])

    def test_falsy_random_source_is_still_used(self) -> None:
        class _EmptyLookingRandom(_FixedRandom):
            def __len__(self) -> int:
                return 0

        entries = [_Entry("a", "LOW"), _Entry("b", "URGENT")]
        for fn in (draw, draw_cumulative):
            rng = _EmptyLookingRandom(10)
            self.assertIs(fn(entries, rng=rng), entries[1])
            self.assertEqual(rng.calls, [11])

    def test_strategies_agree_for_every_slot(self) -> None:
        entries = [
            _Entry("a", "LOW"),
            _Entry("b", "URGENT"),
            _Entry("c", "??"),
            _Entry("d", "HIGH"),
            _Entry("e", "MEDIUM"),
        ]
        total = sum(candidate_weights(entries))
        self.assertEqual(total, 1 + 10 + 1 + 5 + 2)
        for slot in range(total):
            self.assertIs(
                draw(entries, rng=_FixedRandom(slot)),
                draw_cumulative(entries, rng=_FixedRandom(slot)),
                msg=f"slot={slot}",
            )

    def test_input_is_not_mutated(self) -> None:
        entries = [_Entry("a", "LOW"), _Entry("b", "HIGH")]
        snapshot = list(entries)
        draw(entries, rng=random.Random(1))
        draw_cumulative(entries, rng=random.Random(1))
        self.assertEqual(entries, snapshot)

    def test_mapping_candidates_are_supported(self) -> None:
        entries = [{"id": "a", "priority": "LOW"}, {"id": "b", "priority": "URGENT"}]
        self.assertEqual(draw(entries, rng=_FixedRandom(1))["id"], "b")
        self.assertEqual(draw(entries, rng=_FixedRandom(0))["id"], "a")

    def test_alternate_weight_table(self) -> None:
        flat = WeightTable.from_mapping({"LOW": 1, "MEDIUM": 1, "HIGH": 1, "URGENT": 1})
        entries = [_Entry("a", "URGENT"), _Entry("b", "LOW")]
        rng = _FixedRandom(1)
        self.assertEqual(draw(entries, weights=flat, rng=rng).id, "b")
        self.assertEqual(rng.calls, [2])


class TestWeightedDrawerDistribution(unittest.TestCase):
    def _frequencies(self, fn, entries, trials: int, seed: int) -> Counter:
        rng = random.Random(seed)
        return Counter(fn(entries, rng=rng).id for _ in range(trials))

    def test_frequencies_converge_to_weight_share(self) -> None:
        entries = [
            _Entry("low", Priority.LOW),
            _Entry("medium", Priority.MEDIUM),
            _Entry("high", Priority.HIGH),
            _Entry("urgent", Priority.URGENT),
        ]
        total = 18
        trials = 100_000
        for fn in (draw, draw_cumulative):
            counts = self._frequencies(fn, entries, trials, seed=1234)
            for e in entries:
                expected = DEFAULT_WEIGHT_TABLE.weight_for(e.priority) / total
                self.assertAlmostEqual(counts[e.id] / trials, expected, delta=0.01, msg=f"{fn.__name__} {e.id}")

    def test_urgent_vs_low_example(self) -> None:
        entries = [_Entry("A", "URGENT"), _Entry("B", "LOW")]
        counts = self._frequencies(draw, entries, 11_000, seed=99)
        self.assertAlmostEqual(counts["A"], 10_000, delta=300)
        self.assertAlmostEqual(counts["B"], 1_000, delta=300)


class TestWeightedDrawerConfig(unittest.TestCase):
    def test_rejects_unknown_strategy(self) -> None:
        with self.assertRaises(ValueError):
            WeightedDrawer(strategy="roulette")  # type: ignore[arg-type]

    def test_seeded_drawer_is_reproducible_per_strategy(self) -> None:
        entries = [_Entry(str(i), p) for i, p in enumerate(["LOW", "HIGH", "URGENT", "MEDIUM", "LOW"])]
        for strategy in ("pool", "cumulative"):
            a = WeightedDrawer(rng=random.Random(3), strategy=strategy)
            b = WeightedDrawer(rng=random.Random(3), strategy=strategy)
            self.assertEqual(
                [a.draw(entries).id for _ in range(30)],
                [b.draw(entries).id for _ in range(30)],
            )

    def test_default_hook_logs_warning(self) -> None:
        drawer = WeightedDrawer(rng=_FixedRandom(0))
        with self.assertLogs("watchpick.drawer", level="WARNING") as logs:
            drawer.draw([_Entry("x", "SOMEDAY")])
        self.assertIn("SOMEDAY", "\n".join(logs.output))

    def test_weights_of_uses_configured_table(self) -> None:
        drawer = WeightedDrawer(weights=DEFAULT_WEIGHT_TABLE.with_overrides({"HIGH": 7}))
        self.assertEqual(drawer.weights_of([_Entry("a", "HIGH"), _Entry("b", "x")]), [7, 1])


if __name__ == "__main__":
    unittest.main()
