import unittest

from intent_engine.config import EngineConfig, GroupLimit
from intent_engine.conflict_resolution import IntentInstance, rank_instances, resolve_conflicts, resolve_partition
from intent_engine.detection import Vector3
from intent_engine.intent import define_intent
from intent_engine.keywords import Hand
from intent_engine.patterns import all_of, gestures, pinches


def instance(intent, hand=Hand.RIGHT, hand_index=0) -> IntentInstance:
    return IntentInstance(intent=intent, hand=hand, hand_index=hand_index, head_index=0, position=Vector3(0.5, 0.5))


class TestRanking(unittest.TestCase):
    def setUp(self):
        self.low = define_intent("low", gestures.pointing_up, group="spawn", priority=0)
        self.high = define_intent("high", gestures.pointing_up, group="spawn", priority=10)
        self.specific = define_intent("specific", all_of(pinches.index, gestures.pointing_up), group="spawn")

    def test_priority_wins_under_winner_takes_all(self):
        """Priority 10 beats priority 0 regardless of registration order."""
        winners = resolve_partition([instance(self.low), instance(self.high)])
        self.assertEqual([w.intent.id for w in winners], ["high"])

    def test_specificity_breaks_priority_ties(self):
        ranked = rank_instances([instance(self.low), instance(self.specific)])
        self.assertEqual([r.intent.id for r in ranked], ["specific", "low"])

    def test_full_ties_keep_registration_order(self):
        twin = define_intent("twin", gestures.pointing_up, group="spawn", priority=0)
        ranked = rank_instances([instance(twin), instance(self.low)])
        self.assertEqual([r.intent.id for r in ranked], ["twin", "low"])

    def test_top_k(self):
        limit = GroupLimit(max=2, strategy="top-k")
        winners = resolve_partition([instance(self.low), instance(self.high), instance(self.specific)], limit)
        self.assertEqual([w.intent.id for w in winners], ["high", "specific"])

    def test_unknown_strategy_falls_back_to_winner_takes_all(self):
        limit = GroupLimit(max=3, strategy="lottery")
        winners = resolve_partition([instance(self.low), instance(self.high)], limit)
        self.assertEqual(len(winners), 1)


class TestResolveConflicts(unittest.TestCase):
    def setUp(self):
        self.spawn = define_intent("spawn", gestures.pointing_up, group="spawn")
        self.colored = define_intent("colored", gestures.pointing_up, group="spawn", priority=10)
        self.repel = define_intent("repel", gestures.open_palm)
        self.vortex = define_intent("vortex", gestures.closed_fist)

    def test_hands_never_block_each_other(self):
        """Each hand is its own partition, so both hands keep a spawn."""
        config = EngineConfig(group_limits={"spawn": GroupLimit(max=2, strategy="top-k")})
        selected = resolve_conflicts(
            [instance(self.spawn, Hand.LEFT, 0), instance(self.spawn, Hand.RIGHT, 1)],
            config
        )
        self.assertEqual([(s.hand, s.hand_index) for s in selected], [(Hand.LEFT, 0), (Hand.RIGHT, 1)])

    def test_partitions_resolved_independently(self):
        """Winner-takes-all in the spawn group does not touch ungrouped intents."""
        selected = resolve_conflicts(
            [instance(self.spawn), instance(self.colored), instance(self.repel)],
            EngineConfig()
        )
        self.assertEqual(sorted(s.intent.id for s in selected), ["colored", "repel"])

    def test_ungrouped_intents_compete(self):
        """Ungrouped intents on one hand share the default group."""
        selected = resolve_conflicts([instance(self.repel), instance(self.vortex)], EngineConfig())
        self.assertEqual(len(selected), 1)

    def test_global_cap(self):
        config = EngineConfig(max_concurrent_intents=1)
        selected = resolve_conflicts(
            [instance(self.spawn, Hand.LEFT, 0), instance(self.spawn, Hand.RIGHT, 1)],
            config
        )
        self.assertEqual(len(selected), 1)

    def test_custom_resolver(self):
        """A custom resolver sees distinct intents and bypasses grouping."""
        seen = []

        def only_repel(intents):
            seen.append([i.id for i in intents])
            return [i for i in intents if i.id == "repel"]

        config = EngineConfig(custom_resolver=only_repel)
        selected = resolve_conflicts(
            [instance(self.repel, Hand.LEFT, 0), instance(self.repel, Hand.RIGHT, 1), instance(self.spawn)],
            config
        )
        self.assertEqual(seen, [["repel", "spawn"]])
        self.assertEqual([s.hand for s in selected], [Hand.LEFT, Hand.RIGHT])

    def test_failing_custom_resolver_falls_back(self):
        def broken(intents):
            raise RuntimeError("boom")

        selected = resolve_conflicts([instance(self.spawn), instance(self.colored)], EngineConfig(custom_resolver=broken))
        self.assertEqual([s.intent.id for s in selected], ["colored"])

    def test_empty(self):
        self.assertEqual(resolve_conflicts([], EngineConfig()), [])


if __name__ == '__main__':
    unittest.main()
