import unittest

from intent_engine.config import GridConfig, HysteresisConfig, SpatialConfig
from intent_engine.intent import IntentDefinitionError, define_intent, validate_registry
from intent_engine.keywords import GestureName, Hand
from intent_engine.patterns import gestures, pattern_specificity, pinches

from frame_builders import make_frame, make_hand


class TestIntentDefinition(unittest.TestCase):
    def test_event_types(self):
        """Event types are the id plus a phase suffix."""
        intent = define_intent("particles:spawn", gestures.pointing_up)
        self.assertEqual(intent.events.start, "particles:spawn:start")
        self.assertEqual(intent.events.update, "particles:spawn:update")
        self.assertEqual(intent.events.end, "particles:spawn:end")
        self.assertEqual(intent.events.any, "particles:spawn")

    def test_derived_fields(self):
        pattern = gestures.victory.with_hand(Hand.LEFT)
        intent = define_intent("v", pattern, group="vortex", priority=5, min_duration=100)
        self.assertEqual(intent.specificity, pattern_specificity(pattern))
        self.assertEqual(intent.group, "vortex")
        self.assertEqual(intent.priority, 5)
        self.assertEqual(intent.temporal.min_duration, 100)

    def test_invalid_definitions(self):
        """Bad settings are rejected when the intent is created."""
        bad = [
            dict(intent_id="", pattern=gestures.victory),
            dict(intent_id="grab:end", pattern=gestures.victory),
            dict(intent_id="grab", pattern="Victory"),
            dict(intent_id="grab", pattern=gestures.victory, modifier=42),
            dict(intent_id="grab", pattern=gestures.victory, min_duration=-1),
            dict(intent_id="grab", pattern=gestures.victory, max_gap=-5),
            dict(intent_id="grab", pattern=gestures.victory, priority="high"),
            dict(intent_id="grab", pattern=gestures.victory, priority=True),
            dict(intent_id="grab", pattern=gestures.victory, spatial=SpatialConfig(grid=GridConfig(0, 6))),
            dict(intent_id="grab", pattern=gestures.victory,
                 spatial=SpatialConfig(hysteresis=HysteresisConfig(threshold=1.5))),
        ]
        for kwargs in bad:
            with self.subTest(kwargs=kwargs):
                with self.assertRaises(IntentDefinitionError):
                    define_intent(**kwargs)

    def test_registry_rejects_duplicates(self):
        a = define_intent("grab", gestures.closed_fist)
        b = define_intent("grab", gestures.open_palm)
        with self.assertRaises(IntentDefinitionError):
            validate_registry([a, b])
        with self.assertRaises(IntentDefinitionError):
            validate_registry([a, "grab"])
        self.assertEqual(validate_registry([a]), (a,))


class TestIntentMatching(unittest.TestCase):
    def setUp(self):
        self.intent = define_intent("paint", gestures.pointing_up.with_hand(Hand.RIGHT), modifier=pinches.index)

    def test_modifier_and_pattern_must_match(self):
        pinching = make_hand(Hand.LEFT, hand_index=1, pinch_finger="index", pinch_distance=0.02)
        pointing = make_hand(Hand.RIGHT, GestureName.POINTING_UP)
        self.assertTrue(self.intent.matches(make_frame(0, pinching, pointing)))
        self.assertFalse(self.intent.matches(make_frame(0, pointing)))
        self.assertFalse(self.intent.matches(make_frame(0, pinching)))


if __name__ == '__main__':
    unittest.main()
