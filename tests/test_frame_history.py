import unittest

from intent_engine.detection import FrameSnapshot, Vector3
from intent_engine.frame_history import (
    add_frame,
    calculate_average_velocity,
    calculate_velocity,
    check_any_in_window,
    check_held_for,
    get_average_fps,
    get_continuous_duration,
    get_frame_ago,
    get_frames_in_window,
    get_history_duration,
    get_latest_frame,
)

from frame_builders import make_frame, make_hand


def is_fist(frame: FrameSnapshot) -> bool:
    return any(hand.gesture == "Closed_Fist" for hand in frame.hands)


def index_tip(frame: FrameSnapshot):
    if not frame.hands:
        return None
    return frame.hands[0].landmarks[8].to_position()


class TestFrameHistoryBuffer(unittest.TestCase):
    def setUp(self):
        self.history = ()
        for t in range(0, 100, 10):
            self.history = add_frame(self.history, make_frame(t))

    def test_capacity(self):
        """Oldest frames are dropped beyond max_size."""
        history = ()
        for t in range(5):
            history = add_frame(history, make_frame(t), max_size=3)
        self.assertEqual([f.timestamp for f in history], [2.0, 3.0, 4.0])

    def test_add_frame_returns_new_tuple(self):
        """Earlier references are not modified."""
        before = self.history
        after = add_frame(before, make_frame(100))
        self.assertEqual(len(before), 10)
        self.assertEqual(len(after), 11)

    def test_frame_access(self):
        """Latest and n-ago lookups."""
        self.assertEqual(get_latest_frame(self.history).timestamp, 90.0)
        self.assertEqual(get_frame_ago(self.history, 0).timestamp, 90.0)
        self.assertEqual(get_frame_ago(self.history, 9).timestamp, 0.0)
        self.assertIsNone(get_frame_ago(self.history, 10))
        self.assertIsNone(get_frame_ago(self.history, -1))
        self.assertIsNone(get_latest_frame(()))

    def test_window_is_inclusive(self):
        """Window includes the frame exactly duration_ms old."""
        window = get_frames_in_window(self.history, 30)
        self.assertEqual([f.timestamp for f in window], [60.0, 70.0, 80.0, 90.0])

    def test_duration_and_fps(self):
        """10 frames spaced 10ms apart run at 100 fps."""
        self.assertEqual(get_history_duration(self.history), 90.0)
        self.assertAlmostEqual(get_average_fps(self.history), 100.0)
        self.assertEqual(get_average_fps(()), 0.0)


class TestTemporalQueries(unittest.TestCase):
    def setUp(self):
        """Fist from 0-40ms, open hand at 50ms, fist again from 60-120ms."""
        self.history = ()
        for t in range(0, 130, 10):
            gesture = "Open_Palm" if t == 50 else "Closed_Fist"
            self.history = add_frame(self.history, make_frame(t, make_hand(gesture=gesture)))

    def test_held_for(self):
        """The current run spans 60ms."""
        self.assertTrue(check_held_for(self.history, 60, is_fist))
        self.assertFalse(check_held_for(self.history, 70, is_fist))

    def test_held_for_needs_enough_history(self):
        """A run shorter than the window fails even without a break."""
        history = (make_frame(0, make_hand(gesture="Closed_Fist")), make_frame(10, make_hand(gesture="Closed_Fist")))
        self.assertFalse(check_held_for(history, 100, is_fist))
        self.assertFalse(check_held_for((), 0, is_fist))

    def test_any_in_window(self):
        """The open hand is seen only by windows reaching back to 50ms."""
        opened = lambda f: not is_fist(f)  # noqa: E731
        self.assertTrue(check_any_in_window(self.history, 70, opened))
        self.assertFalse(check_any_in_window(self.history, 60, opened))

    def test_continuous_duration(self):
        self.assertEqual(get_continuous_duration(self.history, is_fist), 60.0)
        self.assertEqual(get_continuous_duration(self.history, lambda f: False), 0.0)


class TestVelocity(unittest.TestCase):
    def test_velocity_per_second(self):
        """0.1 units in 100ms is 1 unit per second."""
        previous = make_frame(0, make_hand(x=0.4))
        current = make_frame(100, make_hand(x=0.5))
        velocity = calculate_velocity(current, previous, index_tip)
        self.assertAlmostEqual(velocity.x, 1.0)
        self.assertAlmostEqual(velocity.y, 0.0)

    def test_velocity_zero_when_missing(self):
        """Missing positions and equal timestamps give zero velocity."""
        self.assertEqual(calculate_velocity(make_frame(100), make_frame(0, make_hand()), index_tip), Vector3.zero())
        same_time = calculate_velocity(make_frame(0, make_hand(x=0.6)), make_frame(0, make_hand(x=0.4)), index_tip)
        self.assertEqual(same_time, Vector3.zero())

    def test_average_velocity(self):
        """Average over pairs, skipping frames without a hand."""
        history = (
            make_frame(0, make_hand(x=0.1)),
            make_frame(100, make_hand(x=0.2)),
            make_frame(200),
            make_frame(300, make_hand(x=0.5)),
            make_frame(400, make_hand(x=0.8)),
        )
        velocity = calculate_average_velocity(history, 1000, index_tip)
        self.assertAlmostEqual(velocity.x, 2.0)

    def test_average_velocity_none_without_pairs(self):
        history = (make_frame(0, make_hand()), make_frame(100))
        self.assertIsNone(calculate_average_velocity(history, 1000, index_tip))


if __name__ == '__main__':
    unittest.main()
