import unittest

from intent_engine.detection import Vector3
from intent_engine.event_bus import EventBus
from intent_engine.events import EndEvent, StartEvent, split_event_type
from intent_engine.grid import Cell
from intent_engine.keywords import EndReason


def start(intent_id: str = "particles:spawn") -> StartEvent:
    return StartEvent(
        type=f"{intent_id}:start",
        id=f"{intent_id}_right_0_0_1",
        timestamp=0.0,
        position=Vector3(0.5, 0.5),
        cell=Cell(4, 3),
        hand="right",
        hand_index=0,
        head_index=0
    )


class TestEventTypes(unittest.TestCase):
    def test_split(self):
        """Only a trailing phase is split off."""
        self.assertEqual(split_event_type("particles:spawn:start"), ("particles:spawn", "start"))
        self.assertEqual(split_event_type("particles:spawn"), ("particles:spawn", ""))

    def test_event_properties(self):
        event = start()
        self.assertEqual(event.intent_id, "particles:spawn")
        self.assertEqual(event.phase, "start")

    def test_end_defaults(self):
        end = EndEvent(
            type="grab:end", id="a", timestamp=10.0, position=Vector3(0, 0), cell=Cell(0, 0),
            hand="left", hand_index=0, head_index=0
        )
        self.assertEqual(end.reason, EndReason.COMPLETED)
        self.assertEqual(end.velocity, Vector3.zero())


class TestEventBus(unittest.TestCase):
    def setUp(self):
        self.errors = []
        self.bus = EventBus(on_error=lambda error, event: self.errors.append((error, event)))
        self.received = []

    def test_delivery_order(self):
        """Typed, then intent-level, then catch-all subscribers."""
        self.bus.on_any(lambda e: self.received.append("any"))
        self.bus.on("particles:spawn", lambda e: self.received.append("intent"))
        self.bus.on("particles:spawn:start", lambda e: self.received.append("typed"))
        self.bus.emit(start())
        self.assertEqual(self.received, ["typed", "intent", "any"])

    def test_other_types_not_delivered(self):
        self.bus.on("particles:spawn:end", lambda e: self.received.append(e))
        self.bus.on("particles", lambda e: self.received.append(e))
        self.bus.emit(start())
        self.assertEqual(self.received, [])

    def test_failing_subscriber_isolated(self):
        """An exception is reported and later subscribers still run."""
        def broken(event):
            raise ValueError("bad subscriber")

        self.bus.on("particles:spawn:start", broken)
        self.bus.on("particles:spawn:start", lambda e: self.received.append(e.id))
        event = start()
        self.bus.emit(event)
        self.assertEqual(self.received, [event.id])
        self.assertEqual(len(self.errors), 1)
        self.assertIsInstance(self.errors[0][0], ValueError)
        self.assertIs(self.errors[0][1], event)

    def test_default_error_handler_logs(self):
        bus = EventBus()
        bus.on_any(lambda e: 1 / 0)
        with self.assertLogs("IntentEngine.EventBus", level="ERROR"):
            bus.emit(start())

    def test_unsubscribe(self):
        """Unsubscribing twice is harmless and empty channels are removed."""
        off = self.bus.on("particles:spawn:start", self.received.append)
        self.assertEqual(self.bus.size, 1)
        off()
        off()
        self.bus.emit(start())
        self.assertEqual(self.received, [])
        self.assertEqual(len(self.bus), 0)

    def test_same_callback_twice(self):
        """Each subscription is independent, even for the same function."""
        off_first = self.bus.on("particles:spawn:start", self.received.append)
        self.bus.on("particles:spawn:start", self.received.append)
        off_first()
        self.bus.emit(start())
        self.assertEqual(len(self.received), 1)

    def test_unsubscribe_during_emit(self):
        """Delivery works on a snapshot of subscribers."""
        offs = []

        def first(event):
            self.received.append("first")
            offs[1]()

        offs.append(self.bus.on("particles:spawn:start", first))
        offs.append(self.bus.on("particles:spawn:start", lambda e: self.received.append("second")))
        self.bus.emit(start())
        self.bus.emit(start())
        self.assertEqual(self.received, ["first", "second", "first"])

    def test_subscribe_many_and_clear(self):
        off = self.bus.subscribe_many({
            "particles:spawn:start": self.received.append,
            "particles:spawn:end": self.received.append,
        })
        self.assertEqual(self.bus.size, 2)
        off()
        self.assertEqual(self.bus.size, 0)
        self.bus.on_any(self.received.append)
        self.bus.clear()
        self.bus.emit_all([start(), start()])
        self.assertEqual(self.received, [])


if __name__ == '__main__':
    unittest.main()
