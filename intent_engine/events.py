"""
Intent lifecycle events.

Event types are strings of the form "<intent_id>:<phase>". Subscribing to the
bare intent id receives all three phases.
"""

from dataclasses import dataclass, field
from typing import NamedTuple, Union

from .detection import Vector3
from .grid import Cell
from .keywords import EndReason, EventPhase

PHASE_SEPARATOR = ":"


def event_type(intent_id: str, phase: str) -> str:
    return f"{intent_id}{PHASE_SEPARATOR}{phase}"


def split_event_type(type_: str) -> tuple[str, str]:
    """
    Split an event type into (intent_id, phase).

    Bare intent ids return an empty phase. Intent ids may themselves contain
    the separator, only a trailing phase suffix is split off.
    """
    intent_id, sep, phase = type_.rpartition(PHASE_SEPARATOR)
    if sep and phase in EventPhase.ALL:
        return intent_id, phase
    return type_, ""


class IntentEventTypes(NamedTuple):
    """Event type strings for one intent."""
    start: str
    update: str
    end: str
    any: str

    @classmethod
    def for_intent(cls, intent_id: str) -> "IntentEventTypes":
        return cls(
            start=event_type(intent_id, EventPhase.START),
            update=event_type(intent_id, EventPhase.UPDATE),
            end=event_type(intent_id, EventPhase.END),
            any=intent_id
        )


@dataclass(frozen=True)
class IntentEvent:
    """
    Fields shared by every lifecycle event.

    Attributes:
        type: "<intent_id>:<phase>".
        id: Action id the event belongs to.
        timestamp: Frame timestamp (ms).
        position: Normalized position.
        cell: Grid cell (after hysteresis).
        hand: 'left' or 'right'.
        hand_index: Hand instance index.
        head_index: Person index.
    """
    type: str
    id: str
    timestamp: float
    position: Vector3
    cell: Cell
    hand: str
    hand_index: int
    head_index: int

    @property
    def intent_id(self) -> str:
        return split_event_type(self.type)[0]

    @property
    def phase(self) -> str:
        return split_event_type(self.type)[1]


@dataclass(frozen=True)
class StartEvent(IntentEvent):
    """Action became active."""


@dataclass(frozen=True)
class UpdateEvent(IntentEvent):
    """Active action matched again."""
    velocity: Vector3 = field(default_factory=Vector3.zero)
    duration: float = 0.0


@dataclass(frozen=True)
class EndEvent(IntentEvent):
    """Active action finished."""
    velocity: Vector3 = field(default_factory=Vector3.zero)
    duration: float = 0.0
    reason: EndReason = EndReason.COMPLETED


AnyIntentEvent = Union[StartEvent, UpdateEvent, EndEvent]
