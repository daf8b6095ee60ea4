"""
Action lifecycle tracking.

One action exists per (intent, hand, hand instance). Actions move
PENDING -> ACTIVE and are removed when their match is lost past the grace
period; ENDING is only a same-tick transition and never stored. All helpers
return new values, the engine builds a fresh action mapping every tick.
"""

from dataclasses import dataclass, replace
from types import MappingProxyType
from typing import Mapping, NamedTuple, Optional, Sequence

from .logger import get_logger
from .calibration import CalibrationTable
from .detection import FrameSnapshot, Vector3
from .grid import Cell
from .hysteresis import HysteresisState
from .intent import Intent
from .keywords import ActionState, EndReason
from .matching import match_pattern

logger = get_logger("ActionTracker")


class ActionKey(NamedTuple):
    """Identity of an action slot."""
    intent_id: str
    hand: str
    hand_index: int


@dataclass(frozen=True)
class ActionContext:
    """
    Spatial and temporal context reported with an action's events.

    Attributes:
        action_id: Owning action.
        intent_id: Owning intent.
        hand: 'left' or 'right'.
        hand_index: Hand instance index.
        head_index: Person index.
        position: Normalized position.
        cell: Reported grid cell.
        velocity: Normalized units per second.
        timestamp: Frame time of the last update (ms).
        duration: Time since the action was created (ms).
    """
    action_id: str
    intent_id: str
    hand: str
    hand_index: int
    head_index: int
    position: Vector3
    cell: Cell
    velocity: Vector3
    timestamp: float
    duration: float = 0.0


@dataclass(frozen=True)
class ActiveAction:
    """A live occurrence of an intent on one hand instance."""
    id: str
    intent_id: str
    state: ActionState
    start_time: float
    last_update_time: float
    context: ActionContext
    hysteresis: Optional[HysteresisState] = None

    @property
    def key(self) -> ActionKey:
        return ActionKey(self.intent_id, self.context.hand, self.context.hand_index)

    @property
    def is_active(self) -> bool:
        return self.state == ActionState.ACTIVE


ActionMap = Mapping[ActionKey, ActiveAction]

EMPTY_ACTIONS: ActionMap = MappingProxyType({})


class ActionIdCounter:
    """
    Monotonic sequence used to disambiguate action ids.

    Owned by the caller so ids are reproducible: two counters seeded alike
    produce the same ids for the same frames.
    """

    def __init__(self, seed: int = 0):
        self._value = seed

    @property
    def value(self) -> int:
        return self._value

    def next(self) -> int:
        self._value += 1
        return self._value


def _format_timestamp(timestamp: float) -> str:
    if float(timestamp).is_integer():
        return str(int(timestamp))
    return str(timestamp)


def generate_action_id(intent_id: str, hand: str, hand_index: int, timestamp: float, sequence: int) -> str:
    """Build "{intent_id}_{hand}_{hand_index}_{timestamp}_{sequence}"."""
    return f"{intent_id}_{hand}_{hand_index}_{_format_timestamp(timestamp)}_{sequence}"


def create_action(
    intent_id: str,
    hand: str,
    hand_index: int,
    head_index: int,
    position: Vector3,
    cell: Cell,
    timestamp: float,
    counter: ActionIdCounter,
    state: ActionState = ActionState.ACTIVE,
    hysteresis: Optional[HysteresisState] = None
) -> ActiveAction:
    """
    Create a new action at its first matching frame.

    Returns:
        ActiveAction with zero velocity and duration.
    """
    action_id = generate_action_id(intent_id, hand, hand_index, timestamp, counter.next())
    context = ActionContext(
        action_id=action_id,
        intent_id=intent_id,
        hand=hand,
        hand_index=hand_index,
        head_index=head_index,
        position=position,
        cell=cell,
        velocity=Vector3.zero(),
        timestamp=timestamp,
        duration=0.0
    )
    return ActiveAction(
        id=action_id,
        intent_id=intent_id,
        state=state,
        start_time=timestamp,
        last_update_time=timestamp,
        context=context,
        hysteresis=hysteresis
    )


def create_action_context(
    action: ActiveAction,
    timestamp: float,
    position: Vector3,
    cell: Cell,
    velocity: Vector3,
    head_index: Optional[int] = None
) -> ActionContext:
    """Recompute an action's context for the current frame."""
    return replace(
        action.context,
        head_index=action.context.head_index if head_index is None else head_index,
        position=position,
        cell=cell,
        velocity=velocity,
        timestamp=timestamp,
        duration=timestamp - action.start_time
    )


def update_action(
    action: ActiveAction,
    context: ActionContext,
    hysteresis: Optional[HysteresisState] = None
) -> ActiveAction:
    return replace(
        action,
        last_update_time=context.timestamp,
        context=context,
        hysteresis=hysteresis if hysteresis is not None else action.hysteresis
    )


def transition_to_active(action: ActiveAction, timestamp: float) -> ActiveAction:
    logger.debug(f"Action {action.id} active after {timestamp - action.start_time:.0f}ms")
    return replace(action, state=ActionState.ACTIVE, last_update_time=timestamp)


def transition_to_ending(action: ActiveAction, timestamp: float) -> ActiveAction:
    return replace(action, state=ActionState.ENDING, last_update_time=timestamp)


def is_min_duration_met(action: ActiveAction, timestamp: float, min_duration: Optional[float]) -> bool:
    if not min_duration:
        return True
    return timestamp - action.start_time >= min_duration


def is_within_grace(action: ActiveAction, timestamp: float, max_gap: Optional[float]) -> bool:
    """True while a non-matching action may be kept unchanged."""
    if max_gap is None:
        return False
    return timestamp - action.last_update_time <= max_gap


def determine_end_reason(
    action: ActiveAction,
    intent: Intent,
    frame: FrameSnapshot,
    history: Optional[Sequence[FrameSnapshot]] = None,
    calibration: Optional[CalibrationTable] = None
) -> EndReason:
    """
    Classify why an action stopped matching.

    Returns:
        CANCELLED when the modifier no longer matches, TIMEOUT when the hand
        instance left the frame, COMPLETED otherwise.
    """
    if intent.modifier is not None and not match_pattern(frame, intent.modifier, history, calibration):
        return EndReason.CANCELLED

    if not frame.hands:
        return EndReason.TIMEOUT

    if frame.find_hand(action.context.hand, action.context.hand_index) is None:
        return EndReason.TIMEOUT

    return EndReason.COMPLETED


# =============================================================================
# Action Map Queries
# =============================================================================

def freeze_actions(actions: dict[ActionKey, ActiveAction]) -> ActionMap:
    """Wrap a freshly built mapping as a read-only snapshot."""
    return MappingProxyType(dict(actions))


def get_actions_for_intent(actions: ActionMap, intent_id: str) -> list[ActiveAction]:
    return [action for action in actions.values() if action.intent_id == intent_id]


def get_actions_by_state(actions: ActionMap, state: ActionState) -> list[ActiveAction]:
    return [action for action in actions.values() if action.state == state]
