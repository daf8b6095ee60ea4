"""
Per-frame intent engine.

process_frame() is the pure per-tick driver: given a frame, the history, the
intent registry, the current actions and the engine config it returns the
events of this tick and a new action mapping. IntentEngine wraps it with the
state (history, actions, id counter) and an EventBus for subscribers.

Tick phases:
    1. Update existing actions for their own hand instance.
    2. Discover every (intent, hand) instance matching this frame.
    3. Resolve conflicts between the instances.
    4. End actions whose instance lost conflict resolution.
    5. Start actions for newly selected instances.
"""

from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

from .logger import get_logger
from .action_tracker import (
    EMPTY_ACTIONS,
    ActionIdCounter,
    ActionKey,
    ActionMap,
    ActiveAction,
    create_action,
    create_action_context,
    determine_end_reason,
    freeze_actions,
    get_actions_for_intent,
    is_min_duration_met,
    is_within_grace,
    transition_to_active,
    transition_to_ending,
    update_action,
)
from .calibration import CalibrationTable
from .config import EngineConfig, SpatialConfig, TemporalConfig
from .conflict_resolution import IntentInstance, resolve_conflicts
from .detection import FrameSnapshot, Vector3
from .event_bus import EventBus, EventCallback, Unsubscribe
from .events import AnyIntentEvent, EndEvent, StartEvent, UpdateEvent
from .frame_history import FrameHistory, add_frame, calculate_velocity
from .grid import Cell, normalized_to_cell
from .hysteresis import HysteresisState, create_hysteresis_state, update_hysteresis
from .intent import Intent, validate_registry
from .keywords import ActionState, EndReason
from .matching import HandMatch, extract_all_matching_hands

logger = get_logger("Engine")


@dataclass(frozen=True)
class FrameResult:
    """Output of one tick."""
    events: tuple[AnyIntentEvent, ...]
    actions: ActionMap


# =============================================================================
# Event Construction
# =============================================================================

def start_event(action: ActiveAction, intent: Intent) -> StartEvent:
    ctx = action.context
    return StartEvent(
        type=intent.events.start,
        id=action.id,
        timestamp=ctx.timestamp,
        position=ctx.position,
        cell=ctx.cell,
        hand=ctx.hand,
        hand_index=ctx.hand_index,
        head_index=ctx.head_index
    )


def update_event(action: ActiveAction, intent: Intent) -> UpdateEvent:
    ctx = action.context
    return UpdateEvent(
        type=intent.events.update,
        id=action.id,
        timestamp=ctx.timestamp,
        position=ctx.position,
        cell=ctx.cell,
        hand=ctx.hand,
        hand_index=ctx.hand_index,
        head_index=ctx.head_index,
        velocity=ctx.velocity,
        duration=ctx.duration
    )


def end_event(action: ActiveAction, intent: Intent, reason: EndReason, timestamp: float) -> EndEvent:
    """End event carrying the last matched context, stamped with the ending frame."""
    ctx = action.context
    return EndEvent(
        type=intent.events.end,
        id=action.id,
        timestamp=timestamp,
        position=ctx.position,
        cell=ctx.cell,
        hand=ctx.hand,
        hand_index=ctx.hand_index,
        head_index=ctx.head_index,
        velocity=ctx.velocity,
        duration=timestamp - action.start_time,
        reason=reason
    )


# =============================================================================
# Effective Settings
# =============================================================================

def resolve_temporal(intent: Intent, config: EngineConfig) -> TemporalConfig:
    """Intent timing with engine defaults filling unset fields."""
    temporal = intent.temporal
    defaults = config.temporal
    return TemporalConfig(
        min_duration=temporal.min_duration if temporal.min_duration is not None else defaults.default_min_duration,
        max_gap=temporal.max_gap if temporal.max_gap is not None else defaults.default_max_gap
    )


def resolve_spatial(intent: Intent, config: EngineConfig) -> SpatialConfig:
    return intent.spatial if intent.spatial is not None else config.spatial


def assign_cell(
    position: Vector3,
    spatial: SpatialConfig,
    state: Optional[HysteresisState]
) -> tuple[Cell, Optional[HysteresisState]]:
    """
    Grid cell for a position, sticky when hysteresis is configured.

    Returns:
        (reported cell, new hysteresis state or None without hysteresis).
    """
    if spatial.hysteresis is None:
        return normalized_to_cell(position, spatial.grid), None
    if state is None:
        state = create_hysteresis_state(normalized_to_cell(position, spatial.grid))
    else:
        state = update_hysteresis(state, position, spatial.grid, spatial.hysteresis)
    return state.stable_cell, state


def _previous_frame(history: Sequence[FrameSnapshot], frame: FrameSnapshot) -> Optional[FrameSnapshot]:
    for past in reversed(history):
        if past.timestamp < frame.timestamp:
            return past
    return None


def _find_hand(matches: Iterable[HandMatch], hand: str, hand_index: int) -> Optional[HandMatch]:
    return next((m for m in matches if m.hand == hand and m.hand_index == hand_index), None)


# =============================================================================
# Frame Processing
# =============================================================================

def process_frame(
    frame: FrameSnapshot,
    history: Sequence[FrameSnapshot],
    intents: Sequence[Intent],
    actions: ActionMap,
    config: Optional[EngineConfig] = None,
    id_counter: Optional[ActionIdCounter] = None,
    calibration: Optional[CalibrationTable] = None
) -> FrameResult:
    """
    Run one tick of intent recognition.

    Inputs are not modified. With id_counter left as None a fresh counter is
    used, so identical inputs always give identical results.

    Args:
        frame: Current frame.
        history: Frame history, oldest first (may already contain frame).
        intents: Intent registry, in priority tie-break order.
        actions: Actions from the previous tick.
        config: Engine configuration (defaults when None).
        id_counter: Sequence source for new action ids.
        calibration: Threshold table for contact patterns.

    Returns:
        FrameResult with this tick's events and the new action mapping.
    """
    config = config if config is not None else EngineConfig()
    counter = id_counter if id_counter is not None else ActionIdCounter()
    timestamp = frame.timestamp
    intents_by_id = {intent.id: intent for intent in intents}
    previous = _previous_frame(history, frame)

    match_cache: dict[str, list[HandMatch]] = {}

    def matching_hands(intent: Intent, target: FrameSnapshot = frame) -> list[HandMatch]:
        if target is frame and intent.id in match_cache:
            return match_cache[intent.id]
        found = []
        if intent.matches(target, history, calibration):
            found = extract_all_matching_hands(target, intent.pattern, history, calibration)
        if target is frame:
            match_cache[intent.id] = found
        return found

    events: list[AnyIntentEvent] = []
    next_actions: dict[ActionKey, ActiveAction] = {}

    # 1. Update existing actions
    for key, action in actions.items():
        intent = intents_by_id.get(action.intent_id)
        if intent is None:
            logger.debug(f"Dropping action {action.id}: intent '{action.intent_id}' is not registered")
            continue

        temporal = resolve_temporal(intent, config)
        hand_match = _find_hand(matching_hands(intent), key.hand, key.hand_index)

        if hand_match is not None:
            cell, hysteresis = assign_cell(hand_match.position, resolve_spatial(intent, config), action.hysteresis)

            velocity = Vector3.zero()
            if previous is not None:
                def tracked_position(f: FrameSnapshot) -> Optional[Vector3]:
                    if f is frame:
                        return hand_match.position
                    prior = _find_hand(matching_hands(intent, f), key.hand, key.hand_index)
                    return prior.position if prior is not None else None

                velocity = calculate_velocity(frame, previous, tracked_position)

            context = create_action_context(
                action, timestamp, hand_match.position, cell, velocity, hand_match.head_index
            )
            updated = update_action(action, context, hysteresis)

            if updated.state == ActionState.PENDING:
                if is_min_duration_met(updated, timestamp, temporal.min_duration):
                    updated = transition_to_active(updated, timestamp)
                    events.append(start_event(updated, intent))
            else:
                events.append(update_event(updated, intent))

            next_actions[key] = updated
            continue

        if is_within_grace(action, timestamp, temporal.max_gap):
            next_actions[key] = action
            continue

        if action.state == ActionState.PENDING:
            logger.debug(f"Pending action {action.id} dropped before start")
            continue

        reason = determine_end_reason(action, intent, frame, history, calibration)
        logger.debug(f"Action {action.id} ended ({reason.value})")
        events.append(end_event(transition_to_ending(action, timestamp), intent, reason, timestamp))

    # 2. Discover matching instances
    instances: list[IntentInstance] = []
    for intent in intents:
        for hand_match in matching_hands(intent):
            instances.append(IntentInstance(
                intent=intent,
                hand=hand_match.hand,
                hand_index=hand_match.hand_index,
                head_index=hand_match.head_index,
                position=hand_match.position,
                landmarks=hand_match.landmarks
            ))

    # 3. Resolve conflicts
    selected = resolve_conflicts(instances, config)
    selected_keys = {ActionKey(*instance.key) for instance in selected}
    matching_keys = {ActionKey(*instance.key) for instance in instances}

    # 4. Evict actions that lost conflict resolution
    for key in [k for k in next_actions if k in matching_keys and k not in selected_keys]:
        evicted = next_actions.pop(key)
        logger.debug(f"Action {evicted.id} evicted by conflict resolution")
        if evicted.state == ActionState.ACTIVE:
            events.append(end_event(
                transition_to_ending(evicted, timestamp),
                intents_by_id[key.intent_id],
                EndReason.CANCELLED,
                timestamp
            ))

    # 5. Start newly selected instances
    for instance in selected:
        key = ActionKey(*instance.key)
        if key in next_actions:
            continue

        temporal = resolve_temporal(instance.intent, config)
        cell, hysteresis = assign_cell(instance.position, resolve_spatial(instance.intent, config), None)
        state = ActionState.PENDING if temporal.min_duration else ActionState.ACTIVE

        action = create_action(
            intent_id=instance.intent.id,
            hand=instance.hand,
            hand_index=instance.hand_index,
            head_index=instance.head_index,
            position=instance.position,
            cell=cell,
            timestamp=timestamp,
            counter=counter,
            state=state,
            hysteresis=hysteresis
        )
        next_actions[key] = action

        if state == ActionState.ACTIVE:
            logger.debug(f"Action {action.id} started")
            events.append(start_event(action, instance.intent))

    return FrameResult(events=tuple(events), actions=freeze_actions(next_actions))


# =============================================================================
# Stateful Engine
# =============================================================================

class IntentEngine:
    """
    Stateful wrapper around process_frame().

    Owns the frame history, the current actions, the action id counter and an
    EventBus. Each process_frame() call replaces the history and action
    snapshots with new ones, so references handed out earlier stay valid.
    """

    def __init__(
        self,
        intents: Iterable[Intent],
        config: Optional[EngineConfig] = None,
        calibration: Optional[CalibrationTable] = None,
        id_counter: Optional[ActionIdCounter] = None,
        event_bus: Optional[EventBus] = None
    ):
        """
        Initialize the engine.

        Args:
            intents: Intent registry.
            config: Engine configuration.
            calibration: Threshold table (bundled table when None).
            id_counter: Action id counter (fresh counter when None).
            event_bus: Bus to publish on (new bus when None).

        Raises:
            IntentDefinitionError: If the registry is invalid.
        """
        self._intents = validate_registry(intents)
        self._config = config if config is not None else EngineConfig()
        self._calibration = calibration
        self._counter = id_counter if id_counter is not None else ActionIdCounter()
        self._bus = event_bus if event_bus is not None else EventBus()

        self._history: FrameHistory = ()
        self._actions: ActionMap = EMPTY_ACTIONS

        logger.info(
            f"IntentEngine initialized ({len(self._intents)} intents, "
            f"history={self._config.history_size}, "
            f"grid={self._config.spatial.grid.cols}x{self._config.spatial.grid.rows})"
        )

    @property
    def intents(self) -> tuple[Intent, ...]:
        return self._intents

    @property
    def config(self) -> EngineConfig:
        return self._config

    @property
    def history(self) -> FrameHistory:
        return self._history

    @property
    def actions(self) -> ActionMap:
        return self._actions

    @property
    def event_bus(self) -> EventBus:
        return self._bus

    def process_frame(self, frame: FrameSnapshot) -> list[AnyIntentEvent]:
        """
        Process one frame and publish its events.

        Returns:
            Events emitted for this frame, in emission order.
        """
        self._history = add_frame(self._history, frame, self._config.history_size)
        result = process_frame(
            frame,
            self._history,
            self._intents,
            self._actions,
            self._config,
            self._counter,
            self._calibration
        )
        self._actions = result.actions
        self._bus.emit_all(result.events)
        return list(result.events)

    def on(self, event_type: str, callback: EventCallback) -> Unsubscribe:
        return self._bus.on(event_type, callback)

    def on_any(self, callback: EventCallback) -> Unsubscribe:
        return self._bus.on_any(callback)

    def get_actions_for_intent(self, intent_id: str) -> list[ActiveAction]:
        return get_actions_for_intent(self._actions, intent_id)

    def reset(self) -> None:
        """Drop history and actions without emitting End events. Subscriptions stay."""
        self._history = ()
        self._actions = EMPTY_ACTIONS
        logger.debug("IntentEngine state reset")
