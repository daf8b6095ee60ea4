"""
Demo intent set for a particle playground.

Two-hand paradigm: one hand pinches to pick a color (modifier), the other
points up to spawn (action). Either hand can take either role. Single-hand
gestures drive vortex, repel and clear effects on each hand separately.
"""

from .config import (
    EXAMPLE_MAX_GAP_MS,
    EXAMPLE_MIN_DURATION_MS,
    EngineConfig,
    GridConfig,
    GroupLimit,
    HysteresisConfig,
    SpatialConfig,
    TemporalDefaults,
)
from .intent import Intent, define_intent
from .keywords import Hand, Strategy
from .patterns import bidirectional, gestures, pinches

# Resolution groups
SPAWN_GROUP = "spawn"
VORTEX_GROUP = "vortex"

MODIFIER_PRIORITY = 10  # Colored spawns beat the plain spawn


# =============================================================================
# Single-Hand Intents
# =============================================================================

# Fallback spawn, loses to any colored spawn on the same hand
spawn_simple = define_intent(
    "particles:spawn:simple",
    gestures.pointing_up.with_hand(Hand.ANY).primary(),
    min_duration=EXAMPLE_MIN_DURATION_MS,
    max_gap=EXAMPLE_MAX_GAP_MS,
    group=SPAWN_GROUP
)

# Timing comes from the engine defaults
vortex = define_intent(
    "particles:vortex",
    gestures.closed_fist.with_hand(Hand.ANY).primary(),
    group=VORTEX_GROUP
)

finger_vortex_left = define_intent(
    "particles:vortex:finger:left",
    gestures.victory.with_hand(Hand.LEFT).primary(),
    min_duration=EXAMPLE_MIN_DURATION_MS * 4,
    max_gap=EXAMPLE_MAX_GAP_MS,
    group=VORTEX_GROUP
)

finger_vortex_right = define_intent(
    "particles:vortex:finger:right",
    gestures.victory.with_hand(Hand.RIGHT).primary(),
    min_duration=EXAMPLE_MIN_DURATION_MS * 4,
    max_gap=EXAMPLE_MAX_GAP_MS,
    group=VORTEX_GROUP
)

# Open palm scores low on the recognizer, hence the relaxed confidence
repel = define_intent(
    "particles:repel",
    gestures.open_palm.with_hand(Hand.ANY).with_confidence(0.485).primary(),
    min_duration=EXAMPLE_MIN_DURATION_MS,
    max_gap=EXAMPLE_MAX_GAP_MS
)

clear = define_intent(
    "particles:clear",
    gestures.thumb_up.with_hand(Hand.ANY).primary(),
    min_duration=EXAMPLE_MIN_DURATION_MS * 15,
    max_gap=EXAMPLE_MAX_GAP_MS * 2
)


# =============================================================================
# Two-Hand Modifier Intents
# =============================================================================

def _colored_spawn(color: str, pattern) -> Intent:
    return define_intent(
        f"particles:spawn:modified:{color}",
        pattern,
        min_duration=EXAMPLE_MIN_DURATION_MS,
        max_gap=EXAMPLE_MAX_GAP_MS,
        group=SPAWN_GROUP,
        priority=MODIFIER_PRIORITY
    )


spawn_blue = _colored_spawn("blue", bidirectional(pinches.index, gestures.pointing_up))
spawn_green = _colored_spawn("green", bidirectional(pinches.middle, gestures.pointing_up))
# Victory on either hand is a shortcut for red
spawn_red = _colored_spawn(
    "red",
    bidirectional(pinches.ring, gestures.pointing_up).or_(gestures.victory.with_hand(Hand.ANY).primary())
)
spawn_yellow = _colored_spawn("yellow", bidirectional(pinches.pinky, gestures.pointing_up))


EXAMPLE_INTENTS: tuple[Intent, ...] = (
    vortex,
    finger_vortex_left,
    finger_vortex_right,
    repel,
    clear,
    spawn_blue,
    spawn_green,
    spawn_red,
    spawn_yellow,
    spawn_simple,
)

EXAMPLE_GROUP_LIMITS: dict[str, GroupLimit] = {
    SPAWN_GROUP: GroupLimit(max=1, strategy=Strategy.WINNER_TAKES_ALL.value),
    VORTEX_GROUP: GroupLimit(max=1, strategy=Strategy.WINNER_TAKES_ALL.value),
}


def example_engine_config() -> EngineConfig:
    """Engine settings the demo intents were tuned with."""
    return EngineConfig(
        history_size=30,
        spatial=SpatialConfig(grid=GridConfig(cols=8, rows=6), hysteresis=HysteresisConfig(threshold=0.1)),
        temporal=TemporalDefaults(
            default_min_duration=EXAMPLE_MIN_DURATION_MS,
            default_max_gap=EXAMPLE_MAX_GAP_MS
        ),
        group_limits=dict(EXAMPLE_GROUP_LIMITS)
    )
