"""
Intent definitions.

An intent binds a pattern (and optional modifier) to timing, spatial and
conflict-resolution settings. Definitions are validated once, when they are
created, so per-frame processing never has to deal with bad configuration.
"""

from dataclasses import dataclass, field
from numbers import Real
from typing import Iterable, Optional, Sequence

from .calibration import CalibrationTable
from .config import ResolutionConfig, SpatialConfig, TemporalConfig
from .detection import FrameSnapshot
from .events import PHASE_SEPARATOR, IntentEventTypes
from .keywords import EventPhase
from .matching import match_pattern
from .patterns import Pattern, is_pattern, pattern_specificity


class IntentDefinitionError(Exception):
    """Raised when an intent definition or registry is invalid."""
    pass


def _validate_spatial(intent_id: str, spatial: SpatialConfig) -> None:
    if spatial.grid.cols <= 0 or spatial.grid.rows <= 0:
        raise IntentDefinitionError(
            f"Intent '{intent_id}': grid must be positive, got {spatial.grid.cols}x{spatial.grid.rows}"
        )
    if spatial.hysteresis is not None and not 0.0 <= spatial.hysteresis.threshold <= 1.0:
        raise IntentDefinitionError(
            f"Intent '{intent_id}': hysteresis threshold must be within [0, 1], got {spatial.hysteresis.threshold}"
        )


@dataclass(frozen=True)
class Intent:
    """
    A registered gesture rule.

    Attributes:
        id: Unique intent id, used as the event type prefix.
        pattern: Action pattern that drives the action.
        modifier: Optional gating pattern that must match as well.
        temporal: min_duration / max_gap in milliseconds.
        resolution: Conflict group and priority.
        spatial: Grid and hysteresis overriding the engine's.
        specificity: Derived from the pattern, used as a priority tie-break.
        events: Event type strings (start, update, end, any).
    """
    id: str
    pattern: Pattern
    modifier: Optional[Pattern] = None
    temporal: TemporalConfig = field(default_factory=TemporalConfig)
    resolution: ResolutionConfig = field(default_factory=ResolutionConfig)
    spatial: Optional[SpatialConfig] = None
    specificity: int = field(init=False)
    events: IntentEventTypes = field(init=False)

    def __post_init__(self):
        if not isinstance(self.id, str) or not self.id.strip():
            raise IntentDefinitionError("Intent id must be a non-empty string")

        suffix = self.id.rpartition(PHASE_SEPARATOR)[2]
        if PHASE_SEPARATOR in self.id and suffix in EventPhase.ALL:
            raise IntentDefinitionError(
                f"Intent id '{self.id}' must not end with a phase suffix ({', '.join(EventPhase.ALL)})"
            )

        if not is_pattern(self.pattern):
            raise IntentDefinitionError(f"Intent '{self.id}': unsupported pattern {self.pattern!r}")
        if self.modifier is not None and not is_pattern(self.modifier):
            raise IntentDefinitionError(f"Intent '{self.id}': unsupported modifier {self.modifier!r}")

        for name in ("min_duration", "max_gap"):
            value = getattr(self.temporal, name)
            if value is not None and value < 0:
                raise IntentDefinitionError(f"Intent '{self.id}': {name} must not be negative, got {value}")

        priority = self.resolution.priority
        if isinstance(priority, bool) or not isinstance(priority, Real):
            raise IntentDefinitionError(f"Intent '{self.id}': priority must be a number, got {priority!r}")

        if self.spatial is not None:
            _validate_spatial(self.id, self.spatial)

        object.__setattr__(self, "specificity", pattern_specificity(self.pattern))
        object.__setattr__(self, "events", IntentEventTypes.for_intent(self.id))

    @property
    def group(self) -> Optional[str]:
        return self.resolution.group

    @property
    def priority(self) -> float:
        return self.resolution.priority

    def matches(
        self,
        frame: FrameSnapshot,
        history: Optional[Sequence[FrameSnapshot]] = None,
        calibration: Optional[CalibrationTable] = None
    ) -> bool:
        """Modifier (if any) and pattern both match the frame."""
        if self.modifier is not None and not match_pattern(frame, self.modifier, history, calibration):
            return False
        return match_pattern(frame, self.pattern, history, calibration)


def define_intent(
    intent_id: str,
    pattern: Pattern,
    modifier: Optional[Pattern] = None,
    min_duration: Optional[float] = None,
    max_gap: Optional[float] = None,
    group: Optional[str] = None,
    priority: float = 0,
    spatial: Optional[SpatialConfig] = None
) -> Intent:
    """
    Build an Intent from flat keyword settings.

    Raises:
        IntentDefinitionError: If any setting is invalid.
    """
    return Intent(
        id=intent_id,
        pattern=pattern,
        modifier=modifier,
        temporal=TemporalConfig(min_duration=min_duration, max_gap=max_gap),
        resolution=ResolutionConfig(group=group, priority=priority),
        spatial=spatial
    )


def validate_registry(intents: Iterable[Intent]) -> tuple[Intent, ...]:
    """
    Validate an intent registry.

    Returns:
        The intents as a tuple, in registration order.

    Raises:
        IntentDefinitionError: On non-Intent entries or duplicate ids.
    """
    registry = tuple(intents)
    seen: set[str] = set()
    for intent in registry:
        if not isinstance(intent, Intent):
            raise IntentDefinitionError(f"Registry entry is not an Intent: {intent!r}")
        if intent.id in seen:
            raise IntentDefinitionError(f"Duplicate intent id: '{intent.id}'")
        seen.add(intent.id)
    return registry
