"""
Declarative pattern DSL.

Patterns are immutable dataclasses tagged by pattern_type. Fluent modifiers
return new patterns and record the applied modifier in traits, which feeds
the specificity score used for conflict tie-breaking.

    left_fist = gesture(GestureName.CLOSED_FIST).with_hand("left")
    right_pinch = pinch("index").with_hand("right").with_threshold(0.06)
    either = any_of(left_fist, right_pinch)
    two_handed = bidirectional(pinches.index, gestures.pointing_up)
"""

from dataclasses import dataclass, field, replace
from types import SimpleNamespace
from typing import Optional, Union

from .calibration import CalibrationTable, default_calibration_table
from .keywords import ContactType, GestureName, Hand, PatternType, SequenceMode


class PatternMixin:
    """Fluent modifiers shared by every pattern type."""

    def _clone(self, **changes) -> "Pattern":
        traits = set(self.traits)
        traits.update(f"with_{key}" for key in changes)
        return replace(self, traits=frozenset(traits), **changes)

    def primary(self) -> "Pattern":
        """Mark this pattern as the one whose hand and position an enclosing composite reports."""
        return replace(self, is_primary=True)

    def or_(self, other: "Pattern") -> "CompositePattern":
        return any_of(self, other)

    def and_(self, other: "Pattern") -> "CompositePattern":
        return all_of(self, other)


class _HandPatternMixin(PatternMixin):

    def with_hand(self, hand: str) -> "Pattern":
        if hand not in Hand.SELECTORS:
            raise ValueError(f"Unknown hand selector: {hand!r}")
        return self._clone(hand=hand)

    def with_hand_index(self, hand_index: int) -> "Pattern":
        """Pin the pattern to one hand instance (0-3)."""
        return self._clone(hand_index=hand_index)


@dataclass(frozen=True)
class GesturePattern(_HandPatternMixin):
    """
    Recognizer gesture label on a hand.

    Attributes:
        gesture: Gesture label (GestureName value).
        hand: Hand selector ('left', 'right' or 'any').
        confidence: Minimum gesture score.
        hand_index: Optional pinned hand instance.
    """
    gesture: str
    hand: str = Hand.ANY
    confidence: float = 0.7
    hand_index: Optional[int] = None
    is_primary: bool = False
    traits: frozenset = field(default_factory=frozenset)

    pattern_type = PatternType.GESTURE

    def with_confidence(self, confidence: float) -> "GesturePattern":
        return self._clone(confidence=confidence)


@dataclass(frozen=True)
class ContactPattern(_HandPatternMixin):
    """
    Thumb tip touching one of the listed fingertips.

    Attributes:
        fingers: Finger names; any of them touching the thumb matches.
        hand: Hand selector.
        threshold: Distance threshold; None uses each finger's calibrated value.
        contact_type: ContactType value.
        hand_index: Optional pinned hand instance.
    """
    fingers: tuple[str, ...]
    hand: str = Hand.ANY
    threshold: Optional[float] = None
    contact_type: str = ContactType.PINCH
    hand_index: Optional[int] = None
    is_primary: bool = False
    traits: frozenset = field(default_factory=frozenset)

    pattern_type = PatternType.CONTACT

    def with_threshold(self, threshold: float) -> "ContactPattern":
        return self._clone(threshold=threshold)


@dataclass(frozen=True)
class CompositePattern(PatternMixin):
    """AND (allOf) or OR (anyOf) over sub-patterns."""
    kind: str
    patterns: tuple
    primary_index: Optional[int] = None
    is_primary: bool = False
    traits: frozenset = field(default_factory=frozenset)

    @property
    def pattern_type(self) -> str:
        return self.kind

    def with_primary(self, index: int) -> "CompositePattern":
        """Use sub-pattern index as the position/hand source when none is marked primary."""
        return self._clone(primary_index=index)


@dataclass(frozen=True)
class SequencePattern(PatternMixin):
    """
    Sub-patterns evaluated together (concurrent) or in order over time (sequential).

    Attributes:
        patterns: Sub-patterns, in order.
        mode: SequenceMode value.
        window_ms: Sequential window in milliseconds; None searches the whole history.
        primary_index: Fallback position/hand source.
    """
    patterns: tuple
    mode: str = SequenceMode.CONCURRENT
    window_ms: Optional[float] = None
    primary_index: Optional[int] = None
    is_primary: bool = False
    traits: frozenset = field(default_factory=frozenset)

    pattern_type = PatternType.SEQUENCE

    def with_mode(self, mode: str) -> "SequencePattern":
        if mode not in (SequenceMode.CONCURRENT, SequenceMode.SEQUENTIAL):
            raise ValueError(f"Unknown sequence mode: {mode!r}")
        return self._clone(mode=mode)

    def within(self, window_ms: float) -> "SequencePattern":
        return self._clone(window_ms=window_ms)

    def with_primary(self, index: int) -> "SequencePattern":
        return self._clone(primary_index=index)


Pattern = Union[GesturePattern, ContactPattern, CompositePattern, SequencePattern]
SIMPLE_PATTERN_TYPES = (GesturePattern, ContactPattern)
COMPOUND_PATTERN_TYPES = (CompositePattern, SequencePattern)


# =============================================================================
# Builders
# =============================================================================

def gesture(name: str, calibration: Optional[CalibrationTable] = None) -> GesturePattern:
    """
    Gesture pattern with the calibrated recommended confidence.

    Args:
        name: Gesture label.
        calibration: Table to read the threshold from (bundled table by default).
    """
    table = calibration if calibration is not None else default_calibration_table()
    return GesturePattern(gesture=name, confidence=table.gesture_threshold(name))


def pinch(finger: str, calibration: Optional[CalibrationTable] = None) -> ContactPattern:
    """Thumb-to-finger pinch with the finger's calibrated recommended threshold."""
    table = calibration if calibration is not None else default_calibration_table()
    return ContactPattern(fingers=(finger,), threshold=table.pinch_threshold(finger))


def contact(*fingers: str, threshold: Optional[float] = None, contact_type: str = ContactType.PINCH) -> ContactPattern:
    """
    Contact between the thumb and any of several fingers.

    Without a threshold each finger is checked against its own calibrated
    threshold at match time.
    """
    if not fingers:
        raise ValueError("contact() needs at least one finger")
    return ContactPattern(fingers=tuple(fingers), threshold=threshold, contact_type=contact_type)


def any_of(*patterns: Pattern) -> CompositePattern:
    return CompositePattern(kind=PatternType.ANY_OF, patterns=tuple(patterns))


def all_of(*patterns: Pattern) -> CompositePattern:
    return CompositePattern(kind=PatternType.ALL_OF, patterns=tuple(patterns))


def sequence(*patterns: Pattern) -> SequencePattern:
    return SequencePattern(patterns=tuple(patterns))


def bidirectional(modifier: Pattern, action: Pattern) -> CompositePattern:
    """
    Two-hand pattern matching in either hand assignment.

    Matches modifier on the left with action on the right, or the mirror
    image. The action side is marked primary, so the composite reports the
    action hand and its position.

    Args:
        modifier: Gating pattern (for example a pinch). Must accept with_hand.
        action: Pattern whose hand becomes the actor.

    Returns:
        anyOf over the two allOf assignments.
    """
    return any_of(
        all_of(modifier.with_hand(Hand.LEFT), action.primary().with_hand(Hand.RIGHT)),
        all_of(modifier.with_hand(Hand.RIGHT), action.primary().with_hand(Hand.LEFT)),
    )


# =============================================================================
# Specificity
# =============================================================================

def pattern_specificity(pattern: Pattern) -> int:
    """
    Static score of how narrowly a pattern is constrained.

    Simple patterns score 1, plus 5 when pinned to a hand side. allOf scores
    10 + 5 per child plus the children's scores, anyOf a flat 2, sequences
    15 + 7 per child plus the children's scores. Each applied modifier adds 2.
    """
    if isinstance(pattern, SIMPLE_PATTERN_TYPES):
        score = 1
        if pattern.hand != Hand.ANY:
            score += 5
    elif isinstance(pattern, SequencePattern):
        score = 15 + 7 * len(pattern.patterns)
        score += sum(pattern_specificity(p) for p in pattern.patterns)
    elif isinstance(pattern, CompositePattern) and pattern.kind == PatternType.ALL_OF:
        score = 10 + 5 * len(pattern.patterns)
        score += sum(pattern_specificity(p) for p in pattern.patterns)
    elif isinstance(pattern, CompositePattern):
        score = 2
    else:
        return 0

    return score + 2 * len(pattern.traits)


def is_pattern(value) -> bool:
    if isinstance(value, SIMPLE_PATTERN_TYPES + COMPOUND_PATTERN_TYPES):
        if isinstance(value, COMPOUND_PATTERN_TYPES):
            return all(is_pattern(p) for p in value.patterns)
        return True
    return False


# Prebuilt patterns for the recognizer's gestures and the four pinches
gestures = SimpleNamespace(
    closed_fist=gesture(GestureName.CLOSED_FIST),
    open_palm=gesture(GestureName.OPEN_PALM),
    pointing_up=gesture(GestureName.POINTING_UP),
    thumb_up=gesture(GestureName.THUMB_UP),
    thumb_down=gesture(GestureName.THUMB_DOWN),
    victory=gesture(GestureName.VICTORY),
    i_love_you=gesture(GestureName.I_LOVE_YOU),
)

pinches = SimpleNamespace(
    index=pinch("index"),
    middle=pinch("middle"),
    ring=pinch("ring"),
    pinky=pinch("pinky"),
)
