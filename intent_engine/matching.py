"""
Pattern matching against frame snapshots.

Every function here is a pure predicate or extractor over one frame (plus
history for sequential patterns). Bad or incomplete detection data never
raises: short landmark lists, unknown labels and unknown fingers simply do
not match.
"""

from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np

from .logger import get_logger
from .calibration import CalibrationTable, default_calibration_table
from .config import HAND_LANDMARK_COUNT
from .detection import (
    FINGERTIP_INDICES,
    FrameSnapshot,
    HandDetection,
    Landmark,
    LandmarkIndex,
    Vector3,
)
from .keywords import GestureName, Hand, PatternType, SequenceMode
from .patterns import (
    CompositePattern,
    ContactPattern,
    GesturePattern,
    Pattern,
    SequencePattern,
    SIMPLE_PATTERN_TYPES,
    COMPOUND_PATTERN_TYPES,
)

logger = get_logger("Matching")

PALM_CENTER_INDICES = (
    LandmarkIndex.WRIST,
    LandmarkIndex.INDEX_MCP,
    LandmarkIndex.MIDDLE_MCP,
    LandmarkIndex.RING_MCP,
    LandmarkIndex.PINKY_MCP,
)

# Reference landmarks used as the reported position of each gesture
GESTURE_POSITION_INDICES: dict[str, tuple[int, ...]] = {
    GestureName.CLOSED_FIST: PALM_CENTER_INDICES,
    GestureName.OPEN_PALM: PALM_CENTER_INDICES,
    GestureName.POINTING_UP: (LandmarkIndex.INDEX_TIP,),
    GestureName.THUMB_UP: (LandmarkIndex.THUMB_TIP,),
    GestureName.THUMB_DOWN: (LandmarkIndex.THUMB_TIP,),
    GestureName.VICTORY: (LandmarkIndex.INDEX_TIP, LandmarkIndex.MIDDLE_TIP),
}


@dataclass(frozen=True)
class HandMatch:
    """
    A hand instance satisfying a pattern.

    Attributes:
        hand: 'left' or 'right'.
        hand_index: Hand instance index.
        head_index: Person the hand belongs to.
        landmarks: The hand's landmarks.
        position: Pattern-specific reference position.
    """
    hand: str
    hand_index: int
    head_index: int
    landmarks: tuple[Landmark, ...]
    position: Vector3


def matches_hand(handedness: str, selector: str) -> bool:
    if handedness not in Hand.DETECTED:
        return False
    return selector == Hand.ANY or handedness == selector


def _hand_selected(hand: HandDetection, pattern: Pattern) -> bool:
    if not matches_hand(hand.handedness, pattern.hand):
        return False
    return pattern.hand_index is None or hand.hand_index == pattern.hand_index


# =============================================================================
# Landmark Geometry
# =============================================================================

def _mean_position(landmarks: Sequence[Landmark], indices: Sequence[int]) -> Optional[Vector3]:
    if any(index >= len(landmarks) for index in indices):
        return None
    points = np.array([[landmarks[i].x, landmarks[i].y, landmarks[i].z] for i in indices])
    return Vector3.from_array(points.mean(axis=0))


def _wrist_position(landmarks: Sequence[Landmark]) -> Vector3:
    if not landmarks:
        return Vector3.zero()
    return landmarks[LandmarkIndex.WRIST].to_position()


def contact_distance(hand: HandDetection, finger: str) -> Optional[float]:
    """
    3D distance between the thumb tip and a fingertip.

    Returns:
        Distance, or None when the finger is unknown or the hand does not carry
        exactly the 21-point landmark set.
    """
    if finger not in FINGERTIP_INDICES or finger == "thumb":
        return None
    if len(hand.landmarks) != HAND_LANDMARK_COUNT:
        return None

    thumb = hand.landmarks[LandmarkIndex.THUMB_TIP]
    tip = hand.landmarks[FINGERTIP_INDICES[finger]]
    offset = np.array([tip.x - thumb.x, tip.y - thumb.y, tip.z - thumb.z])
    return float(np.linalg.norm(offset))


# =============================================================================
# Per-hand Predicates
# =============================================================================

def hand_matches_gesture(hand: HandDetection, pattern: GesturePattern) -> bool:
    return (
        _hand_selected(hand, pattern)
        and hand.gesture == pattern.gesture
        and hand.gesture_score >= pattern.confidence
    )


def hand_matches_contact(
    hand: HandDetection,
    pattern: ContactPattern,
    calibration: Optional[CalibrationTable] = None
) -> bool:
    """
    Check whether any requested finger touches the thumb on this hand.

    A finger touches when its distance is strictly below the pattern
    threshold, or the finger's calibrated threshold when the pattern has none.
    """
    if not _hand_selected(hand, pattern):
        return False

    table = calibration if calibration is not None else default_calibration_table()
    for finger in pattern.fingers:
        distance = contact_distance(hand, finger)
        if distance is None:
            continue
        if table.meets_pinch_threshold(finger, distance, pattern.threshold):
            return True
    return False


def _hand_matches_simple(
    hand: HandDetection,
    pattern: Pattern,
    calibration: Optional[CalibrationTable]
) -> bool:
    if isinstance(pattern, GesturePattern):
        return hand_matches_gesture(hand, pattern)
    return hand_matches_contact(hand, pattern, calibration)


# =============================================================================
# Frame Matching
# =============================================================================

def match_pattern(
    frame: FrameSnapshot,
    pattern: Pattern,
    history: Optional[Sequence[FrameSnapshot]] = None,
    calibration: Optional[CalibrationTable] = None
) -> bool:
    """
    Evaluate a pattern against a frame.

    Args:
        frame: Current frame.
        pattern: Pattern to evaluate.
        history: Frame history, oldest first (needed by sequential patterns).
        calibration: Threshold table for contact patterns without a threshold.

    Returns:
        True if the pattern is satisfied. Unknown pattern objects never match.
    """
    if isinstance(pattern, SIMPLE_PATTERN_TYPES):
        return any(_hand_matches_simple(hand, pattern, calibration) for hand in frame.hands)

    if isinstance(pattern, CompositePattern):
        if pattern.kind == PatternType.ANY_OF:
            return any(match_pattern(frame, p, history, calibration) for p in pattern.patterns)
        if pattern.kind == PatternType.ALL_OF:
            return all(match_pattern(frame, p, history, calibration) for p in pattern.patterns)
        logger.warning(f"Unknown composite kind: {pattern.kind!r}")
        return False

    if isinstance(pattern, SequencePattern):
        return _match_sequence(frame, pattern, history, calibration)

    logger.warning(f"Unknown pattern type: {type(pattern).__name__}")
    return False


def _match_sequence(
    frame: FrameSnapshot,
    pattern: SequencePattern,
    history: Optional[Sequence[FrameSnapshot]],
    calibration: Optional[CalibrationTable]
) -> bool:
    if pattern.mode == SequenceMode.CONCURRENT:
        return all(match_pattern(frame, p, history, calibration) for p in pattern.patterns)

    if not history or not pattern.patterns:
        return False

    *leading, last = pattern.patterns
    if not match_pattern(frame, last, history, calibration):
        return False

    cutoff = frame.timestamp - pattern.window_ms if pattern.window_ms is not None else float("-inf")
    step = 0
    for past in history:
        if step == len(leading):
            break
        if past.timestamp < cutoff or past.timestamp >= frame.timestamp:
            continue
        if match_pattern(past, leading[step], None, calibration):
            step += 1
    return step == len(leading)


# =============================================================================
# Position
# =============================================================================

def find_primary_pattern(
    patterns: Sequence[Pattern],
    frame: Optional[FrameSnapshot] = None,
    inside_any_of: bool = False,
    calibration: Optional[CalibrationTable] = None
) -> Optional[Pattern]:
    """
    Find the sub-pattern marked with primary().

    With a frame, only branches that currently match are searched below an
    anyOf, so bidirectional patterns resolve to the active assignment.
    """
    for pattern in patterns:
        if inside_any_of and frame is not None and not match_pattern(frame, pattern, None, calibration):
            continue
        if pattern.is_primary:
            return pattern
        if not isinstance(pattern, COMPOUND_PATTERN_TYPES):
            continue

        if isinstance(pattern, CompositePattern) and pattern.kind == PatternType.ANY_OF and frame is not None:
            nested = find_primary_pattern(pattern.patterns, frame, True, calibration)
            if nested is not None:
                return nested
            continue

        nested = find_primary_pattern(pattern.patterns, frame, inside_any_of, calibration)
        if nested is not None:
            return nested
    return None


def calculate_pattern_position(
    pattern: Pattern,
    landmarks: Sequence[Landmark],
    frame: Optional[FrameSnapshot] = None,
    calibration: Optional[CalibrationTable] = None
) -> Vector3:
    """
    Reference position of a pattern on a hand.

    Contacts report the midpoint between thumb and first fingertip, gestures a
    gesture-specific landmark center, composites the position of their primary
    sub-pattern. Falls back to the wrist.
    """
    if isinstance(pattern, ContactPattern):
        tip = FINGERTIP_INDICES.get(pattern.fingers[0]) if pattern.fingers else None
        if tip is not None:
            position = _mean_position(landmarks, (LandmarkIndex.THUMB_TIP, tip))
            if position is not None:
                return position
        return _wrist_position(landmarks)

    if isinstance(pattern, GesturePattern):
        indices = GESTURE_POSITION_INDICES.get(pattern.gesture)
        if indices is not None:
            position = _mean_position(landmarks, indices)
            if position is not None:
                return position
        return _wrist_position(landmarks)

    if isinstance(pattern, COMPOUND_PATTERN_TYPES):
        below_any_of = isinstance(pattern, CompositePattern) and pattern.kind == PatternType.ANY_OF
        primary = find_primary_pattern(pattern.patterns, frame, below_any_of, calibration)
        if primary is not None:
            return calculate_pattern_position(primary, landmarks, frame, calibration)
        if pattern.primary_index is not None and 0 <= pattern.primary_index < len(pattern.patterns):
            indexed = pattern.patterns[pattern.primary_index]
            return calculate_pattern_position(indexed, landmarks, frame, calibration)

    return _wrist_position(landmarks)


# =============================================================================
# Hand Extraction
# =============================================================================

def _to_match(
    hand: HandDetection,
    pattern: Pattern,
    frame: FrameSnapshot,
    calibration: Optional[CalibrationTable]
) -> HandMatch:
    return HandMatch(
        hand=hand.handedness,
        hand_index=hand.hand_index,
        head_index=hand.head_index,
        landmarks=hand.landmarks,
        position=calculate_pattern_position(pattern, hand.landmarks, frame, calibration)
    )


def _first_hand(frame: FrameSnapshot, handedness: str) -> Optional[HandDetection]:
    return next((h for h in frame.hands if h.handedness == handedness), None)


def _hand_for_subpattern(
    frame: FrameSnapshot,
    pattern: Pattern,
    calibration: Optional[CalibrationTable]
) -> Optional[HandDetection]:
    if isinstance(pattern, SIMPLE_PATTERN_TYPES):
        for hand in frame.hands:
            if _hand_matches_simple(hand, pattern, calibration):
                return hand
        if pattern.hand != Hand.ANY:
            return _first_hand(frame, pattern.hand)
        return None
    return _select_primary_hand(frame, pattern, calibration)


def _select_primary_hand(
    frame: FrameSnapshot,
    pattern: Pattern,
    calibration: Optional[CalibrationTable]
) -> Optional[HandDetection]:
    primary = find_primary_pattern([pattern], frame, calibration=calibration)
    if primary is not None and primary is not pattern:
        hand = _hand_for_subpattern(frame, primary, calibration)
        if hand is not None:
            return hand

    if pattern.primary_index is not None and 0 <= pattern.primary_index < len(pattern.patterns):
        hand = _hand_for_subpattern(frame, pattern.patterns[pattern.primary_index], calibration)
        if hand is not None:
            return hand

    required = {p.hand for p in pattern.patterns if isinstance(p, SIMPLE_PATTERN_TYPES)}
    right_hand = _first_hand(frame, Hand.RIGHT)
    left_hand = _first_hand(frame, Hand.LEFT)

    if Hand.RIGHT in required and right_hand is not None:
        return right_hand
    if Hand.LEFT in required and left_hand is not None:
        return left_hand
    return right_hand or left_hand or (frame.hands[0] if frame.hands else None)


def extract_all_matching_hands(
    frame: FrameSnapshot,
    pattern: Pattern,
    history: Optional[Sequence[FrameSnapshot]] = None,
    calibration: Optional[CalibrationTable] = None
) -> list[HandMatch]:
    """
    Enumerate the hand instances acting on a pattern.

    Simple patterns yield every matching hand, in frame order, so one intent
    can drive an independent action per hand. Composites yield a single actor:
    the hand of the primary sub-pattern. An anyOf whose first matching branch
    is a simple any-hand pattern behaves like that branch.

    Args:
        frame: Current frame.
        pattern: Pattern to evaluate.
        history: Frame history for sequential patterns.
        calibration: Threshold table for contact patterns.

    Returns:
        Matching hands (empty when the pattern does not match).
    """
    if not frame.hands:
        return []

    if isinstance(pattern, SIMPLE_PATTERN_TYPES):
        return [
            _to_match(hand, pattern, frame, calibration)
            for hand in frame.hands
            if _hand_matches_simple(hand, pattern, calibration)
        ]

    if not isinstance(pattern, COMPOUND_PATTERN_TYPES):
        logger.warning(f"Unknown pattern type: {type(pattern).__name__}")
        return []

    if isinstance(pattern, CompositePattern) and pattern.kind == PatternType.ANY_OF:
        for branch in pattern.patterns:
            if match_pattern(frame, branch, history, calibration):
                if isinstance(branch, SIMPLE_PATTERN_TYPES) and branch.hand == Hand.ANY:
                    return extract_all_matching_hands(frame, branch, history, calibration)
                break

    if not match_pattern(frame, pattern, history, calibration):
        return []

    hand = _select_primary_hand(frame, pattern, calibration)
    if hand is None:
        return []
    return [_to_match(hand, pattern, frame, calibration)]


def extract_matched_hand(
    frame: FrameSnapshot,
    pattern: Pattern,
    history: Optional[Sequence[FrameSnapshot]] = None,
    calibration: Optional[CalibrationTable] = None
) -> Optional[HandMatch]:
    """First hand acting on a pattern, or None."""
    matches = extract_all_matching_hands(frame, pattern, history, calibration)
    return matches[0] if matches else None
