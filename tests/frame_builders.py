"""Synthetic detection frames for the test suite."""

from typing import Optional

from intent_engine.detection import FINGERTIP_INDICES, FrameSnapshot, HandDetection, Landmark, LandmarkIndex

OPEN_THUMB_OFFSET = (-0.1, 0.1)  # Thumb tip offset when nothing is pinched (~0.141 away)
FAR_TIP_OFFSET = (0.0, -0.2)  # Where unpinched fingertips go during a pinch


def make_landmarks(
    x: float = 0.5,
    y: float = 0.5,
    pinch_finger: Optional[str] = None,
    pinch_distance: float = 0.05
) -> tuple[Landmark, ...]:
    """
    21 landmarks collapsed on (x, y) with the thumb tip set apart.

    Without a pinch every gesture reference point (index tip, palm center,
    victory midpoint) sits exactly on (x, y). With a pinch the thumb tip is
    placed pinch_distance to the right of the pinched fingertip and the
    other fingertips are moved out of reach.
    """
    points = [[x, y] for _ in range(21)]

    if pinch_finger is None:
        points[LandmarkIndex.THUMB_TIP] = [x + OPEN_THUMB_OFFSET[0], y + OPEN_THUMB_OFFSET[1]]
    else:
        for finger, index in FINGERTIP_INDICES.items():
            if finger not in ("thumb", pinch_finger):
                points[index] = [x + FAR_TIP_OFFSET[0], y + FAR_TIP_OFFSET[1]]
        points[LandmarkIndex.THUMB_TIP] = [x + pinch_distance, y]

    return tuple(Landmark(px, py, 0.0) for px, py in points)


def make_hand(
    handedness: str = "right",
    gesture: str = "None",
    score: float = 0.9,
    x: float = 0.5,
    y: float = 0.5,
    hand_index: int = 0,
    head_index: int = 0,
    pinch_finger: Optional[str] = None,
    pinch_distance: float = 0.05
) -> HandDetection:
    return HandDetection(
        handedness=handedness,
        hand_index=hand_index,
        gesture=gesture,
        gesture_score=score if gesture != "None" else 0.0,
        landmarks=make_landmarks(x, y, pinch_finger, pinch_distance),
        head_index=head_index
    )


def make_frame(timestamp: float, *hands: HandDetection) -> FrameSnapshot:
    return FrameSnapshot(timestamp=float(timestamp), hands=tuple(hands))


def hand_payload(hand: HandDetection) -> dict:
    """Adapter-style camelCase dictionary for a hand."""
    return {
        "handedness": hand.handedness.capitalize(),
        "handIndex": hand.hand_index,
        "headIndex": hand.head_index,
        "gesture": hand.gesture,
        "gestureScore": hand.gesture_score,
        "landmarks": [{"x": lm.x, "y": lm.y, "z": lm.z} for lm in hand.landmarks],
    }
