"""
Detection data model for the intent engine.

Immutable per-frame snapshots of hand and face detections, as pushed by an
external detection adapter. Adapter payloads use camelCase keys and are
converted with parse_frame().
"""

from dataclasses import dataclass
from typing import Any, Optional

import numpy as np

from .logger import get_logger
from .config import HAND_LANDMARK_COUNT, MAX_HAND_INSTANCES
from .keywords import Finger, Hand

logger = get_logger("Detection")


class DetectionParseError(Exception):
    """Raised when an adapter payload cannot be turned into a frame."""
    pass


# MediaPipe landmark indices
class LandmarkIndex:
    """MediaPipe hand landmark indices."""
    WRIST = 0
    THUMB_CMC = 1
    THUMB_MCP = 2
    THUMB_IP = 3
    THUMB_TIP = 4
    INDEX_MCP = 5
    INDEX_PIP = 6
    INDEX_DIP = 7
    INDEX_TIP = 8
    MIDDLE_MCP = 9
    MIDDLE_PIP = 10
    MIDDLE_DIP = 11
    MIDDLE_TIP = 12
    RING_MCP = 13
    RING_PIP = 14
    RING_DIP = 15
    RING_TIP = 16
    PINKY_MCP = 17
    PINKY_PIP = 18
    PINKY_DIP = 19
    PINKY_TIP = 20


FINGERTIP_INDICES: dict[str, int] = {
    Finger.THUMB: LandmarkIndex.THUMB_TIP,
    Finger.INDEX: LandmarkIndex.INDEX_TIP,
    Finger.MIDDLE: LandmarkIndex.MIDDLE_TIP,
    Finger.RING: LandmarkIndex.RING_TIP,
    Finger.PINKY: LandmarkIndex.PINKY_TIP,
}


@dataclass(frozen=True)
class Vector3:
    """3D vector in normalized units (positions) or units per second (velocities)."""
    x: float
    y: float
    z: float = 0.0

    def as_array(self) -> np.ndarray:
        return np.array([self.x, self.y, self.z], dtype=np.float64)

    @classmethod
    def from_array(cls, values: np.ndarray) -> "Vector3":
        return cls(float(values[0]), float(values[1]), float(values[2]))

    @classmethod
    def zero(cls) -> "Vector3":
        return cls(0.0, 0.0, 0.0)


Position = Vector3


@dataclass(frozen=True)
class Landmark:
    """Single landmark with 3D coordinates and visibility."""
    x: float  # Normalized x [0, 1]
    y: float  # Normalized y [0, 1]
    z: float  # Relative depth
    visibility: float = 1.0

    def to_position(self) -> Vector3:
        return Vector3(self.x, self.y, self.z)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Landmark":
        """Create Landmark from a dictionary with x, y, z and optional visibility."""
        return cls(
            x=float(data["x"]),
            y=float(data["y"]),
            z=float(data.get("z", 0.0)),
            visibility=float(data.get("visibility", 1.0))
        )


def landmarks_to_array(landmarks: tuple[Landmark, ...]) -> np.ndarray:
    """Stack landmarks into an (N, 3) array."""
    return np.array([[lm.x, lm.y, lm.z] for lm in landmarks], dtype=np.float64).reshape(-1, 3)


@dataclass(frozen=True)
class HandDetection:
    """
    One detected hand in a frame.

    Attributes:
        handedness: 'left' or 'right' (lowercase).
        hand_index: Hand instance index (0-3).
        gesture: Top gesture label from the recognizer.
        gesture_score: Confidence of the gesture label.
        landmarks: 21 normalized landmarks (other lengths never match contacts).
        head_index: Which person the hand belongs to (0-1).
        handedness_score: Confidence of the handedness label.
        world_landmarks: Optional metric-space landmarks.
    """
    handedness: str
    hand_index: int
    gesture: str
    gesture_score: float
    landmarks: tuple[Landmark, ...]
    head_index: int = 0
    handedness_score: float = 1.0
    world_landmarks: tuple[Landmark, ...] = ()

    @property
    def has_full_landmarks(self) -> bool:
        return len(self.landmarks) >= HAND_LANDMARK_COUNT

    def get_landmark(self, index: int) -> Optional[Landmark]:
        """
        Get a landmark by index.

        Args:
            index: Landmark index (use LandmarkIndex constants).

        Returns:
            Landmark, or None if the list is too short.
        """
        if 0 <= index < len(self.landmarks):
            return self.landmarks[index]
        return None

    def get_fingertip(self, finger: str) -> Optional[Landmark]:
        """Get the tip landmark of a named finger, None for unknown fingers."""
        index = FINGERTIP_INDICES.get(finger)
        if index is None:
            return None
        return self.get_landmark(index)

    @classmethod
    def from_dict(cls, data: dict[str, Any], default_index: int = 0) -> "HandDetection":
        """
        Create HandDetection from an adapter dictionary with camelCase keys.

        Args:
            data: Dictionary with handedness, gesture, gestureScore, landmarks, ... keys.
            default_index: Hand index used when handIndex is absent.

        Returns:
            HandDetection instance.
        """
        return cls(
            handedness=str(data.get("handedness", Hand.UNKNOWN)).lower(),
            hand_index=int(data.get("handIndex", default_index)),
            gesture=str(data.get("gesture", "None")),
            gesture_score=float(data.get("gestureScore", 0.0)),
            landmarks=tuple(Landmark.from_dict(lm) for lm in data.get("landmarks", [])),
            head_index=int(data.get("headIndex", 0)),
            handedness_score=float(data.get("handednessScore", 1.0)),
            world_landmarks=tuple(Landmark.from_dict(lm) for lm in data.get("worldLandmarks") or [])
        )


@dataclass(frozen=True)
class Category:
    """Face blendshape coefficient."""
    name: str
    score: float
    index: Optional[int] = None


@dataclass(frozen=True)
class TransformationMatrix:
    """4x4 face pose matrix, row-major."""
    data: tuple[float, ...]
    rows: int = 4
    columns: int = 4

    def as_array(self) -> np.ndarray:
        return np.array(self.data, dtype=np.float64).reshape(self.rows, self.columns)


@dataclass(frozen=True)
class FaceDetection:
    """One detected face in a frame."""
    landmarks: tuple[Landmark, ...]
    face_index: int = 0
    head_index: int = 0
    blendshapes: tuple[Category, ...] = ()
    transformation_matrix: Optional[TransformationMatrix] = None

    @classmethod
    def from_dict(cls, data: dict[str, Any], default_index: int = 0) -> "FaceDetection":
        """Create FaceDetection from an adapter dictionary with camelCase keys."""
        matrix = None
        matrix_data = data.get("transformationMatrix")
        if isinstance(matrix_data, dict):
            values = tuple(float(v) for v in matrix_data.get("data", []))
            if len(values) == 16:
                matrix = TransformationMatrix(data=values)
            else:
                logger.warning(f"Ignoring transformation matrix with {len(values)} values")

        return cls(
            landmarks=tuple(Landmark.from_dict(lm) for lm in data.get("landmarks", [])),
            face_index=int(data.get("faceIndex", default_index)),
            head_index=int(data.get("headIndex", 0)),
            blendshapes=tuple(
                Category(name=str(c["name"]), score=float(c["score"]), index=c.get("index"))
                for c in data.get("blendshapes") or []
            ),
            transformation_matrix=matrix
        )


@dataclass(frozen=True)
class FrameSnapshot:
    """
    Immutable detection state for one tick.

    Attributes:
        timestamp: Frame time in milliseconds.
        hands: Detected hands, in adapter order.
        faces: Detected faces, in adapter order.
    """
    timestamp: float
    hands: tuple[HandDetection, ...] = ()
    faces: tuple[FaceDetection, ...] = ()

    def find_hand(self, handedness: str, hand_index: int) -> Optional[HandDetection]:
        """Find the hand with the given identity, or None."""
        for hand in self.hands:
            if hand.handedness == handedness and hand.hand_index == hand_index:
                return hand
        return None


def parse_frame(data: dict[str, Any]) -> FrameSnapshot:
    """
    Parse an adapter payload into a FrameSnapshot.

    Accepts {"timestamp", "detectors": {"hand": [...], "face": [...]}}, the same
    nested under "detectionFrame", or a flat {"timestamp", "hands", "faces"}.
    Hands with unknown handedness are dropped, missing hand/face indices are
    assigned by order.

    Args:
        data: Decoded JSON payload.

    Returns:
        FrameSnapshot instance.

    Raises:
        DetectionParseError: If the payload or its timestamp is unusable.
    """
    if not isinstance(data, dict):
        raise DetectionParseError(f"Frame payload must be an object, got {type(data).__name__}")

    source = data.get("detectionFrame", data)
    if not isinstance(source, dict):
        raise DetectionParseError("detectionFrame must be an object")

    timestamp = data.get("timestamp", source.get("timestamp"))
    if isinstance(timestamp, bool) or not isinstance(timestamp, (int, float)):
        raise DetectionParseError(f"Frame missing numeric timestamp: {timestamp!r}")

    detectors = source.get("detectors")
    if isinstance(detectors, dict):
        raw_hands = detectors.get("hand") or []
        raw_faces = detectors.get("face") or []
    else:
        raw_hands = source.get("hands") or []
        raw_faces = source.get("faces") or []

    hands: list[HandDetection] = []
    for raw_hand in raw_hands:
        if not isinstance(raw_hand, dict):
            continue
        try:
            hand = HandDetection.from_dict(raw_hand, default_index=len(hands))
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Skipping malformed hand detection: {e}")
            continue
        if hand.handedness not in Hand.DETECTED:
            logger.debug(f"Skipping hand with handedness '{hand.handedness}'")
            continue
        if len(hands) >= MAX_HAND_INSTANCES:
            logger.debug(f"Dropping hand beyond {MAX_HAND_INSTANCES} instances")
            break
        hands.append(hand)

    faces: list[FaceDetection] = []
    for raw_face in raw_faces:
        if not isinstance(raw_face, dict):
            continue
        try:
            faces.append(FaceDetection.from_dict(raw_face, default_index=len(faces)))
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Skipping malformed face detection: {e}")

    return FrameSnapshot(timestamp=float(timestamp), hands=tuple(hands), faces=tuple(faces))
