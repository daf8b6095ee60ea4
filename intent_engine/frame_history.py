"""
Frame history and temporal queries.

History is an immutable tuple of FrameSnapshot, oldest first. add_frame
returns a new tuple, so references to older histories stay valid. Timestamps
are milliseconds; velocities are normalized units per second.
"""

from typing import Callable, Optional

import numpy as np

from .config import FRAME_HISTORY_MAX_FRAMES
from .detection import FrameSnapshot, Vector3

FrameHistory = tuple[FrameSnapshot, ...]
FramePredicate = Callable[[FrameSnapshot], bool]
PositionExtractor = Callable[[FrameSnapshot], Optional[Vector3]]


def add_frame(
    history: FrameHistory,
    frame: FrameSnapshot,
    max_size: int = FRAME_HISTORY_MAX_FRAMES
) -> FrameHistory:
    """
    Append a frame, dropping the oldest frames beyond max_size.

    Args:
        history: Current history.
        frame: Frame to append.
        max_size: Capacity.

    Returns:
        New history tuple.
    """
    updated = history + (frame,)
    if len(updated) > max_size:
        updated = updated[len(updated) - max_size:]
    return updated


def get_latest_frame(history: FrameHistory) -> Optional[FrameSnapshot]:
    return history[-1] if history else None


def get_frame_ago(history: FrameHistory, n: int) -> Optional[FrameSnapshot]:
    """Frame n steps back (0 = latest), None when out of range."""
    index = len(history) - 1 - n
    if n < 0 or index < 0:
        return None
    return history[index]


def get_frames_in_window(history: FrameHistory, duration_ms: float) -> FrameHistory:
    """Frames with timestamp in [latest - duration_ms, latest], oldest first."""
    if not history:
        return ()
    cutoff = history[-1].timestamp - duration_ms
    return tuple(frame for frame in history if frame.timestamp >= cutoff)


def check_held_for(history: FrameHistory, duration_ms: float, predicate: FramePredicate) -> bool:
    """
    Check that a predicate held continuously for a trailing window.

    Scans backward from the newest frame and stops at the first frame where
    the predicate fails. Holds once the run spans at least duration_ms.

    Args:
        history: Frame history.
        duration_ms: Required hold duration.
        predicate: Per-frame condition.

    Returns:
        True if the predicate held for the whole window.
    """
    if not history:
        return False

    newest = history[-1].timestamp
    for frame in reversed(history):
        if not predicate(frame):
            return False
        if newest - frame.timestamp >= duration_ms:
            return True
    # Ran out of frames before covering the window
    return False


def check_any_in_window(history: FrameHistory, duration_ms: float, predicate: FramePredicate) -> bool:
    return any(predicate(frame) for frame in get_frames_in_window(history, duration_ms))


def get_continuous_duration(history: FrameHistory, predicate: FramePredicate) -> float:
    """
    Duration of the current run of predicate-true frames.

    Returns:
        Milliseconds from the first frame of the run to the newest frame, 0 if
        the newest frame fails the predicate.
    """
    if not history or not predicate(history[-1]):
        return 0.0

    start = len(history) - 1
    while start > 0 and predicate(history[start - 1]):
        start -= 1
    return history[-1].timestamp - history[start].timestamp


def _velocity(
    frame: FrameSnapshot,
    previous: FrameSnapshot,
    extract_position: PositionExtractor
) -> Optional[Vector3]:
    current_pos = extract_position(frame)
    previous_pos = extract_position(previous)
    if current_pos is None or previous_pos is None:
        return None

    dt = (frame.timestamp - previous.timestamp) / 1000.0
    if dt == 0:
        return Vector3.zero()
    return Vector3.from_array((current_pos.as_array() - previous_pos.as_array()) / dt)


def calculate_velocity(
    frame: FrameSnapshot,
    previous: FrameSnapshot,
    extract_position: PositionExtractor
) -> Vector3:
    """
    Finite-difference velocity between two frames.

    Args:
        frame: Current frame.
        previous: Earlier frame.
        extract_position: Returns the tracked position in a frame, or None.

    Returns:
        Velocity in units per second; zero when either position is missing
        or both frames share a timestamp.
    """
    velocity = _velocity(frame, previous, extract_position)
    return velocity if velocity is not None else Vector3.zero()


def calculate_average_velocity(
    history: FrameHistory,
    duration_ms: float,
    extract_position: PositionExtractor
) -> Optional[Vector3]:
    """
    Mean velocity over consecutive frame pairs in a trailing window.

    Pairs where the position is missing are skipped.

    Returns:
        Average velocity, or None with fewer than two usable frames.
    """
    window = get_frames_in_window(history, duration_ms)
    velocities = []
    for previous, frame in zip(window, window[1:]):
        velocity = _velocity(frame, previous, extract_position)
        if velocity is not None:
            velocities.append(velocity.as_array())

    if not velocities:
        return None
    return Vector3.from_array(np.mean(velocities, axis=0))


def get_history_duration(history: FrameHistory) -> float:
    if len(history) < 2:
        return 0.0
    return history[-1].timestamp - history[0].timestamp


def get_average_fps(history: FrameHistory) -> float:
    duration = get_history_duration(history)
    if duration <= 0:
        return 0.0
    return (len(history) - 1) / duration * 1000.0
