"""
Shared string constants and enums for the intent engine.

Gesture labels, hand identifiers, finger names and lifecycle values are
defined once here so detection data, patterns and events never drift apart.
"""

from enum import Enum, auto


class GestureName:
    """MediaPipe gesture recognizer labels."""
    NONE = "None"
    CLOSED_FIST = "Closed_Fist"
    OPEN_PALM = "Open_Palm"
    POINTING_UP = "Pointing_Up"
    THUMB_UP = "Thumb_Up"
    THUMB_DOWN = "Thumb_Down"
    VICTORY = "Victory"
    I_LOVE_YOU = "ILoveYou"

    ALL = (NONE, CLOSED_FIST, OPEN_PALM, POINTING_UP, THUMB_UP, THUMB_DOWN, VICTORY, I_LOVE_YOU)


class Hand:
    """Hand identifiers and selectors."""
    LEFT = "left"
    RIGHT = "right"
    ANY = "any"  # Selector only, never a detected handedness
    UNKNOWN = "unknown"  # Adapter value, filtered during parsing

    DETECTED = (LEFT, RIGHT)
    SELECTORS = (LEFT, RIGHT, ANY)


class Finger:
    """Finger names used by contact patterns."""
    THUMB = "thumb"
    INDEX = "index"
    MIDDLE = "middle"
    RING = "ring"
    PINKY = "pinky"

    CONTACT_FINGERS = (INDEX, MIDDLE, RING, PINKY)


class ContactType:
    """Kinds of finger contact."""
    PINCH = "pinch"
    TOUCH = "touch"


class PatternType:
    """Tags carried by every pattern."""
    GESTURE = "gesture"
    CONTACT = "contact"
    ALL_OF = "allOf"
    ANY_OF = "anyOf"
    SEQUENCE = "sequence"


class SequenceMode:
    """How a sequence pattern evaluates its parts."""
    CONCURRENT = "concurrent"
    SEQUENTIAL = "sequential"


class EventPhase:
    """Event type suffixes."""
    START = "start"
    UPDATE = "update"
    END = "end"

    ALL = (START, UPDATE, END)


class CoordinateSystem:
    """Coordinate spaces understood by the transforms."""
    NORMALIZED = "normalized"
    VIEWPORT = "viewport"
    SCREEN = "screen"


class GridResolution:
    """Standard spatial hash resolutions."""
    COARSE = "coarse"
    MEDIUM = "medium"
    FINE = "fine"


class ActionState(Enum):
    """Lifecycle state of a tracked action."""
    PENDING = auto()  # Matched, waiting for min_duration
    ACTIVE = auto()   # Started, emitting updates
    ENDING = auto()   # Same-tick transition, never stored


class EndReason(str, Enum):
    """Why an action ended."""
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    TIMEOUT = "timeout"


class Strategy(str, Enum):
    """Group conflict-resolution strategies."""
    WINNER_TAKES_ALL = "winner-takes-all"
    TOP_K = "top-k"
    CUSTOM = "custom"
