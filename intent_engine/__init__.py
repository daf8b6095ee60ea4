"""
IntentEngine - declarative hand-gesture intent recognition.

Turns per-frame hand detections into Start/Update/End lifecycle events for
registered intents, with grid mapping, hysteresis, timing and conflict
resolution between competing intents.
"""

__version__ = "1.0.0"
__author__ = "AROverlay Team"

from .calibration import CalibrationTable, CalibrationLoadError, default_calibration_table, load_calibration_table
from .config import EngineConfig, GridConfig, GroupLimit, HysteresisConfig, SpatialConfig, TemporalDefaults
from .config_loader import ConfigLoadError, load_engine_config, parse_engine_config
from .detection import FrameSnapshot, HandDetection, Landmark, Vector3, parse_frame
from .engine import FrameResult, IntentEngine, process_frame
from .event_bus import EventBus
from .events import EndEvent, IntentEvent, StartEvent, UpdateEvent
from .grid import Cell, cell_to_normalized, normalized_to_cell
from .intent import Intent, IntentDefinitionError, define_intent
from .keywords import ActionState, EndReason, Finger, GestureName, Hand, Strategy
from .patterns import all_of, any_of, bidirectional, contact, gesture, gestures, pinch, pinches, sequence

__all__ = [
    "CalibrationTable",
    "CalibrationLoadError",
    "default_calibration_table",
    "load_calibration_table",
    "EngineConfig",
    "GridConfig",
    "GroupLimit",
    "HysteresisConfig",
    "SpatialConfig",
    "TemporalDefaults",
    "ConfigLoadError",
    "load_engine_config",
    "parse_engine_config",
    "FrameSnapshot",
    "HandDetection",
    "Landmark",
    "Vector3",
    "parse_frame",
    "FrameResult",
    "IntentEngine",
    "process_frame",
    "EventBus",
    "EndEvent",
    "IntentEvent",
    "StartEvent",
    "UpdateEvent",
    "Cell",
    "cell_to_normalized",
    "normalized_to_cell",
    "Intent",
    "IntentDefinitionError",
    "define_intent",
    "ActionState",
    "EndReason",
    "Finger",
    "GestureName",
    "Hand",
    "Strategy",
    "all_of",
    "any_of",
    "bidirectional",
    "contact",
    "gesture",
    "gestures",
    "pinch",
    "pinches",
    "sequence",
]
