"""
Recording replay - runs recorded detection frames through the intent engine.

Loads a JSON recording, feeds every frame to an IntentEngine configured with
the example intents and logs the emitted events. Useful for tuning intent
timing against real captures without a camera.

Usage:
    intent-engine-replay --recording session.json
    intent-engine-replay --recording session.json --config engine.json --debug
"""

import argparse
import json
import sys
from collections import Counter, defaultdict
from dataclasses import replace
from pathlib import Path
from typing import Any, Optional

from .logger import setup_logging
from .config import (
    EXIT_CONFIG_ERROR,
    EXIT_RECORDING_ERROR,
    EXIT_RUNTIME_ERROR,
    EXIT_SUCCESS,
    EngineConfig,
)
from .config_loader import ConfigLoadError, load_engine_config
from .detection import DetectionParseError, FrameSnapshot, parse_frame
from .engine import IntentEngine
from .events import IntentEvent
from .example_intents import EXAMPLE_GROUP_LIMITS, EXAMPLE_INTENTS, example_engine_config


class RecordingLoadError(Exception):
    """Raised when a recording cannot be read or parsed."""
    pass


def load_recording(recording_path: str | Path) -> list[FrameSnapshot]:
    """
    Load recorded frames from a JSON file.

    Accepts {"sessionId": ..., "frames": [...]} or a bare list of frames.
    Frames are returned sorted by timestamp.

    Args:
        recording_path: Path to the recording.

    Returns:
        Parsed frames, oldest first.

    Raises:
        RecordingLoadError: If the file is missing, malformed or has no frames.
    """
    path = Path(recording_path)

    if not path.exists():
        raise RecordingLoadError(f"Recording not found: {path}")

    if not path.is_file():
        raise RecordingLoadError(f"Recording path is not a file: {path}")

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise RecordingLoadError(f"Invalid JSON in recording: {e}")
    except OSError as e:
        raise RecordingLoadError(f"Cannot read recording: {e}")

    raw_frames: Any = data.get("frames") if isinstance(data, dict) else data
    if not isinstance(raw_frames, list):
        raise RecordingLoadError("Recording must be a list of frames or contain a 'frames' list")
    if not raw_frames:
        raise RecordingLoadError("Recording contains no frames")

    frames: list[FrameSnapshot] = []
    for position, raw in enumerate(raw_frames):
        try:
            frames.append(parse_frame(raw))
        except DetectionParseError as e:
            raise RecordingLoadError(f"Frame {position}: {e}")

    frames.sort(key=lambda f: f.timestamp)
    return frames


def summarize_events(events: list[IntentEvent]) -> dict[str, Counter]:
    """Count events per intent and phase."""
    summary: dict[str, Counter] = defaultdict(Counter)
    for event in events:
        summary[event.intent_id][event.phase] += 1
    return dict(summary)


def replay(frames: list[FrameSnapshot], config: EngineConfig, logger) -> list[IntentEvent]:
    """Run frames through a fresh engine and return every emitted event."""
    engine = IntentEngine(EXAMPLE_INTENTS, config=config)

    def log_event(event: IntentEvent) -> None:
        logger.info(
            f"{event.timestamp:>10.0f}ms  {event.type:<40} {event.hand}[{event.hand_index}] "
            f"cell=({event.cell.col},{event.cell.row})"
        )

    engine.on_any(log_event)

    events: list[IntentEvent] = []
    for frame in frames:
        events.extend(engine.process_frame(frame))
    return events


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Intent Engine Replay - run recorded detection frames through the example intents",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Exit Codes:
  0  Success
  1  Config error (file not found, invalid JSON, invalid values)
  2  Recording error (file not found, invalid frames)
  3  Runtime error (unexpected error)

Examples:
  intent-engine-replay --recording session.json
  intent-engine-replay --recording session.json --config engine.json
  intent-engine-replay --recording session.json --debug --no-log-file
  intent-engine-replay --recording session.json --log-dir /tmp/intent-logs
"""
    )

    parser.add_argument(
        "--recording", "-r",
        required=True,
        help="Path to JSON recording file"
    )

    parser.add_argument(
        "--config", "-c",
        default=None,
        help="Path to JSON engine config (default: example config)"
    )

    parser.add_argument(
        "--debug", "-d",
        action="store_true",
        help="Enable debug logging"
    )

    parser.add_argument(
        "--no-log-file",
        action="store_true",
        help="Log to the console only"
    )

    parser.add_argument(
        "--log-dir",
        default=None,
        help="Directory for the log file (default: $INTENT_ENGINE_LOG_DIR or ./logs)"
    )

    return parser.parse_args(argv)


def main(argv: Optional[list[str]] = None) -> int:
    """
    Main entry point.

    Returns:
        Exit code.
    """
    args = parse_args(argv)

    logger = setup_logging(
        debug=args.debug,
        log_to_file=not args.no_log_file,
        log_dir=args.log_dir
    )
    logger.info("Intent Engine replay starting...")

    # Load config
    config = example_engine_config()
    if args.config:
        try:
            config = load_engine_config(args.config)
        except ConfigLoadError as e:
            logger.error(f"Failed to load config: {e}")
            return EXIT_CONFIG_ERROR
        if not config.group_limits:
            config = replace(config, group_limits=dict(EXAMPLE_GROUP_LIMITS))

    # Load recording
    try:
        frames = load_recording(args.recording)
    except RecordingLoadError as e:
        logger.error(f"Failed to load recording: {e}")
        return EXIT_RECORDING_ERROR

    logger.info(f"Replaying {len(frames)} frames")

    try:
        events = replay(frames, config, logger)
    except Exception as e:
        logger.exception(f"Runtime error: {e}")
        return EXIT_RUNTIME_ERROR

    summary = summarize_events(events)
    duration = frames[-1].timestamp - frames[0].timestamp
    print(f"\n{len(events)} events over {duration:.0f}ms ({len(frames)} frames)")
    for intent_id in sorted(summary):
        phases = summary[intent_id]
        print(
            f"  {intent_id:<40} start={phases['start']} "
            f"update={phases['update']} end={phases['end']}"
        )

    return EXIT_SUCCESS


if __name__ == "__main__":
    sys.exit(main())
