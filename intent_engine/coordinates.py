"""
Coordinate transforms between normalized, viewport and screen space.

Normalized space is the detector's [0, 1] image space. Viewport space scales
it to the viewport size, screen space adds the viewport offset. Mirroring
flips x in normalized space. z passes through untouched.
"""

from dataclasses import dataclass

from .detection import Vector3
from .keywords import CoordinateSystem


@dataclass(frozen=True)
class Viewport:
    """Viewport rectangle in screen pixels."""
    x: float
    y: float
    width: float
    height: float


def normalized_to_viewport(position: Vector3, viewport: Viewport) -> Vector3:
    return Vector3(position.x * viewport.width, position.y * viewport.height, position.z)


def viewport_to_normalized(position: Vector3, viewport: Viewport) -> Vector3:
    """Inverse of normalized_to_viewport; degenerate viewports map to 0."""
    return Vector3(
        position.x / viewport.width if viewport.width > 0 else 0.0,
        position.y / viewport.height if viewport.height > 0 else 0.0,
        position.z
    )


def normalized_to_screen(position: Vector3, viewport: Viewport) -> Vector3:
    return Vector3(
        viewport.x + position.x * viewport.width,
        viewport.y + position.y * viewport.height,
        position.z
    )


def screen_to_normalized(position: Vector3, viewport: Viewport) -> Vector3:
    return Vector3(
        (position.x - viewport.x) / viewport.width if viewport.width > 0 else 0.0,
        (position.y - viewport.y) / viewport.height if viewport.height > 0 else 0.0,
        position.z
    )


def apply_mirroring(position: Vector3) -> Vector3:
    """Flip horizontally in normalized space."""
    return Vector3(1.0 - position.x, position.y, position.z)


def remove_mirroring(position: Vector3) -> Vector3:
    # Mirroring is its own inverse
    return apply_mirroring(position)


def transform_coordinates(
    position: Vector3,
    source: str,
    target: str,
    viewport: Viewport,
    mirrored: bool = False
) -> Vector3:
    """
    Transform a position between coordinate systems.

    Conversion goes through normalized space; mirroring is applied there.

    Args:
        position: Position in the source system.
        source: CoordinateSystem value of the input.
        target: CoordinateSystem value of the output.
        viewport: Viewport used for viewport/screen conversions.
        mirrored: Flip horizontally on the way.

    Returns:
        Position in the target system.
    """
    if source == target and not mirrored:
        return position

    if source == CoordinateSystem.VIEWPORT:
        normalized = viewport_to_normalized(position, viewport)
    elif source == CoordinateSystem.SCREEN:
        normalized = screen_to_normalized(position, viewport)
    else:
        normalized = position

    if mirrored:
        normalized = apply_mirroring(normalized)

    if target == CoordinateSystem.VIEWPORT:
        return normalized_to_viewport(normalized, viewport)
    if target == CoordinateSystem.SCREEN:
        return normalized_to_screen(normalized, viewport)
    return normalized


def clamp_normalized(position: Vector3) -> Vector3:
    """Clamp x and y to [0, 1]; z may stay outside."""
    return Vector3(
        max(0.0, min(1.0, position.x)),
        max(0.0, min(1.0, position.y)),
        position.z
    )


def is_normalized_in_bounds(position: Vector3) -> bool:
    return 0.0 <= position.x <= 1.0 and 0.0 <= position.y <= 1.0


def is_in_viewport(position: Vector3, viewport: Viewport) -> bool:
    """Check a viewport-space position against the viewport size."""
    return 0.0 <= position.x <= viewport.width and 0.0 <= position.y <= viewport.height


def get_aspect_ratio(viewport: Viewport) -> float:
    return viewport.width / viewport.height if viewport.height > 0 else 1.0
