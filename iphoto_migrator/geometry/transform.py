"""
Pure coordinate helpers for face rectangles.

All rectangles here are relative (0..1). `Rect` always uses conventional
image coordinates: origin at the top-left, y growing downward. The catalog
stores y growing upward, so every conversion from catalog values goes
through `flip_vertical` or `rect_from_corners` first.
"""
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, Tuple

from .. import config
from ..models import CorrectionFactor, CropEdit


@dataclass(frozen=True)
class Rect:
    x: float
    y: float
    width: float
    height: float

    @property
    def center(self) -> Tuple[float, float]:
        return self.x + self.width / 2, self.y + self.height / 2


def flip_vertical(y_up: float) -> float:
    return 1.0 - y_up


def rect_from_corners(corners: Iterable[Tuple[float, float]]) -> Rect:
    """
    Builds a top-down Rect from bottom-up corner points.
    Corner order does not matter; the rectangle spans their min/max.
    """
    points = [(float(x), flip_vertical(float(y))) for x, y in corners]
    if not points:
        raise ValueError("a rectangle needs at least one corner")
    xs = [p[0] for p in points]
    ys = [p[1] for p in points]
    return Rect(min(xs), min(ys), max(xs) - min(xs), max(ys) - min(ys))


def rect_from_bottom_up(left: float, bottom: float, width: float, height: float) -> Rect:
    """
    Converts an origin+size rectangle whose origin is its lower-left corner (y up).
    The top edge in y-down space is therefore 1 - (bottom + height).
    """
    width, height = abs(width), abs(height)
    return Rect(left, flip_vertical(bottom + height), width, height)


# Rotation table: catalog rotation -> rectangle mapping.
# 90 and 270 swap the axes, 180 and 270 mirror the origin so the rectangle
# stays anchored to the same physical corner. Every entry is its own inverse.
_ROTATION_TABLE: Dict[int, Callable[[Rect], Rect]] = {
    0: lambda r: r,
    90: lambda r: Rect(r.y, r.x, r.height, r.width),
    180: lambda r: Rect(1 - r.x - r.width, 1 - r.y - r.height, r.width, r.height),
    270: lambda r: Rect(1 - r.y - r.height, 1 - r.x - r.width, r.height, r.width),
}
_INVERSE_ROTATION = {0: 0, 90: 90, 180: 180, 270: 270}


def normalize_rotation(rotation) -> int:
    value = int(rotation or 0) % 360
    if value not in config.VALID_ROTATIONS:
        raise ValueError(f"Unsupported rotation: {rotation}")
    return value


def swaps_axes(rotation: int) -> bool:
    return normalize_rotation(rotation) in (90, 270)


def rotate(rect: Rect, rotation) -> Rect:
    return _ROTATION_TABLE[normalize_rotation(rotation)](rect)


def inverse_rotate(rect: Rect, rotation) -> Rect:
    return _ROTATION_TABLE[_INVERSE_ROTATION[normalize_rotation(rotation)]](rect)


def scale(rect: Rect, factor: CorrectionFactor) -> Rect:
    if factor.is_identity:
        return rect
    return Rect(
        rect.x * factor.width,
        rect.y * factor.height,
        rect.width * factor.width,
        rect.height * factor.height,
    )


def apply_crop(rect: Rect, crop: CropEdit, master_width: float, master_height: float) -> Rect:
    """
    Re-expresses a master-relative rect inside a pixel crop window.
    The crop origin counts y from the bottom edge.
    """
    crop_top = master_height - crop.y - crop.height
    return Rect(
        (rect.x * master_width - crop.x) / crop.width,
        (rect.y * master_height - crop_top) / crop.height,
        rect.width * master_width / crop.width,
        rect.height * master_height / crop.height,
    )


def _clamp_axis(start: float, size: float) -> Tuple[float, float]:
    size = abs(size)
    end = start + size
    eps = config.COORD_EPSILON
    if start < 0:
        start = 0.0 if start < -eps else start
    if end > 1:
        end = 1.0 if end > 1 + eps else end
    start = min(start, 1.0)
    return start, max(0.0, end - start)


def clamp(rect: Rect) -> Rect:
    """Clips a rect into the unit square, tolerating COORD_EPSILON of overshoot."""
    x, w = _clamp_axis(rect.x, rect.width)
    y, h = _clamp_axis(rect.y, rect.height)
    return Rect(x, y, w, h)
