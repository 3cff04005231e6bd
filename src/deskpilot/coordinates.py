"""Coordinate transforms between grounding, screenshot and click spaces.

Three spaces are involved:

* normalized: what the vision model reports, 0..1000 on each axis;
* pixel: the native resolution of the captured screenshot;
* logical: the point space used to inject mouse events.

Every conversion floors, and ``normalized_to_logical`` is defined as the
composition of the two single-step conversions so both paths agree exactly.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from enum import Enum

NORMALIZATION_RANGE = 1000

_BOX_RE = re.compile(
    r"<box>\s*\(\s*(\d+)\s*,\s*(\d+)\s*,\s*(\d+)\s*,\s*(\d+)\s*\)\s*</box>",
    re.IGNORECASE,
)
_NOT_FOUND_TOKEN = "NOT_FOUND"


@dataclass(frozen=True)
class ScreenInfo:
    logical_width: int
    logical_height: int
    scale_factor: float
    pixel_width: int
    pixel_height: int

    @classmethod
    def from_logical(cls, width: int, height: int, scale_factor: float) -> "ScreenInfo":
        return cls(
            logical_width=width,
            logical_height=height,
            scale_factor=scale_factor,
            pixel_width=math.floor(width * scale_factor),
            pixel_height=math.floor(height * scale_factor),
        )


@dataclass(frozen=True)
class Point:
    x: int
    y: int


@dataclass(frozen=True)
class BoundingBox:
    x1: int
    y1: int
    x2: int
    y2: int


@dataclass(frozen=True)
class CoordinateSet:
    normalized_x: int
    normalized_y: int
    pixel_x: int
    pixel_y: int
    logical_x: int
    logical_y: int


class GroundingStatus(str, Enum):
    FOUND = "found"
    NOT_FOUND = "not_found"
    UNPARSEABLE = "unparseable"


@dataclass(frozen=True)
class GroundingParse:
    status: GroundingStatus
    box: BoundingBox | None = None


@dataclass(frozen=True)
class BoundsValidation:
    ok: bool
    error: str | None = None
    axis: str | None = None
    bound: str | None = None


def normalized_to_pixel(nx: int, ny: int, screen: ScreenInfo) -> Point:
    return Point(
        x=math.floor(nx * screen.pixel_width / NORMALIZATION_RANGE),
        y=math.floor(ny * screen.pixel_height / NORMALIZATION_RANGE),
    )


def pixel_to_logical(px: int, py: int, screen: ScreenInfo) -> Point:
    return Point(
        x=math.floor(px / screen.scale_factor),
        y=math.floor(py / screen.scale_factor),
    )


def normalized_to_logical(nx: int, ny: int, screen: ScreenInfo) -> Point:
    pixel = normalized_to_pixel(nx, ny, screen)
    return pixel_to_logical(pixel.x, pixel.y, screen)


def logical_to_normalized(lx: int, ly: int, screen: ScreenInfo) -> Point:
    return Point(
        x=math.floor(lx * NORMALIZATION_RANGE / screen.logical_width),
        y=math.floor(ly * NORMALIZATION_RANGE / screen.logical_height),
    )


def bounding_box_center(x1: int, y1: int, x2: int, y2: int) -> Point:
    return Point(x=(x1 + x2) // 2, y=(y1 + y2) // 2)


def parse_grounding(text: str | None) -> GroundingParse:
    """Classify a grounding response as found, not found or unparseable.

    The not-found sentinel takes precedence over any box in the same text.
    """
    if not text:
        return GroundingParse(status=GroundingStatus.UNPARSEABLE)
    if _NOT_FOUND_TOKEN in text:
        return GroundingParse(status=GroundingStatus.NOT_FOUND)
    match = _BOX_RE.search(text)
    if not match:
        return GroundingParse(status=GroundingStatus.UNPARSEABLE)
    x1, y1, x2, y2 = (int(value) for value in match.groups())
    return GroundingParse(status=GroundingStatus.FOUND, box=BoundingBox(x1, y1, x2, y2))


def parse_grounding_box(text: str | None) -> BoundingBox | None:
    """Return the bounding box in ``text``; not-found and garbage both give ``None``."""
    return parse_grounding(text).box


def from_bounding_box(box: BoundingBox, screen: ScreenInfo) -> CoordinateSet:
    center = bounding_box_center(box.x1, box.y1, box.x2, box.y2)
    pixel = normalized_to_pixel(center.x, center.y, screen)
    logical = pixel_to_logical(pixel.x, pixel.y, screen)
    return CoordinateSet(
        normalized_x=center.x,
        normalized_y=center.y,
        pixel_x=pixel.x,
        pixel_y=pixel.y,
        logical_x=logical.x,
        logical_y=logical.y,
    )


def _check_axis(axis: str, value: int, limit: int) -> BoundsValidation | None:
    if value < 0:
        bound = "lower"
    elif value > limit:
        bound = "upper"
    else:
        return None
    return BoundsValidation(
        ok=False,
        axis=axis,
        bound=bound,
        error=f"{axis.upper()} coordinate {value} out of bounds (0-{limit}, {bound} bound)",
    )


def validate(x: int, y: int, screen: ScreenInfo) -> BoundsValidation:
    """Check a logical point against the screen; the far edges are inclusive."""
    failure = _check_axis("x", x, screen.logical_width) or _check_axis(
        "y", y, screen.logical_height
    )
    return failure or BoundsValidation(ok=True)
