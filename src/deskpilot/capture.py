"""Screen capture and size-budgeted image encoding."""

from __future__ import annotations

import asyncio
import base64
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from io import BytesIO

import mss
from mss.exception import ScreenShotError
from PIL import Image

from deskpilot.config import Settings
from deskpilot.coordinates import ScreenInfo
from deskpilot.util.logging import get_logger


logger = get_logger(__name__)


class CaptureError(RuntimeError):
    """Raised when a screenshot cannot be taken."""


@dataclass(frozen=True)
class Snapshot:
    image: Image.Image
    screen: ScreenInfo


@dataclass(frozen=True)
class EncodedImage:
    data: bytes
    media_type: str
    width: int
    height: int
    quality: int | None = None
    scale: float = 1.0

    @property
    def encoded_size(self) -> int:
        return base64_size(len(self.data))

    def base64(self) -> str:
        return base64.b64encode(self.data).decode("ascii")


def base64_size(raw_bytes: int) -> int:
    return 4 * math.ceil(raw_bytes / 3)


def _encode(image: Image.Image, fmt: str, quality: int | None = None) -> bytes:
    buffer = BytesIO()
    if quality is None:
        image.save(buffer, format=fmt)
    else:
        image.save(buffer, format=fmt, quality=quality)
    return buffer.getvalue()


def _jpeg_ready(image: Image.Image) -> Image.Image:
    if image.mode in ("RGB", "L"):
        return image
    return image.convert("RGB")


def compress_image(image: Image.Image, settings: Settings) -> EncodedImage:
    """Encode ``image`` so its base64 payload fits ``settings.max_image_bytes``.

    Lossy quality steps come first at full resolution, then downscaled copies
    at the fixed fallback quality, and finally a lossless PNG at native size
    that is returned whatever its size.
    """
    ceiling = settings.max_image_bytes
    width, height = image.size
    rgb = _jpeg_ready(image)

    for quality in settings.image_quality_levels:
        data = _encode(rgb, "JPEG", quality=quality)
        if base64_size(len(data)) <= ceiling:
            logger.info("Screenshot encoded as JPEG q=%s (%s bytes).", quality, len(data))
            return EncodedImage(
                data=data, media_type="image/jpeg", width=width, height=height, quality=quality
            )

    for scale in settings.image_scale_factors:
        scaled_size = (max(1, math.floor(width * scale)), max(1, math.floor(height * scale)))
        resized = rgb.resize(scaled_size, Image.Resampling.LANCZOS)
        data = _encode(resized, "JPEG", quality=settings.image_fallback_quality)
        if base64_size(len(data)) <= ceiling:
            logger.info(
                "Screenshot downscaled to %sx%s (scale=%s, %s bytes).",
                scaled_size[0],
                scaled_size[1],
                scale,
                len(data),
            )
            return EncodedImage(
                data=data,
                media_type="image/jpeg",
                width=scaled_size[0],
                height=scaled_size[1],
                quality=settings.image_fallback_quality,
                scale=scale,
            )

    data = _encode(image, "PNG")
    logger.warning(
        "Screenshot exceeds %s bytes at every step; sending PNG (%s bytes).", ceiling, len(data)
    )
    return EncodedImage(data=data, media_type="image/png", width=width, height=height)


class ScreenCapture(ABC):
    """Produces one snapshot of the display together with its geometry."""

    @abstractmethod
    async def capture(self) -> Snapshot:
        raise NotImplementedError


class MssScreenCapture(ScreenCapture):
    """Captures a monitor with mss.

    mss reports monitor geometry in logical points and grabs at native pixel
    resolution, so the ratio of the two is the display scale factor.
    """

    def __init__(self, monitor_index: int = 1) -> None:
        self.monitor_index = monitor_index

    async def capture(self) -> Snapshot:
        return await asyncio.to_thread(self._grab)

    def _grab(self) -> Snapshot:
        try:
            with mss.mss() as sct:
                try:
                    monitor = sct.monitors[self.monitor_index]
                except IndexError:
                    monitor = sct.monitors[1]
                shot = sct.grab(monitor)
        except ScreenShotError as exc:
            raise CaptureError(f"Failed to capture screenshot: {exc}") from exc
        image = Image.frombytes("RGB", shot.size, shot.bgra, "raw", "BGRX")
        logical_width = int(monitor["width"])
        logical_height = int(monitor["height"])
        if logical_width <= 0 or logical_height <= 0:
            raise CaptureError("Monitor reported an empty geometry")
        screen = ScreenInfo(
            logical_width=logical_width,
            logical_height=logical_height,
            scale_factor=shot.size[0] / logical_width,
            pixel_width=shot.size[0],
            pixel_height=shot.size[1],
        )
        return Snapshot(image=image, screen=screen)
