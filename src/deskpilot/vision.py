"""Vision calls: screen description, element grounding and screen queries."""

from __future__ import annotations

from deskpilot import prompts
from deskpilot.capture import EncodedImage, ScreenCapture, compress_image
from deskpilot.config import Configuration
from deskpilot.coordinates import (
    CoordinateSet,
    GroundingStatus,
    ScreenInfo,
    from_bounding_box,
    parse_grounding,
    validate,
)
from deskpilot.models.base import Oracle
from deskpilot.util.logging import clip, get_logger


logger = get_logger(__name__)


class GroundingError(RuntimeError):
    """Raised when an element description cannot be turned into a click point.

    ``reason`` is one of ``not_found``, ``unparseable``, ``out_of_bounds`` or
    ``missing_description``.
    """

    def __init__(self, message: str, reason: str) -> None:
        super().__init__(message)
        self.reason = reason


class VisionService:
    """Every call takes a fresh screenshot; snapshots are never reused."""

    def __init__(self, oracle: Oracle, capture: ScreenCapture, config: Configuration) -> None:
        self.oracle = oracle
        self.capture = capture
        self.config = config

    async def _snapshot(self) -> tuple[EncodedImage, ScreenInfo]:
        snapshot = await self.capture.capture()
        encoded = compress_image(snapshot.image, self.config.current)
        return encoded, snapshot.screen

    async def _ask(self, system: str, prompt: str) -> str:
        image, _ = await self._snapshot()
        response = await self.oracle.complete_with_image(system, prompt, image)
        return response.text

    async def describe_screen(self) -> str:
        return await self._ask(prompts.SCREEN_OBSERVER, prompts.DESCRIBE_REQUEST)

    async def find_element(self, description: str) -> CoordinateSet:
        if not description or not description.strip():
            raise GroundingError("No element description provided", "missing_description")
        image, screen = await self._snapshot()
        response = await self.oracle.complete_with_image(
            prompts.ELEMENT_FINDER,
            prompts.ELEMENT_REQUEST.format(description=description),
            image,
        )
        parsed = parse_grounding(response.text)
        if parsed.status is GroundingStatus.NOT_FOUND:
            raise GroundingError(f"Element not found: {description}", "not_found")
        if parsed.box is None:
            logger.warning("Unparseable grounding reply: %s", clip(response.text))
            raise GroundingError(
                f"Could not read a location for element: {description}", "unparseable"
            )
        coordinates = from_bounding_box(parsed.box, screen)
        check = validate(coordinates.logical_x, coordinates.logical_y, screen)
        if not check.ok:
            raise GroundingError(check.error or "Coordinates out of bounds", "out_of_bounds")
        logger.info(
            "Grounded %r at logical (%s, %s).",
            description,
            coordinates.logical_x,
            coordinates.logical_y,
        )
        return coordinates

    async def check_condition(self, condition: str) -> bool:
        text = await self._ask(
            prompts.CONDITION_CHECKER, prompts.CONDITION_REQUEST.format(condition=condition)
        )
        return "YES" in "".join(text.split()).upper()

    async def extract_info(self, query: str) -> str:
        return await self._ask(prompts.INFO_EXTRACTOR, query)

    async def extract_elements(self, element_type: str | None = None) -> dict[str, str]:
        request = prompts.ELEMENTS_REQUEST
        if element_type:
            request = f"{request} Only include elements of type: {element_type}."
        text = await self._ask(prompts.ELEMENT_EXTRACTOR, request)
        return {"raw_description": text}
