"""Scripted oracle for offline runs and tests."""

from __future__ import annotations

from dataclasses import dataclass

from deskpilot.capture import EncodedImage
from deskpilot.models.base import Oracle, OracleError, OracleResponse


@dataclass(frozen=True)
class OracleCall:
    system: str
    prompt: str
    image: EncodedImage | None = None


class ScriptedOracle(Oracle):
    """Replays scripted replies in order and records every request.

    A scripted entry may be a string, an ``OracleResponse`` or an exception
    instance, which is raised instead of answering.
    """

    def __init__(
        self,
        scripted: list[str | OracleResponse | Exception] | None = None,
        configured: bool = True,
    ) -> None:
        self._scripted = list(scripted or [])
        self._configured = configured
        self.calls: list[OracleCall] = []

    def is_configured(self) -> bool:
        return self._configured

    async def complete(self, system: str, prompt: str) -> OracleResponse:
        self.calls.append(OracleCall(system=system, prompt=prompt))
        return self._next()

    async def complete_with_image(
        self, system: str, prompt: str, image: EncodedImage
    ) -> OracleResponse:
        self.calls.append(OracleCall(system=system, prompt=prompt, image=image))
        return self._next()

    def _next(self) -> OracleResponse:
        if not self._scripted:
            raise OracleError("Scripted oracle has no replies left")
        reply = self._scripted.pop(0)
        if isinstance(reply, Exception):
            raise reply
        if isinstance(reply, OracleResponse):
            return reply
        return OracleResponse(text=reply, model="scripted")
