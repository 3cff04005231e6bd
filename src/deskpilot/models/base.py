"""Oracle interfaces."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from pydantic import BaseModel, Field

from deskpilot.capture import EncodedImage


class OracleError(RuntimeError):
    """Raised when the language model cannot be reached or rejects a request."""


class OracleResponse(BaseModel):
    text: str = ""
    model: str | None = None
    usage: dict[str, Any] = Field(default_factory=dict)


class Oracle(ABC):
    """Abstract vision-capable language model."""

    @abstractmethod
    async def complete(self, system: str, prompt: str) -> OracleResponse:
        """Send a text-only request."""
        raise NotImplementedError

    @abstractmethod
    async def complete_with_image(
        self, system: str, prompt: str, image: EncodedImage
    ) -> OracleResponse:
        """Send a request carrying one screenshot."""
        raise NotImplementedError

    def is_configured(self) -> bool:
        return True
