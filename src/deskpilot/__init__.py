"""Desktop automation driven by a vision-capable language model."""

from deskpilot.agent import ActionResult, SessionResult
from deskpilot.config import Configuration, Settings
from deskpilot.facade import DeskPilot
from deskpilot.failures import ErrorType
