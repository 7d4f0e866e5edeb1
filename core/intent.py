# core/intent.py
from dataclasses import dataclass
from enum import Enum
from pydantic import BaseModel
from typing import Optional, Dict, Any

from core.command import Command


class ClassificationSource(str, Enum):
    PATTERN = "pattern"
    REMOTE = "remote"
    KEYWORD = "keyword"


@dataclass(frozen=True)
class ClassificationResult:
    """
    Output of a single classification tier.

    command=None means the tier looked at the text but could not commit
    to a command. confidence only carries information for REMOTE results.
    """

    command: Optional[Command]
    confidence: float
    source: ClassificationSource
    payload: Optional[Dict[str, Any]] = None

    @property
    def resolved(self) -> bool:
        return self.command is not None


class Intent(BaseModel):
    """
    A passive container that represents what the user wants.
    This does NOT execute logic.
    This does NOT make decisions.
    """

    user_id: str
    raw_input: str

    # Decided by the intent resolver (single authority)
    command: Command
    source: Optional[ClassificationSource] = None
    confidence: float = 0.0

    # Structured request parsed from the text (airtime, transfer, bills)
    payload: Optional[Dict[str, Any]] = None

    # Business number the request came in on; replies go out from it
    channel_id: Optional[str] = None
