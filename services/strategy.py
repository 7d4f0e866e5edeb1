from abc import ABC, abstractmethod
from typing import Optional

from core.intent import ClassificationResult


class IntentStrategy(ABC):
    """
    Base contract for one tier of the intent cascade.
    Returns a result the resolver may accept, or None to escalate.
    """

    name: str = "strategy"

    # the resolver applies its remote timeout only to tiers that do I/O
    performs_io: bool = False

    @abstractmethod
    async def classify(self, text: str) -> Optional[ClassificationResult]:
        pass
