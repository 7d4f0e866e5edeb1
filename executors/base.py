from abc import ABC, abstractmethod
from core.intent import Intent
from models.message import OutboundReply


class BaseExecutor(ABC):
    """
    Base contract for all executors.
    Executors take an Intent and return the reply for the user.
    No routing, no parsing, no delivery here.
    """

    @abstractmethod
    async def execute(self, intent: Intent) -> OutboundReply:
        pass
