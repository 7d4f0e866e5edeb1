from abc import ABC, abstractmethod

from models.message import OutboundReply


class MessageSender(ABC):
    """
    Outbound half of a channel adapter.
    send() raises DeliveryFailure when the channel refuses the message.
    """

    @abstractmethod
    async def send(self, reply: OutboundReply) -> None:
        pass
