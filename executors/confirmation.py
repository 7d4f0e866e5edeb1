from core.intent import Intent
from executors.base import BaseExecutor
from models.message import OutboundReply
from services import replies
from services.confirmation_store import ConfirmationStateStore


class ConfirmationExecutor(BaseExecutor):
    """
    Sensitive commands: open a confirmation round and ask for the code.
    The parsed payload rides along so it survives until the OTP arrives.
    """

    def __init__(self, store: ConfirmationStateStore, currency: str = replies.CURRENCY):
        self.store = store
        self.currency = currency

    async def execute(self, intent: Intent) -> OutboundReply:
        await self.store.begin_confirmation(
            intent.user_id, intent.command, intent.payload, channel_id=intent.channel_id
        )
        return OutboundReply(
            identity=intent.user_id,
            text=replies.otp_prompt_text(intent.command, intent.payload, self.currency),
        )
