import logging

from core.intent import Intent
from executors.base import BaseExecutor
from models.message import OutboundReply
from services import replies
from services.persistence import WalletService

logger = logging.getLogger("balance_executor")


class BalanceExecutor(BaseExecutor):

    def __init__(self, wallet: WalletService, currency: str = replies.CURRENCY):
        self.wallet = wallet
        self.currency = currency

    async def execute(self, intent: Intent) -> OutboundReply:
        amount = await self.wallet.get_balance(intent.user_id)
        logger.info(f"[BALANCE] user_id={intent.user_id}")
        return OutboundReply(
            identity=intent.user_id,
            text=replies.balance_text(amount, self.currency),
        )
