import logging

from core.errors import InvalidOtp
from core.intent import Intent
from executors.base import BaseExecutor
from models.confirmation import PendingConfirmation, TransactionRecord, TransactionStatus
from models.message import OutboundReply
from services import replies
from services.confirmation_store import ConfirmationStateStore
from services.persistence import TransactionLedger

logger = logging.getLogger("otp_executor")


class OtpExecutor(BaseExecutor):
    """
    A 6-digit message: verify it against the pending round and, only on
    success, commit the transaction record.
    """

    def __init__(
        self,
        store: ConfirmationStateStore,
        ledger: TransactionLedger,
        currency: str = replies.CURRENCY,
    ):
        self.store = store
        self.ledger = ledger
        self.currency = currency

    async def execute(self, intent: Intent) -> OutboundReply:
        try:
            pending = await self.store.confirm(intent.user_id, intent.raw_input, commit=self.commit)
        except InvalidOtp:
            # NoPendingConfirmation included: the user sees the same message
            return OutboundReply(identity=intent.user_id, text=replies.INVALID_OTP_TEXT)

        payload = pending.payload or {}
        return OutboundReply(
            identity=intent.user_id,
            text=replies.success_text(pending.command, payload, self.currency),
        )

    async def commit(self, pending: PendingConfirmation) -> None:
        """Book the transaction; keyed by the OTP id so a retried commit is a no-op."""
        payload = pending.payload or {}
        record = TransactionRecord(
            id=pending.otp_id,
            identity=pending.identity,
            command=pending.command,
            status=TransactionStatus.COMPLETED,
            amount=payload.get("amount"),
            metadata={"otp_id": pending.otp_id, "payload": payload},
        )
        await self.ledger.append(record)
        logger.info(
            f"[TRANSACTION] user_id={pending.identity} command={pending.command.value} "
            f"status={record.status.value} id={record.id}"
        )
