# FILE: services/bot_controller.py
"""
Per-message driver: classify -> (state mutation) -> deliver reply.

Replies leave from the business number the message arrived on.
Delivery is best effort and runs after state has changed; a failed send is
logged and never rolls back an issued or verified OTP.
"""

import logging
from typing import Mapping, Optional

from core.command import Command
from core.errors import PersistenceFailure
from core.intent import Intent
from executors.balance import BalanceExecutor
from executors.base import BaseExecutor
from executors.confirmation import ConfirmationExecutor
from executors.conversation import InformationalExecutor
from executors.otp import OtpExecutor
from models.message import NormalizedMessage, OutboundReply
from services import replies
from services.channel import MessageSender
from services.confirmation_store import ConfirmationStateStore
from services.persistence import TransactionLedger, WalletService
from services.router import IntentResolver

logger = logging.getLogger("bot_controller")

CANCEL_WORDS = frozenset({"cancel", "abort", "stop"})


class BotController:

    def __init__(
        self,
        resolver: IntentResolver,
        store: ConfirmationStateStore,
        ledger: TransactionLedger,
        wallet: WalletService,
        sender: Optional[MessageSender] = None,
        currency: str = replies.CURRENCY,
    ):
        self.resolver = resolver
        self.store = store
        self.sender = sender

        informational = InformationalExecutor()
        confirmation = ConfirmationExecutor(store, currency)

        # -----------------------------
        # Command -> executor (every Command must appear)
        # -----------------------------
        self.executors: Mapping[Command, BaseExecutor] = {
            Command.GREETING: informational,
            Command.HELP: informational,
            Command.LOANS: informational,
            Command.UNRESOLVED: informational,
            Command.BALANCE: BalanceExecutor(wallet, currency),
            Command.PAY_WATER: confirmation,
            Command.PAY_ELECTRICITY: confirmation,
            Command.PAY_TV: confirmation,
            Command.AIRTIME: confirmation,
            Command.TOP_UP: confirmation,
            Command.TRANSFER: confirmation,
            Command.OTP: OtpExecutor(store, ledger, currency),
        }
        missing = set(Command) - set(self.executors)
        if missing:
            raise RuntimeError(f"No executor for: {', '.join(sorted(c.value for c in missing))}")

    async def handle(self, message: NormalizedMessage) -> OutboundReply:
        reply = await self.decide(message)
        if reply.channel_id is None:
            reply.channel_id = message.channel_id
        await self.deliver(reply)
        return reply

    async def decide(self, message: NormalizedMessage) -> OutboundReply:
        """
        Work out the reply (and perform any state change) without sending it.
        Never raises for user input or collaborator failures.
        """
        identity = message.identity
        text = message.text.strip()

        logger.info(f"[REQUEST_START] user_id={identity}, text_length={len(text)}")

        try:
            if text.lower() in CANCEL_WORDS:
                cancelled = await self.store.cancel(identity)
                return OutboundReply(
                    identity=identity,
                    text=replies.CANCELLED_TEXT if cancelled else replies.NOTHING_TO_CANCEL_TEXT,
                )

            if not text and message.attachment_ref:
                return OutboundReply(identity=identity, text=replies.VOICE_UNSUPPORTED_TEXT)

            intent = await self.resolve(identity, text)
            intent.channel_id = message.channel_id
            logger.info(
                f"[INTENT] user_id={intent.user_id}, command={intent.command.value}, "
                f"source={intent.source.value if intent.source else None}"
            )
            return await self.executors[intent.command].execute(intent)

        except PersistenceFailure:
            logger.exception(f"[ERROR] persistence failure user_id={identity}")
            return OutboundReply(identity=identity, text=replies.TRY_AGAIN_TEXT)
        except Exception as e:
            logger.exception(f"[ERROR] user_id={identity}, exception={e}")
            return OutboundReply(identity=identity, text=replies.TRY_AGAIN_TEXT)

    async def resolve(self, identity: str, text: str) -> Intent:
        result = await self.resolver.resolve_intent(text)
        if result is None:
            return Intent(user_id=identity, raw_input=text, command=Command.UNRESOLVED)
        return Intent(
            user_id=identity,
            raw_input=text,
            command=result.command,
            source=result.source,
            confidence=result.confidence,
            payload=result.payload,
        )

    async def deliver(self, reply: OutboundReply) -> bool:
        if self.sender is None:
            return False
        try:
            await self.sender.send(reply)
            return True
        except Exception:
            logger.exception(f"[DELIVERY_FAILED] user_id={reply.identity}")
            return False
