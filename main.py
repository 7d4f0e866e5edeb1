import asyncio

from models.message import NormalizedMessage, OutboundReply
from services.bot_controller import BotController
from services.channel import MessageSender
from services.confirmation_store import ConfirmationStateStore
from services.memory_store import InMemoryConfirmationRepository, InMemoryTransactionLedger
from services.persistence import StaticWallet
from services.router import build_default_resolver


class ConsoleSender(MessageSender):
    def __init__(self):
        self.last_code = None

    async def send(self, reply: OutboundReply) -> None:
        if reply.text.startswith("Your confirmation code is"):
            self.last_code = reply.text.split()[4].rstrip(".")
        print(f"  bot -> {reply.identity}: {reply.text}")


async def main():
    user = "256772123456"
    sender = ConsoleSender()
    store = ConfirmationStateStore(InMemoryConfirmationRepository(), otp_sender=sender)
    ledger = InMemoryTransactionLedger()
    controller = BotController(
        build_default_resolver(),
        store,
        ledger,
        StaticWallet(234000),
        sender=sender,
    )

    for text in ("hi", "balance", "pay water 45000 meter 12345678"):
        print(f"user: {text}")
        await controller.handle(NormalizedMessage(identity=user, text=text))

    print(f"user: {sender.last_code}")
    await controller.handle(NormalizedMessage(identity=user, text=sender.last_code))

    print("Ledger:", [r.model_dump(mode="json") for r in ledger.records])

if __name__ == "__main__":
    import sys
    if sys.platform.startswith("win"):
        asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())
    asyncio.run(main())
