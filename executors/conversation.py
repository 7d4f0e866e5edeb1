from core.command import Command
from core.intent import Intent
from executors.base import BaseExecutor
from models.message import OutboundReply
from services import replies


class InformationalExecutor(BaseExecutor):
    """
    Static replies: greeting/help menu, loans stub and the unresolved hint.
    Never touches state.
    """

    async def execute(self, intent: Intent) -> OutboundReply:
        if intent.command in (Command.GREETING, Command.HELP):
            text = replies.MENU_TEXT
        elif intent.command is Command.LOANS:
            text = replies.LOANS_UNAVAILABLE
        else:
            text = replies.UNRESOLVED_TEXT
        return OutboundReply(identity=intent.user_id, text=text)
