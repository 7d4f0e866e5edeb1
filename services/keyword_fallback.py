# FILE: services/keyword_fallback.py
"""
Last tier of the cascade. Plain substring checks over a reduced vocabulary,
so the bot keeps answering the basics when the remote classifier is down.
"""

from typing import Optional, Sequence, Tuple

from core.command import Command
from core.intent import ClassificationResult, ClassificationSource
from services.payload_parser import parse_payload
from services.strategy import IntentStrategy

FALLBACK_KEYWORDS: Sequence[Tuple[Command, Sequence[str]]] = (
    (Command.BALANCE, ("balance", "how much")),
    (Command.AIRTIME, ("airtime", "bundle")),
    (Command.PAY_WATER, ("water",)),
    (Command.PAY_ELECTRICITY, ("electric", "power", "light", "umeme", "yaka")),
    (Command.PAY_TV, ("dstv", "gotv", "startimes", " tv", "tv ")),
    (Command.TOP_UP, ("top up", "topup", "deposit")),
    (Command.TRANSFER, ("send", "transfer")),
    (Command.LOANS, ("loan",)),
    (Command.HELP, ("help", "menu")),
)


class KeywordFallback(IntentStrategy):

    name = "keyword"

    async def classify(self, text: str) -> Optional[ClassificationResult]:
        lowered = f" {text.lower().strip()} "
        for command, keywords in FALLBACK_KEYWORDS:
            if any(k in lowered for k in keywords):
                payload = parse_payload(command, text) if command.is_sensitive() else None
                return ClassificationResult(
                    command=command,
                    confidence=1.0,
                    source=ClassificationSource.KEYWORD,
                    payload=payload,
                )
        return None
