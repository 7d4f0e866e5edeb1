# FILE: services/pattern_matcher.py
"""
First classification tier: exact OTP shape, greetings, and an ordered table
of domain rules.

Pure and deterministic. No I/O, no LLM. It exists to answer the bulk of
traffic without paying for a remote call.
"""

import re
from typing import Optional, Sequence, Tuple

from core.command import Command
from core.intent import ClassificationResult, ClassificationSource
from services.payload_parser import parse_payload
from services.strategy import IntentStrategy

OTP_RE = re.compile(r"^\d{6}$")

GREETING_RE = re.compile(
    r"^(?:hi+|hello|hey|hiya|howdy|hallo|yo|greetings|good\s+(?:morning|afternoon|evening|day)"
    r"|menu|main\s+menu|start|begin|oli\s+otya|gyebale\s+ko)"
    r"(?:\s+(?:there|bot|team|friend))?[\s!.,?]*$",
    re.IGNORECASE,
)

HELP_RE = re.compile(r"^(?:help|\?|options|what\s+can\s+you\s+do)[\s!.?]*$", re.IGNORECASE)

# -----------------------------
# Domain rules (ORDER MATTERS)
# Balance phrasing is checked before the generic money verbs so that
# "check my balance before I send" stays a balance request.
# -----------------------------
DOMAIN_RULES: Sequence[Tuple[Command, Sequence[str]]] = (
    (Command.BALANCE, (
        r"\bbalance\b",
        r"\bbal\b",
        r"\bhow\s+much\s+(?:money\s+)?(?:do\s+i\s+have|is\s+(?:left|in\s+my))",
        r"\bcheck\s+(?:my\s+)?(?:account|wallet)\b",
        r"\bmy\s+(?:account|wallet)\s+(?:status|statement)\b",
    )),
    (Command.PAY_WATER, (
        r"\bwater\b",
        r"\bnwsc\b",
        r"\bnational\s+water\b",
    )),
    (Command.PAY_ELECTRICITY, (
        r"\belectric(?:ity)?\b",
        r"\bumeme\b",
        r"\byaka\b",
        r"\buedcl\b",
        r"\bpower\s+(?:bill|token|units)\b",
        r"\blight\s+bill\b",
        r"\btokens?\b",
    )),
    (Command.PAY_TV, (
        r"\btv\b",
        r"\btelevision\b",
        r"\bdstv\b",
        r"\bgotv\b",
        r"\bstar\s*times\b",
        r"\bazam\b",
        r"\bzuku\b",
        r"\bdecoder\b",
    )),
    (Command.AIRTIME, (
        r"\bair\s*time\b",
        r"\bdata\s+bundles?\b",
        r"\bbundles?\b",
        r"\bload\s+(?:my\s+)?(?:phone|line)\b",
    )),
    (Command.TOP_UP, (
        r"\btop\s*-?\s*up\b",
        r"\bdeposit\b",
        r"\bload\s+(?:my\s+)?wallet\b",
        r"\badd\s+(?:money|funds|cash)\b",
        r"\bfund\s+(?:my\s+)?(?:account|wallet)\b",
    )),
    (Command.TRANSFER, (
        r"\btransfer\b",
        r"\bsend\b",
        r"\bremit\b",
        r"\bmobile\s+money\b",
        r"\bpay\s+(?:to\s+)?[a-z]+\s+\d",
    )),
    (Command.LOANS, (
        r"\bloans?\b",
        r"\bborrow\b",
        r"\bsalary\s+advance\b",
        r"\bcredit\s+limit\b",
    )),
)

_COMPILED_RULES = tuple(
    (command, tuple(re.compile(p, re.IGNORECASE) for p in patterns))
    for command, patterns in DOMAIN_RULES
)


def is_otp_shaped(text: str) -> bool:
    return bool(OTP_RE.match(text.strip()))


class PatternMatcher(IntentStrategy):
    """
    Stateless local classifier.

    Check order (first match wins):
    1. exact 6-digit code -> OTP
    2. whole-message greeting / help
    3. DOMAIN_RULES in table order
    """

    name = "pattern"

    def match(self, text: str) -> Optional[ClassificationResult]:
        stripped = text.strip()
        if not stripped:
            return None

        if OTP_RE.match(stripped):
            return self._result(Command.OTP)

        if GREETING_RE.match(stripped):
            return self._result(Command.GREETING)

        if HELP_RE.match(stripped):
            return self._result(Command.HELP)

        for command, patterns in _COMPILED_RULES:
            if any(p.search(stripped) for p in patterns):
                payload = parse_payload(command, stripped) if command.is_sensitive() else None
                return self._result(command, payload)

        return None

    async def classify(self, text: str) -> Optional[ClassificationResult]:
        return self.match(text)

    @staticmethod
    def _result(command: Command, payload=None) -> ClassificationResult:
        return ClassificationResult(
            command=command,
            confidence=1.0,
            source=ClassificationSource.PATTERN,
            payload=payload,
        )
