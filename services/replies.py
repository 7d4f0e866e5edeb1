# FILE: services/replies.py
"""
Every user-facing sentence the bot can send.

The per-command tables are checked for completeness at import time, so a
new sensitive command cannot ship without its service name and success
message.
"""

from typing import Any, Dict, Mapping, Optional

from core.command import Command, SENSITIVE_COMMANDS

CURRENCY = "UGX"

# -----------------------------
# Command -> service name
# -----------------------------
SERVICE_NAMES: Mapping[Command, str] = {
    Command.PAY_WATER: "water bill payment",
    Command.PAY_ELECTRICITY: "electricity bill payment",
    Command.PAY_TV: "TV subscription payment",
    Command.AIRTIME: "airtime purchase",
    Command.TOP_UP: "wallet top-up",
    Command.TRANSFER: "money transfer",
}

# -----------------------------
# Command -> success template
# Placeholders: {amount_text}, {target_text}
# -----------------------------
SUCCESS_TEMPLATES: Mapping[Command, str] = {
    Command.PAY_WATER: "Your water bill payment{amount_text}{target_text} was successful.",
    Command.PAY_ELECTRICITY: "Your electricity payment{amount_text}{target_text} was successful.",
    Command.PAY_TV: "Your TV subscription{amount_text}{target_text} has been renewed.",
    Command.AIRTIME: "Airtime{amount_text} has been loaded{target_text}.",
    Command.TOP_UP: "Your wallet top-up{amount_text} is complete.",
    Command.TRANSFER: "Your transfer{amount_text}{target_text} was sent successfully.",
}


def _check_complete(name: str, table: Mapping[Command, str]) -> None:
    missing = SENSITIVE_COMMANDS - set(table)
    if missing:
        raise RuntimeError(
            f"{name} is missing entries for: {', '.join(sorted(c.value for c in missing))}"
        )


_check_complete("SERVICE_NAMES", SERVICE_NAMES)
_check_complete("SUCCESS_TEMPLATES", SUCCESS_TEMPLATES)


# -----------------------------
# Static replies
# -----------------------------
MENU_TEXT = (
    "Hello! I'm your wallet assistant. You can ask me to:\n"
    "1. Check balance\n"
    "2. Pay water (NWSC)\n"
    "3. Pay electricity (UMEME / Yaka)\n"
    "4. Pay TV (DStv, GOtv, StarTimes)\n"
    "5. Buy airtime\n"
    "6. Top up your wallet\n"
    "7. Send money\n"
    "8. Loans\n"
    "Reply 'cancel' at any time to stop a pending payment."
)

LOANS_UNAVAILABLE = "Loans are not available yet. We'll let you know as soon as they are."

EXAMPLE_PHRASES = (
    "check my balance",
    "pay water",
    "buy airtime 5000 for 0772123456",
    "send 20000 to John",
    "top up 50000",
)

UNRESOLVED_TEXT = (
    "Sorry, I didn't understand that. Try something like:\n"
    + "\n".join(f"- {phrase}" for phrase in EXAMPLE_PHRASES)
    + "\nor type 'menu' to see everything I can do."
)

INVALID_OTP_TEXT = (
    "That code is invalid or has expired. Please check the code we sent you and try again, "
    "or repeat your request to get a new one."
)

TRY_AGAIN_TEXT = "Something went wrong on our side. Please try again in a moment."

CANCELLED_TEXT = "Okay, your pending request has been cancelled."

NOTHING_TO_CANCEL_TEXT = "There is nothing to cancel right now."

VOICE_UNSUPPORTED_TEXT = "Voice notes aren't supported yet. Please type your request."


def format_amount(amount: float, currency: str = CURRENCY) -> str:
    if float(amount).is_integer():
        return f"{currency} {int(amount):,}"
    return f"{currency} {amount:,.2f}"


def balance_text(amount: float, currency: str = CURRENCY) -> str:
    return f"Your current balance is {format_amount(amount, currency)}."


def otp_prompt_text(command: Command, payload: Optional[Dict[str, Any]] = None, currency: str = CURRENCY) -> str:
    details = _details(payload, currency)
    return (
        f"To confirm your {SERVICE_NAMES[command]}{details}, "
        "reply with the 6-digit code we just sent you. "
        "Reply 'cancel' to stop."
    )


def success_text(command: Command, payload: Optional[Dict[str, Any]] = None, currency: str = CURRENCY) -> str:
    payload = payload or {}
    amount = payload.get("amount")
    amount_text = f" of {format_amount(amount, currency)}" if amount else ""
    target = payload.get("recipient") or payload.get("phone") or payload.get("account")
    target_text = ""
    if target:
        target_text = f" to {target}" if command in (Command.TRANSFER, Command.AIRTIME) else f" for {target}"
    return SUCCESS_TEMPLATES[command].format(amount_text=amount_text, target_text=target_text)


def _details(payload: Optional[Dict[str, Any]], currency: str) -> str:
    if not payload:
        return ""
    parts = []
    if payload.get("amount"):
        parts.append(format_amount(payload["amount"], currency))
    if payload.get("network"):
        parts.append(payload["network"])
    target = payload.get("recipient") or payload.get("phone") or payload.get("account")
    if target:
        parts.append(f"to {target}")
    return f" ({', '.join(parts)})" if parts else ""
