# FILE: services/payload_parser.py
"""
Local extraction of structured requests from free text.

Runs after a sensitive command has been recognised so the parsed request
can travel with the pending confirmation instead of being re-parsed once
the OTP arrives.
"""

import re
from typing import Any, Dict, List, Optional

from core.command import Command
from models.payload import AirtimeRequest, BillPaymentRequest, TopUpRequest, TransferRequest

# Ugandan mobile numbers: 07XXXXXXXX, 2567XXXXXXXX, +2567XXXXXXXX
_phone_re = re.compile(r"(?<!\d)(?:\+?256|0)7\d{8}(?!\d)")

_amount_re = re.compile(
    r"(?:(?:ugx|ush|shs?)\.?\s*)?"
    r"(\d{1,3}(?:,\d{3})+(?:\.\d+)?|\d+(?:\.\d+)?)"
    r"\s*(k\b|m\b|/=|(?:ugx|ush|shs?)\b)?",
    re.IGNORECASE,
)

_account_re = re.compile(
    r"\b(?:meter|account|acc|a/c|smart\s*card|card|customer)\s*(?:no\.?|number|#)?\s*:?\s*(\d{5,})",
    re.IGNORECASE,
)

_recipient_re = re.compile(r"\bto\s+([a-z][a-z'\-]*(?:\s+[a-z][a-z'\-]*)?)", re.IGNORECASE)

NETWORKS = {
    "mtn": "MTN",
    "airtel": "Airtel",
    "lyca": "Lycamobile",
    "utl": "UTL",
}

# words that follow "to" but are not recipients
_NOT_RECIPIENTS = {"my", "me", "the", "a", "an", "pay", "buy", "send", "mobile", "account", "wallet"}


def _clean_num(tok: str) -> Optional[float]:
    tok = tok.replace(",", "").strip()
    try:
        return float(tok)
    except ValueError:
        return None


def normalize_phone(raw: str) -> str:
    digits = raw.lstrip("+")
    if digits.startswith("0"):
        digits = "256" + digits[1:]
    return digits


def extract_phones(text: str) -> List[str]:
    return [normalize_phone(m.group(0)) for m in _phone_re.finditer(text)]


def extract_amounts(text: str) -> List[float]:
    """
    Money amounts in the text, phone numbers and account numbers excluded.
    """
    stripped = _phone_re.sub(" ", text)
    stripped = _account_re.sub(" ", stripped)
    amounts = []
    for m in _amount_re.finditer(stripped):
        val = _clean_num(m.group(1))
        if val is None:
            continue
        suffix = (m.group(2) or "").lower()
        if suffix == "k":
            val *= 1_000
        elif suffix == "m":
            val *= 1_000_000
        amounts.append(val)
    return amounts


def extract_amount(text: str) -> Optional[float]:
    amounts = [a for a in extract_amounts(text) if a > 0]
    return amounts[0] if amounts else None


def extract_network(text: str) -> Optional[str]:
    lowered = text.lower()
    for token, name in NETWORKS.items():
        if re.search(rf"\b{token}\b", lowered):
            return name
    return None


def extract_recipient(text: str) -> Optional[str]:
    phones = extract_phones(text)
    if phones:
        return phones[0]
    for m in _recipient_re.finditer(text):
        words = [w for w in m.group(1).split() if w.lower() not in _NOT_RECIPIENTS]
        if words and words[0] == m.group(1).split()[0]:
            return " ".join(w.capitalize() for w in words)
    return None


# -----------------------------
# Per-command parsers
# -----------------------------
def parse_airtime(text: str) -> Optional[AirtimeRequest]:
    amount = extract_amount(text)
    if amount is None:
        return None
    phones = extract_phones(text)
    return AirtimeRequest(
        amount=amount,
        phone=phones[0] if phones else None,
        network=extract_network(text),
    )


def parse_transfer(text: str) -> Optional[TransferRequest]:
    amount = extract_amount(text)
    if amount is None:
        return None
    return TransferRequest(amount=amount, recipient=extract_recipient(text))


def parse_bill(text: str) -> Optional[BillPaymentRequest]:
    account_match = _account_re.search(text)
    amount = extract_amount(text)
    if amount is None and account_match is None:
        return None
    return BillPaymentRequest(
        amount=amount,
        account=account_match.group(1) if account_match else None,
    )


def parse_top_up(text: str) -> Optional[TopUpRequest]:
    amount = extract_amount(text)
    if amount is None:
        return None
    return TopUpRequest(amount=amount)


_PARSERS = {
    Command.AIRTIME: parse_airtime,
    Command.TRANSFER: parse_transfer,
    Command.PAY_WATER: parse_bill,
    Command.PAY_ELECTRICITY: parse_bill,
    Command.PAY_TV: parse_bill,
    Command.TOP_UP: parse_top_up,
}


def parse_payload(command: Command, text: str) -> Optional[Dict[str, Any]]:
    """
    Parsed request for a sensitive command as a plain dict, or None when the
    text carries nothing beyond the command itself.
    """
    parser = _PARSERS.get(command)
    if parser is None:
        return None
    parsed = parser(text)
    if parsed is None:
        return None
    return parsed.model_dump(exclude_none=True)
