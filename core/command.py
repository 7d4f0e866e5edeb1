# core/command.py
from enum import Enum


class Command(str, Enum):
    """
    The closed set of things a user can ask the bot to do.
    """

    BALANCE = "balance"
    PAY_WATER = "pay_water"
    PAY_ELECTRICITY = "pay_electricity"
    PAY_TV = "pay_tv"
    AIRTIME = "airtime"
    TOP_UP = "top_up"
    TRANSFER = "transfer"
    LOANS = "loans"
    HELP = "help"
    GREETING = "greeting"
    OTP = "otp"
    UNRESOLVED = "unresolved"

    # -----------------------------
    # Semantic helpers (SAFE)
    # -----------------------------
    def is_sensitive(self) -> bool:
        """Moves money or account state, so it must be confirmed by OTP."""
        return self in SENSITIVE_COMMANDS


SENSITIVE_COMMANDS = frozenset(
    {
        Command.PAY_WATER,
        Command.PAY_ELECTRICITY,
        Command.PAY_TV,
        Command.AIRTIME,
        Command.TOP_UP,
        Command.TRANSFER,
    }
)
