# core/errors.py
"""
Failure taxonomy for message handling.

None of these ever reach the user as a stack trace: the controller turns
each one into a plain-language reply on the same channel.
"""


class BotError(Exception):
    """Base class for every failure raised by the bot core."""


class ClassificationFailure(BotError):
    """Remote classifier errored, timed out or answered something unreadable."""


class InvalidOtp(BotError):
    """No unexpired, unverified code matched."""


class NoPendingConfirmation(InvalidOtp):
    """An OTP-shaped message arrived while nothing was awaiting confirmation."""


class PersistenceFailure(BotError):
    """The backing store could not complete a read or write."""


class DeliveryFailure(BotError):
    """The channel refused or failed to deliver an outbound message."""
