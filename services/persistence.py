# FILE: services/persistence.py
"""
Contracts for the collaborators the bot core consults but does not own:
confirmation storage, the transaction ledger and the wallet.
"""

from abc import ABC, abstractmethod
from typing import Optional

from models.confirmation import OtpRecord, PendingConfirmation, TransactionRecord


class ConfirmationRepository(ABC):
    """
    Key/record store for OTP records and pending confirmations.
    Implementations raise PersistenceFailure when the backend is unavailable.
    """

    # -----------------------------
    # Pending confirmations (one per identity)
    # -----------------------------
    @abstractmethod
    async def save_pending(self, pending: PendingConfirmation) -> None:
        """Insert or overwrite the pending confirmation for pending.identity."""

    @abstractmethod
    async def get_pending(self, identity: str) -> Optional[PendingConfirmation]:
        pass

    @abstractmethod
    async def delete_pending(self, identity: str) -> Optional[PendingConfirmation]:
        """Remove and return the pending confirmation, if any."""

    # -----------------------------
    # OTP records (history kept)
    # -----------------------------
    @abstractmethod
    async def insert_otp(self, record: OtpRecord) -> None:
        pass

    @abstractmethod
    async def latest_unverified_otp(self, identity: str) -> Optional[OtpRecord]:
        pass

    @abstractmethod
    async def mark_otp_verified(self, otp_id: str) -> bool:
        """Flip verified=False -> True. False if the record was already verified or gone."""

    @abstractmethod
    async def increment_otp_attempts(self, otp_id: str) -> int:
        """Count one wrong code against the record and return the new total."""

    @abstractmethod
    async def discard_unverified_otps(self, identity: str, keep_id: Optional[str] = None) -> int:
        """Drop every unverified record for identity except keep_id; returns how many."""

    @abstractmethod
    async def delete_otp(self, otp_id: str) -> None:
        pass


class TransactionLedger(ABC):
    """
    Append-only record of committed actions. Appending a record whose id is
    already stored is a no-op, so a retried commit never books twice.
    """

    @abstractmethod
    async def append(self, record: TransactionRecord) -> None:
        pass


class WalletService(ABC):

    @abstractmethod
    async def get_balance(self, identity: str) -> float:
        pass


class StaticWallet(WalletService):
    """Demo wallet: every user holds the same configured balance."""

    def __init__(self, balance: float):
        self.balance = balance

    async def get_balance(self, identity: str) -> float:
        return self.balance
