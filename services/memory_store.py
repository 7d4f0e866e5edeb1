# FILE: services/memory_store.py
"""
In-process implementations of the persistence contracts.
Used when DATABASE_URL is not set, by the demo, and by the tests.
"""

from collections import defaultdict
from typing import Dict, List, Optional

from models.confirmation import OtpRecord, PendingConfirmation, TransactionRecord
from services.persistence import ConfirmationRepository, TransactionLedger


class InMemoryConfirmationRepository(ConfirmationRepository):

    def __init__(self):
        self._pending: Dict[str, PendingConfirmation] = {}
        self._otps: Dict[str, List[OtpRecord]] = defaultdict(list)

    async def save_pending(self, pending: PendingConfirmation) -> None:
        self._pending[pending.identity] = pending.model_copy()

    async def get_pending(self, identity: str) -> Optional[PendingConfirmation]:
        pending = self._pending.get(identity)
        return pending.model_copy() if pending else None

    async def delete_pending(self, identity: str) -> Optional[PendingConfirmation]:
        return self._pending.pop(identity, None)

    async def insert_otp(self, record: OtpRecord) -> None:
        self._otps[record.identity].append(record.model_copy())

    async def latest_unverified_otp(self, identity: str) -> Optional[OtpRecord]:
        candidates = [r for r in self._otps.get(identity, []) if not r.verified]
        if not candidates:
            return None
        # ties on created_at go to the later insert
        return max(reversed(candidates), key=lambda r: r.created_at).model_copy()

    async def mark_otp_verified(self, otp_id: str) -> bool:
        record = self._find(otp_id)
        if record is None or record.verified:
            return False
        record.verified = True
        return True

    async def increment_otp_attempts(self, otp_id: str) -> int:
        record = self._find(otp_id)
        if record is None:
            return 0
        record.attempts += 1
        return record.attempts

    async def discard_unverified_otps(self, identity: str, keep_id: Optional[str] = None) -> int:
        records = self._otps.get(identity, [])
        kept = [r for r in records if r.verified or r.id == keep_id]
        self._otps[identity] = kept
        return len(records) - len(kept)

    async def delete_otp(self, otp_id: str) -> None:
        for identity, records in self._otps.items():
            self._otps[identity] = [r for r in records if r.id != otp_id]

    def _find(self, otp_id: str) -> Optional[OtpRecord]:
        for records in self._otps.values():
            for record in records:
                if record.id == otp_id:
                    return record
        return None


class InMemoryTransactionLedger(TransactionLedger):

    def __init__(self):
        self.records: List[TransactionRecord] = []

    async def append(self, record: TransactionRecord) -> None:
        if any(r.id == record.id for r in self.records):
            return
        self.records.append(record.model_copy())
