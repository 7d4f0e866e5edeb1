# FILE: services/prisma_store.py
"""
Prisma-backed confirmation repository and transaction ledger.

Models live in prisma/schema.prisma. JSON-ish columns (payload, metadata)
are stored as text so the schema stays portable across providers.
"""

import json
import logging
from typing import TYPE_CHECKING, Any, Dict, Optional

from core.command import Command
from core.errors import PersistenceFailure
from models.confirmation import OtpRecord, PendingConfirmation, TransactionRecord
from services.persistence import ConfirmationRepository, TransactionLedger
from services.utils import deep_serialize

if TYPE_CHECKING:
    from prisma import Prisma

logger = logging.getLogger("prisma_store")


def _otp_from_row(row: Any) -> OtpRecord:
    return OtpRecord(
        id=row.id,
        identity=row.identity,
        code=row.code,
        created_at=row.createdAt,
        verified=row.verified,
        attempts=row.attempts,
    )


def _pending_from_row(row: Any) -> PendingConfirmation:
    return PendingConfirmation(
        identity=row.identity,
        command=Command(row.command),
        otp_id=row.otpId,
        created_at=row.createdAt,
        payload=json.loads(row.payload) if row.payload else None,
    )


class PrismaConfirmationRepository(ConfirmationRepository):

    def __init__(self, db: "Prisma"):
        self.db = db

    async def save_pending(self, pending: PendingConfirmation) -> None:
        data = {
            "command": pending.command.value,
            "otpId": pending.otp_id,
            "createdAt": pending.created_at,
            "payload": json.dumps(deep_serialize(pending.payload)) if pending.payload else None,
        }
        try:
            await self.db.pendingconfirmation.upsert(
                where={"identity": pending.identity},
                data={
                    "create": {"identity": pending.identity, **data},
                    "update": data,
                },
            )
        except Exception as e:
            raise PersistenceFailure(f"save_pending failed: {e}") from e

    async def get_pending(self, identity: str) -> Optional[PendingConfirmation]:
        try:
            row = await self.db.pendingconfirmation.find_unique(where={"identity": identity})
        except Exception as e:
            raise PersistenceFailure(f"get_pending failed: {e}") from e
        return _pending_from_row(row) if row else None

    async def delete_pending(self, identity: str) -> Optional[PendingConfirmation]:
        try:
            row = await self.db.pendingconfirmation.find_unique(where={"identity": identity})
            if row is None:
                return None
            await self.db.pendingconfirmation.delete_many(
                where={"identity": identity, "otpId": row.otpId}
            )
        except Exception as e:
            raise PersistenceFailure(f"delete_pending failed: {e}") from e
        return _pending_from_row(row)

    async def insert_otp(self, record: OtpRecord) -> None:
        try:
            await self.db.otprecord.create(
                data={
                    "id": record.id,
                    "identity": record.identity,
                    "code": record.code,
                    "createdAt": record.created_at,
                    "verified": record.verified,
                    "attempts": record.attempts,
                }
            )
        except Exception as e:
            raise PersistenceFailure(f"insert_otp failed: {e}") from e

    async def latest_unverified_otp(self, identity: str) -> Optional[OtpRecord]:
        try:
            row = await self.db.otprecord.find_first(
                where={"identity": identity, "verified": False},
                order={"createdAt": "desc"},
            )
        except Exception as e:
            raise PersistenceFailure(f"latest_unverified_otp failed: {e}") from e
        return _otp_from_row(row) if row else None

    async def mark_otp_verified(self, otp_id: str) -> bool:
        # conditional update so a second verifier sees count == 0
        try:
            count = await self.db.otprecord.update_many(
                where={"id": otp_id, "verified": False},
                data={"verified": True},
            )
        except Exception as e:
            raise PersistenceFailure(f"mark_otp_verified failed: {e}") from e
        return count == 1

    async def increment_otp_attempts(self, otp_id: str) -> int:
        try:
            row = await self.db.otprecord.update(
                where={"id": otp_id},
                data={"attempts": {"increment": 1}},
            )
        except Exception as e:
            raise PersistenceFailure(f"increment_otp_attempts failed: {e}") from e
        return row.attempts if row else 0

    async def discard_unverified_otps(self, identity: str, keep_id: Optional[str] = None) -> int:
        where: Dict[str, Any] = {"identity": identity, "verified": False}
        if keep_id is not None:
            where["id"] = {"not": keep_id}
        try:
            return await self.db.otprecord.delete_many(where=where)
        except Exception as e:
            raise PersistenceFailure(f"discard_unverified_otps failed: {e}") from e

    async def delete_otp(self, otp_id: str) -> None:
        try:
            await self.db.otprecord.delete_many(where={"id": otp_id})
        except Exception as e:
            raise PersistenceFailure(f"delete_otp failed: {e}") from e


class PrismaTransactionLedger(TransactionLedger):

    def __init__(self, db: "Prisma"):
        self.db = db

    async def append(self, record: TransactionRecord) -> None:
        data = {
            "id": record.id,
            "identity": record.identity,
            "command": record.command.value,
            "status": record.status.value,
            "amount": record.amount,
            "metadata": json.dumps(deep_serialize(record.metadata)),
            "createdAt": record.created_at,
        }
        try:
            # an existing id means the commit already landed
            await self.db.transactionrecord.upsert(
                where={"id": record.id},
                data={"create": data, "update": {}},
            )
        except Exception as e:
            raise PersistenceFailure(f"transaction insert failed: {e}") from e
        logger.info(f"Ledger append id={record.id} command={record.command.value}")
