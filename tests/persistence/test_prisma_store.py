import asyncio
import json
import pytest
from datetime import datetime, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

from core.command import Command
from core.errors import PersistenceFailure
from models.confirmation import OtpRecord, PendingConfirmation, TransactionRecord, TransactionStatus
from services.prisma_store import PrismaConfirmationRepository, PrismaTransactionLedger

NOW = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)


# ---------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------

def fake_db():
    """Prisma client double: db.<model>.<action> are AsyncMocks."""
    db = MagicMock()
    for model in ("otprecord", "pendingconfirmation", "transactionrecord"):
        actions = MagicMock()
        for action in ("create", "find_first", "find_unique", "update", "update_many", "delete_many", "upsert"):
            setattr(actions, action, AsyncMock())
        setattr(db, model, actions)
    return db


def pending_row(**overrides):
    row = dict(identity="u1", command="airtime", otpId="otp-1", createdAt=NOW, payload='{"amount": 5000.0}')
    row.update(overrides)
    return SimpleNamespace(**row)


# ---------------------------------------------------------------------
# PENDING CONFIRMATIONS
# ---------------------------------------------------------------------

def test_save_pending_upserts_by_identity():
    db = fake_db()
    repo = PrismaConfirmationRepository(db)
    pending = PendingConfirmation(
        identity="u1", command=Command.AIRTIME, otp_id="otp-1", created_at=NOW, payload={"amount": 5000.0}
    )

    asyncio.run(repo.save_pending(pending))

    kwargs = db.pendingconfirmation.upsert.await_args.kwargs
    assert kwargs["where"] == {"identity": "u1"}
    assert kwargs["data"]["create"]["identity"] == "u1"
    assert kwargs["data"]["update"]["command"] == "airtime"
    assert json.loads(kwargs["data"]["update"]["payload"]) == {"amount": 5000.0}


def test_get_pending_maps_row():
    db = fake_db()
    db.pendingconfirmation.find_unique.return_value = pending_row()

    pending = asyncio.run(PrismaConfirmationRepository(db).get_pending("u1"))

    assert pending.command is Command.AIRTIME
    assert pending.otp_id == "otp-1"
    assert pending.payload == {"amount": 5000.0}


def test_delete_pending_returns_what_it_removed():
    db = fake_db()
    db.pendingconfirmation.find_unique.return_value = pending_row(payload=None)

    removed = asyncio.run(PrismaConfirmationRepository(db).delete_pending("u1"))

    assert removed.payload is None
    db.pendingconfirmation.delete_many.assert_awaited_once_with(where={"identity": "u1", "otpId": "otp-1"})


def test_delete_pending_when_nothing_stored():
    db = fake_db()
    db.pendingconfirmation.find_unique.return_value = None

    assert asyncio.run(PrismaConfirmationRepository(db).delete_pending("u1")) is None
    db.pendingconfirmation.delete_many.assert_not_awaited()


# ---------------------------------------------------------------------
# OTP RECORDS
# ---------------------------------------------------------------------

def test_latest_unverified_queries_newest_first():
    db = fake_db()
    db.otprecord.find_first.return_value = SimpleNamespace(
        id="otp-1", identity="u1", code="012345", createdAt=NOW, verified=False, attempts=2
    )

    record = asyncio.run(PrismaConfirmationRepository(db).latest_unverified_otp("u1"))

    assert record.code == "012345"
    assert record.attempts == 2
    db.otprecord.find_first.assert_awaited_once_with(
        where={"identity": "u1", "verified": False},
        order={"createdAt": "desc"},
    )


def test_insert_otp_keeps_leading_zeros():
    db = fake_db()
    record = OtpRecord(identity="u1", code="000777", created_at=NOW)

    asyncio.run(PrismaConfirmationRepository(db).insert_otp(record))

    assert db.otprecord.create.await_args.kwargs["data"]["code"] == "000777"


@pytest.mark.parametrize("count, expected", [(1, True), (0, False)])
def test_mark_verified_is_conditional(count, expected):
    db = fake_db()
    db.otprecord.update_many.return_value = count

    assert asyncio.run(PrismaConfirmationRepository(db).mark_otp_verified("otp-1")) is expected
    db.otprecord.update_many.assert_awaited_once_with(
        where={"id": "otp-1", "verified": False},
        data={"verified": True},
    )


def test_discard_can_spare_the_newest_code():
    db = fake_db()
    db.otprecord.delete_many.return_value = 2

    removed = asyncio.run(PrismaConfirmationRepository(db).discard_unverified_otps("u1", keep_id="otp-2"))

    assert removed == 2
    db.otprecord.delete_many.assert_awaited_once_with(
        where={"identity": "u1", "verified": False, "id": {"not": "otp-2"}}
    )


def test_delete_otp_by_id():
    db = fake_db()

    asyncio.run(PrismaConfirmationRepository(db).delete_otp("otp-9"))

    db.otprecord.delete_many.assert_awaited_once_with(where={"id": "otp-9"})


def test_backend_errors_become_persistence_failure():
    db = fake_db()
    db.otprecord.find_first.side_effect = RuntimeError("connection reset")

    with pytest.raises(PersistenceFailure):
        asyncio.run(PrismaConfirmationRepository(db).latest_unverified_otp("u1"))


# ---------------------------------------------------------------------
# LEDGER
# ---------------------------------------------------------------------

def test_ledger_append_serialises_metadata():
    db = fake_db()
    record = TransactionRecord(
        identity="u1",
        command=Command.PAY_WATER,
        status=TransactionStatus.COMPLETED,
        amount=45000.0,
        metadata={"otp_id": "otp-1", "payload": {"account": "12345678"}},
    )

    asyncio.run(PrismaTransactionLedger(db).append(record))

    kwargs = db.transactionrecord.upsert.await_args.kwargs
    assert kwargs["where"] == {"id": record.id}
    assert kwargs["data"]["update"] == {}
    data = kwargs["data"]["create"]
    assert data["command"] == "pay_water"
    assert data["status"] == "completed"
    assert json.loads(data["metadata"])["payload"] == {"account": "12345678"}


def test_ledger_failure_raises():
    db = fake_db()
    db.transactionrecord.upsert.side_effect = RuntimeError("disk full")
    record = TransactionRecord(identity="u1", command=Command.TOP_UP, status=TransactionStatus.COMPLETED)

    with pytest.raises(PersistenceFailure):
        asyncio.run(PrismaTransactionLedger(db).append(record))
