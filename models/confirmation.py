# models/confirmation.py
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional
from uuid import uuid4

from pydantic import BaseModel, Field

from core.command import Command


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return uuid4().hex


# -----------------------------
# OTP Record
# -----------------------------
class OtpRecord(BaseModel):
    id: str = Field(default_factory=new_id)
    identity: str
    code: str = Field(..., pattern=r"^\d{6}$", description="6-digit code, leading zeros kept")
    created_at: datetime = Field(default_factory=utcnow)
    verified: bool = False
    attempts: int = Field(default=0, ge=0, description="Wrong codes entered against this record")

    def age_seconds(self, now: datetime) -> float:
        return (now - self.created_at).total_seconds()

    def is_expired(self, now: datetime, ttl_seconds: int) -> bool:
        return self.age_seconds(now) > ttl_seconds


# -----------------------------
# Pending Confirmation (one per identity)
# -----------------------------
class PendingConfirmation(BaseModel):
    identity: str
    command: Command
    otp_id: str
    created_at: datetime = Field(default_factory=utcnow)
    payload: Optional[Dict[str, Any]] = None


# -----------------------------
# Transaction Record (append-only)
# -----------------------------
class TransactionStatus(str, Enum):
    COMPLETED = "completed"
    FAILED = "failed"


class TransactionRecord(BaseModel):
    id: str = Field(default_factory=new_id)
    identity: str
    command: Command
    status: TransactionStatus
    amount: Optional[float] = Field(None, ge=0)
    metadata: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=utcnow)
