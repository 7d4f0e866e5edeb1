# FILE: services/confirmation_store.py
"""
Per-identity confirmation state machine.

    Idle --begin_confirmation--> AwaitingOtp
    AwaitingOtp --verify(wrong)--> AwaitingOtp        (until max_attempts)
    AwaitingOtp --confirm(ok, commit ok)--> Idle
    AwaitingOtp --cancel / attempts exhausted--> Idle
    AwaitingOtp --begin_confirmation--> AwaitingOtp   (new command replaces old)

This store is the only writer of PendingConfirmation and OtpRecord.
Every operation for one identity runs under that identity's lock; different
identities never wait on each other.
"""

import asyncio
import logging
import secrets
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

from core.command import Command
from core.errors import BotError, InvalidOtp, NoPendingConfirmation, PersistenceFailure
from models.confirmation import OtpRecord, PendingConfirmation, utcnow
from models.message import OutboundReply
from services.channel import MessageSender
from services.persistence import ConfirmationRepository

logger = logging.getLogger("confirmation_store")

OTP_TTL_SECONDS = 300
OTP_MAX_ATTEMPTS = 5

Commit = Callable[[PendingConfirmation], Awaitable[Any]]


def generate_otp() -> str:
    """Uniform 6-digit code, leading zeros kept."""
    return f"{secrets.randbelow(1_000_000):06d}"


class ConfirmationStateStore:

    def __init__(
        self,
        repository: ConfirmationRepository,
        otp_sender: Optional[MessageSender] = None,
        ttl_seconds: int = OTP_TTL_SECONDS,
        max_attempts: int = OTP_MAX_ATTEMPTS,
        clock: Callable[[], datetime] = utcnow,
        code_factory: Callable[[], str] = generate_otp,
    ):
        self.repository = repository
        self.otp_sender = otp_sender
        self.ttl_seconds = ttl_seconds
        self.max_attempts = max_attempts
        self.clock = clock
        self.code_factory = code_factory
        # identity -> [lock, holders + waiters]; dropped when the count hits 0
        self._locks: Dict[str, List[Any]] = {}

    @asynccontextmanager
    async def _locked(self, identity: str):
        entry = self._locks.get(identity)
        if entry is None:
            entry = self._locks[identity] = [asyncio.Lock(), 0]
        entry[1] += 1
        try:
            async with entry[0]:
                yield
        finally:
            entry[1] -= 1
            if entry[1] == 0:
                del self._locks[identity]

    # -----------------------------
    # Public operations
    # -----------------------------
    async def begin_confirmation(
        self,
        identity: str,
        command: Command,
        payload: Optional[Dict[str, Any]] = None,
        channel_id: Optional[str] = None,
    ) -> OtpRecord:
        """
        Start (or restart) a confirmation round for a sensitive command.
        Earlier unverified codes for this identity stop being valid.

        The new code and pending command are written before older codes are
        dropped, so a failed write leaves the previous round usable.
        """
        if not command.is_sensitive():
            raise ValueError(f"{command.value} does not require confirmation")

        async with self._locked(identity):
            now = self.clock()
            record = OtpRecord(identity=identity, code=self.code_factory(), created_at=now)
            pending = PendingConfirmation(
                identity=identity,
                command=command,
                otp_id=record.id,
                created_at=now,
                payload=payload,
            )
            await self._call(self.repository.insert_otp(record))
            try:
                await self._call(self.repository.save_pending(pending))
            except PersistenceFailure:
                await self._withdraw(record)
                raise
            await self._call(self.repository.discard_unverified_otps(identity, keep_id=record.id))
            logger.info(f"[OTP] issued identity={identity} command={command.value} otp_id={record.id}")

        await self._dispatch_code(record, channel_id)
        return record

    async def verify(self, identity: str, code: str) -> bool:
        async with self._locked(identity):
            try:
                _, record = await self._check_locked(identity, code)
            except InvalidOtp:
                return False
            return await self._mark_verified_locked(record)

    async def consume_pending(self, identity: str) -> Optional[PendingConfirmation]:
        async with self._locked(identity):
            return await self._call(self.repository.delete_pending(identity))

    async def confirm(
        self,
        identity: str,
        code: str,
        commit: Optional[Commit] = None,
    ) -> PendingConfirmation:
        """
        verify + consume_pending under a single hold of the identity lock.

        `commit` runs after the code has matched and before the code is
        spent. If it raises, the code and the pending command stay as they
        were and the same code can be sent again.

        Raises NoPendingConfirmation / InvalidOtp when the code does not verify.
        """
        async with self._locked(identity):
            pending, record = await self._check_locked(identity, code)
            if commit is not None:
                await commit(pending)
            if not await self._mark_verified_locked(record):
                raise InvalidOtp(f"otp {record.id} already used")
            await self._call(self.repository.delete_pending(identity))
            return pending

    async def cancel(self, identity: str) -> bool:
        """Drop the pending command and its codes. True if something was pending."""
        async with self._locked(identity):
            pending = await self._call(self.repository.delete_pending(identity))
            await self._call(self.repository.discard_unverified_otps(identity))
        if pending is not None:
            logger.info(f"[OTP] cancelled identity={identity} command={pending.command.value}")
        return pending is not None

    async def get_pending(self, identity: str) -> Optional[PendingConfirmation]:
        return await self._call(self.repository.get_pending(identity))

    async def has_pending(self, identity: str) -> bool:
        return await self.get_pending(identity) is not None

    # -----------------------------
    # Internals (identity lock held)
    # -----------------------------
    async def _check_locked(self, identity: str, code: str) -> Tuple[PendingConfirmation, OtpRecord]:
        """Return the pending round and its live record matching `code`, or raise InvalidOtp."""
        code = code.strip()

        pending = await self._call(self.repository.get_pending(identity))
        if pending is None:
            logger.info(f"[OTP] verify with nothing pending identity={identity}")
            raise NoPendingConfirmation(identity)

        record = await self._call(self.repository.latest_unverified_otp(identity))
        if record is None or record.id != pending.otp_id:
            logger.info(f"[OTP] no live code for pending round identity={identity}")
            raise InvalidOtp(identity)

        if record.is_expired(self.clock(), self.ttl_seconds):
            logger.info(f"[OTP] expired otp_id={record.id} identity={identity}")
            raise InvalidOtp(identity)

        if not secrets.compare_digest(record.code, code):
            attempts = await self._call(self.repository.increment_otp_attempts(record.id))
            logger.info(f"[OTP] wrong code otp_id={record.id} attempts={attempts}")
            if attempts >= self.max_attempts:
                await self._call(self.repository.delete_pending(identity))
                await self._call(self.repository.discard_unverified_otps(identity))
                logger.warning(f"[OTP] attempts exhausted, round dropped identity={identity}")
            raise InvalidOtp(identity)

        return pending, record

    async def _mark_verified_locked(self, record: OtpRecord) -> bool:
        if not await self._call(self.repository.mark_otp_verified(record.id)):
            return False
        logger.info(f"[OTP] verified otp_id={record.id} identity={record.identity}")
        return True

    async def _withdraw(self, record: OtpRecord) -> None:
        # the new code must not outrank the still-pending older round
        try:
            await self._call(self.repository.delete_otp(record.id))
        except PersistenceFailure:
            logger.exception(f"[OTP] could not withdraw otp_id={record.id} identity={record.identity}")

    async def _call(self, awaitable):
        try:
            return await awaitable
        except BotError:
            raise
        except Exception as e:
            raise PersistenceFailure(str(e)) from e

    async def _dispatch_code(self, record: OtpRecord, channel_id: Optional[str] = None) -> None:
        if self.otp_sender is None:
            return
        minutes = max(1, self.ttl_seconds // 60)
        message = OutboundReply(
            identity=record.identity,
            text=(
                f"Your confirmation code is {record.code}. "
                f"It expires in {minutes} minutes. Never share it with anyone."
            ),
            channel_id=channel_id,
        )
        try:
            await self.otp_sender.send(message)
        except Exception:
            # issued state stays; the user can ask again by repeating the command
            logger.exception(f"[OTP] delivery failed otp_id={record.id} identity={record.identity}")
