# tests/conftest.py
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

# ---------------------------------------------------------
# Ensure project root is on PYTHONPATH BEFORE app imports
# ---------------------------------------------------------
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

# ---------------------------------------------------------
# Now safe to import app + dependencies
# ---------------------------------------------------------
import pytest

from core.errors import ClassificationFailure, DeliveryFailure
from models.message import OutboundReply
from services.bot_controller import BotController
from services.channel import MessageSender
from services.confirmation_store import ConfirmationStateStore
from services.memory_store import InMemoryConfirmationRepository, InMemoryTransactionLedger
from services.persistence import StaticWallet
from services.remote_classifier import RemoteIntentClassifier
from services.router import build_default_resolver


# ---------------------------------------------------------
# Fakes
# ---------------------------------------------------------
class FrozenClock:
    def __init__(self, start=None):
        self.now = start or datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)


class RecordingSender(MessageSender):
    def __init__(self, fail: bool = False):
        self.sent = []
        self.fail = fail

    async def send(self, reply: OutboundReply) -> None:
        if self.fail:
            raise DeliveryFailure("channel down")
        self.sent.append(reply)

    def codes_for(self, identity):
        return [
            r.text.split()[4].rstrip(".")
            for r in self.sent
            if r.identity == identity and r.text.startswith("Your confirmation code is")
        ]


class FakeRemote(RemoteIntentClassifier):
    """Remote tier with a canned answer and a call counter."""

    def __init__(self, label="unknown", confidence=0.0, error=None, threshold=0.5):
        super().__init__(threshold=threshold)
        self.label = label
        self.confidence = confidence
        self.error = error
        self.calls = 0

    async def predict(self, text, labels):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.label, self.confidence


class SequenceCodes:
    """Deterministic OTP codes for tests."""

    def __init__(self, *codes):
        self.codes = list(codes)

    def __call__(self):
        return self.codes.pop(0)


# ---------------------------------------------------------
# Fixtures
# ---------------------------------------------------------
@pytest.fixture
def clock():
    return FrozenClock()


@pytest.fixture
def sender():
    return RecordingSender()


@pytest.fixture
def failing_sender():
    return RecordingSender(fail=True)


@pytest.fixture
def repository():
    return InMemoryConfirmationRepository()


@pytest.fixture
def ledger():
    return InMemoryTransactionLedger()


@pytest.fixture
def store(repository, sender, clock):
    return ConfirmationStateStore(repository, otp_sender=sender, clock=clock)


@pytest.fixture
def unreachable_remote():
    return FakeRemote(error=ClassificationFailure("connection refused"))


@pytest.fixture
def make_remote():
    return FakeRemote


@pytest.fixture
def make_codes():
    return SequenceCodes


@pytest.fixture
def make_controller(store, ledger, sender):
    def _make(remote=None, wallet_balance=234000, reply_sender=sender):
        return BotController(
            build_default_resolver(remote),
            store,
            ledger,
            StaticWallet(wallet_balance),
            sender=reply_sender,
        )

    return _make
