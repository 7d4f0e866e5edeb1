import pytest

from core.command import Command
from core.intent import ClassificationSource
from services.pattern_matcher import PatternMatcher, is_otp_shaped


matcher = PatternMatcher()


def _command(text):
    result = matcher.match(text)
    return result.command if result else None


# ---------------------------------------------------------------------
# OTP SHAPE
# ---------------------------------------------------------------------

@pytest.mark.parametrize("text", ["482913", " 000123 ", "999999\n"])
def test_six_digits_are_otp(text):
    result = matcher.match(text)
    assert result.command is Command.OTP
    assert result.source is ClassificationSource.PATTERN
    assert result.confidence == 1.0


@pytest.mark.parametrize("text", ["48291", "4829130", "48 2913", "otp 482913"])
def test_near_otp_shapes_are_not_otp(text):
    assert not is_otp_shaped(text)
    assert _command(text) is not Command.OTP


# ---------------------------------------------------------------------
# GREETINGS / HELP
# ---------------------------------------------------------------------

@pytest.mark.parametrize("text", ["hi", "Hello!", "hey there", "Good morning", "menu", "START"])
def test_greetings(text):
    assert _command(text) is Command.GREETING


def test_help_literal():
    assert _command("help") is Command.HELP


def test_greeting_prefix_does_not_swallow_requests():
    """
    'hi' at the start of a real request must not hide the request.
    """
    assert _command("hi, what is my balance") is Command.BALANCE


# ---------------------------------------------------------------------
# DOMAIN RULES
# ---------------------------------------------------------------------

@pytest.mark.parametrize(
    "text, command",
    [
        ("balance", Command.BALANCE),
        ("how much money do i have", Command.BALANCE),
        ("pay water", Command.PAY_WATER),
        ("pay my NWSC bill", Command.PAY_WATER),
        ("buy yaka", Command.PAY_ELECTRICITY),
        ("pay umeme 20000", Command.PAY_ELECTRICITY),
        ("renew my dstv", Command.PAY_TV),
        ("pay gotv", Command.PAY_TV),
        ("buy airtime", Command.AIRTIME),
        ("send airtime 5000 to 0772123456", Command.AIRTIME),
        ("top up 50000", Command.TOP_UP),
        ("deposit money", Command.TOP_UP),
        ("send 20000 to John", Command.TRANSFER),
        ("transfer money", Command.TRANSFER),
        ("I need a loan", Command.LOANS),
    ],
)
def test_domain_rules(text, command):
    assert _command(text) is command


def test_balance_checked_before_money_verbs():
    assert _command("check my balance before I send money") is Command.BALANCE


def test_airtime_payload_is_parsed():
    result = matcher.match("buy airtime 5000 for 0772123456 mtn")
    assert result.command is Command.AIRTIME
    assert result.payload == {"amount": 5000.0, "phone": "256772123456", "network": "MTN"}


def test_non_sensitive_commands_carry_no_payload():
    assert matcher.match("balance 5000").payload is None


def test_unknown_text_escalates():
    assert matcher.match("asdkjasd nonsense") is None
    assert matcher.match("   ") is None
