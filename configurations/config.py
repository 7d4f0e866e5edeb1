import os
from dotenv import load_dotenv

# Load environment variables from .env
load_dotenv()

def get_env_var(name: str) -> str:
    """Get environment variable or raise a clear error if missing."""
    value = os.getenv(name)
    if not value:
        raise RuntimeError(
            f"Missing required environment variable: {name}\n"
            f"Did you copy .env.example to .env and fill in your keys?"
        )
    return value

# Remote intent classification
# "agent" = Gemini via pydantic_ai, "zero_shot" = Hugging Face inference, "none" = local tiers only
INTENT_BACKEND = os.getenv("INTENT_BACKEND", "agent").lower()
GOOGLE_API_KEY = os.getenv("GOOGLE_API_KEY")
GEMINI_MODEL_NAME = os.getenv("GEMINI_MODEL_NAME", "gemini-1.5-flash")
HF_API_TOKEN = os.getenv("HF_API_TOKEN")
HF_ZERO_SHOT_MODEL = os.getenv("HF_ZERO_SHOT_MODEL", "facebook/bart-large-mnli")
REMOTE_CONFIDENCE_THRESHOLD = float(os.getenv("REMOTE_CONFIDENCE_THRESHOLD", "0.5"))
REMOTE_TIMEOUT_SECONDS = float(os.getenv("REMOTE_TIMEOUT_SECONDS", "8"))

# OTP policy
OTP_TTL_SECONDS = int(os.getenv("OTP_TTL_SECONDS", "300"))
OTP_MAX_ATTEMPTS = int(os.getenv("OTP_MAX_ATTEMPTS", "5"))

# WhatsApp Cloud API
WHATSAPP_TOKEN = os.getenv("WHATSAPP_TOKEN")
WHATSAPP_API_VERSION = os.getenv("WHATSAPP_API_VERSION", "v19.0")
META_VERIFY_TOKEN = os.getenv("META_VERIFY_TOKEN")
WHATSAPP_PHONE_NUMBER_ID = os.getenv("WHATSAPP_PHONE_NUMBER_ID")

# Demo wallet
DEMO_BALANCE = os.getenv("DEMO_BALANCE", "234000")
CURRENCY = os.getenv("CURRENCY", "UGX")

# Optional vars (with defaults)
DATABASE_URL = os.getenv("DATABASE_URL")
DEBUG = os.getenv("DEBUG", "false").lower() == "true"
PORT = int(os.getenv("PORT", "8000"))
