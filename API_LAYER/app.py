# app.py
import logging
import json
from typing import Any, Dict, Optional

import httpx
from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel
from asyncio import Lock

from configurations.config import (
    CURRENCY,
    DATABASE_URL,
    DEBUG,
    DEMO_BALANCE,
    GEMINI_MODEL_NAME,
    GOOGLE_API_KEY,
    HF_API_TOKEN,
    HF_ZERO_SHOT_MODEL,
    INTENT_BACKEND,
    META_VERIFY_TOKEN,
    OTP_MAX_ATTEMPTS,
    OTP_TTL_SECONDS,
    REMOTE_CONFIDENCE_THRESHOLD,
    REMOTE_TIMEOUT_SECONDS,
    WHATSAPP_API_VERSION,
    WHATSAPP_PHONE_NUMBER_ID,
    WHATSAPP_TOKEN,
)
from agents.intent_agent import AgentIntentClassifier, build_intent_agent
from models.message import NormalizedMessage
from services.bot_controller import BotController
from services.confirmation_store import ConfirmationStateStore
from services.memory_store import InMemoryConfirmationRepository, InMemoryTransactionLedger
from services.persistence import StaticWallet
from services.remote_classifier import RemoteIntentClassifier, ZeroShotIntentClassifier
from services.router import build_default_resolver
from services.whatsapp import WhatsAppSender, parse_webhook


# -----------------------------
# Structured Logging Setup
# -----------------------------
class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        return json.dumps(
            {
                "time": self.formatTime(record, self.datefmt),
                "level": record.levelname,
                "name": record.name,
                "message": record.getMessage(),
                "exception": record.exc_text,
            }
        )


logger = logging.getLogger("wallet_bot_api")
logger.setLevel(logging.INFO)
handler = logging.StreamHandler()
handler.setFormatter(JSONFormatter())
if not logger.handlers:
    logger.addHandler(handler)

# -----------------------------
# FastAPI App
# -----------------------------
app = FastAPI(title="Wallet Bot API", version="1.0")

# -----------------------------
# Collaborators (Lifecycle managed)
# -----------------------------
db = None
http_client: Optional[httpx.AsyncClient] = None
sender: Optional[WhatsAppSender] = None
controller: Optional[BotController] = None

DB_CONNECTED: bool = False
DB_ERROR: str | None = None

# -----------------------------
# Metrics
# -----------------------------
metrics_lock = Lock()
request_counters = {
    "whatsapp": 0,
    "process": 0,
    "messages": 0,
    "ignored": 0,
    "total": 0,
    "errors": 0,
}

# -----------------------------
# Pydantic Models
# -----------------------------
class UserRequest(BaseModel):
    text: str
    user_id: str


# -----------------------------
# Wiring
# -----------------------------
def build_remote_classifier(client: httpx.AsyncClient) -> Optional[RemoteIntentClassifier]:
    if INTENT_BACKEND == "agent" and GOOGLE_API_KEY:
        agent = build_intent_agent(GOOGLE_API_KEY, GEMINI_MODEL_NAME)
        return AgentIntentClassifier(agent, threshold=REMOTE_CONFIDENCE_THRESHOLD)

    if INTENT_BACKEND == "zero_shot":
        return ZeroShotIntentClassifier(
            client,
            url=f"https://api-inference.huggingface.co/models/{HF_ZERO_SHOT_MODEL}",
            token=HF_API_TOKEN,
            threshold=REMOTE_CONFIDENCE_THRESHOLD,
        )

    logger.warning(f"Remote intent classifier disabled (backend={INTENT_BACKEND})")
    return None


async def connect_storage():
    """
    Prisma when DATABASE_URL is set, in-memory otherwise.
    """
    global db, DB_CONNECTED, DB_ERROR

    if not DATABASE_URL:
        logger.warning("DATABASE_URL not set; using in-memory confirmation storage.")
        DB_ERROR = "DATABASE_URL not set"
        return InMemoryConfirmationRepository(), InMemoryTransactionLedger()

    from prisma import Prisma
    from services.prisma_store import PrismaConfirmationRepository, PrismaTransactionLedger

    db = Prisma()
    await db.connect()
    DB_CONNECTED = True
    DB_ERROR = None
    logger.info("Prisma DB connected")
    return PrismaConfirmationRepository(db), PrismaTransactionLedger(db)


# -----------------------------
# Startup / Shutdown Events
# -----------------------------
@app.on_event("startup")
async def startup():
    global http_client, sender, controller, DB_CONNECTED

    http_client = httpx.AsyncClient(timeout=REMOTE_TIMEOUT_SECONDS)

    try:
        repository, ledger = await connect_storage()
    except Exception:
        DB_CONNECTED = False
        logger.exception("Failed to connect Prisma DB")
        if DEBUG:
            raise
        repository, ledger = InMemoryConfirmationRepository(), InMemoryTransactionLedger()

    if WHATSAPP_TOKEN:
        sender = WhatsAppSender(
            http_client,
            token=WHATSAPP_TOKEN,
            phone_number_id=WHATSAPP_PHONE_NUMBER_ID or "",
            api_version=WHATSAPP_API_VERSION,
        )
    else:
        logger.warning("WHATSAPP_TOKEN not set; replies will not be delivered.")

    store = ConfirmationStateStore(
        repository,
        otp_sender=sender,
        ttl_seconds=OTP_TTL_SECONDS,
        max_attempts=OTP_MAX_ATTEMPTS,
    )
    resolver = build_default_resolver(
        build_remote_classifier(http_client),
        remote_timeout=REMOTE_TIMEOUT_SECONDS,
    )
    controller = BotController(
        resolver,
        store,
        ledger,
        StaticWallet(float(DEMO_BALANCE)),
        sender=sender,
        currency=CURRENCY,
    )
    logger.info("Bot controller ready")


@app.on_event("shutdown")
async def shutdown():
    global DB_CONNECTED
    if http_client is not None:
        await http_client.aclose()
    if DB_CONNECTED and db is not None:
        await db.disconnect()
        DB_CONNECTED = False
        logger.info("Prisma DB disconnected")


# -----------------------------
# API Endpoints
# -----------------------------
@app.get("/")
async def root():
    return {"message": "Wallet Bot API is running."}


@app.get("/health")
async def health() -> Dict[str, Any]:
    info = {
        "status": "ok",
        "db_connected": DB_CONNECTED,
        "controller_ready": controller is not None,
    }
    if DB_ERROR:
        info["db_error"] = DB_ERROR
    return info


@app.get("/metrics")
async def metrics() -> Dict[str, Any]:
    async with metrics_lock:
        return request_counters.copy()


@app.get("/whatsapp")
async def verify_webhook(
    mode: Optional[str] = Query(None, alias="hub.mode"),
    token: Optional[str] = Query(None, alias="hub.verify_token"),
    challenge: Optional[str] = Query(None, alias="hub.challenge"),
):
    if mode == "subscribe" and META_VERIFY_TOKEN and token == META_VERIFY_TOKEN:
        logger.info("Webhook verified successfully.")
        return PlainTextResponse(challenge or "")
    raise HTTPException(status_code=403, detail="Verification failed")


@app.post("/whatsapp")
async def whatsapp_webhook(request: Request):
    async with metrics_lock:
        request_counters["total"] += 1
        request_counters["whatsapp"] += 1

    try:
        body = await request.json()
    except ValueError:
        async with metrics_lock:
            request_counters["errors"] += 1
        logger.warning("[ERROR] webhook body is not valid JSON")
        raise HTTPException(status_code=400, detail="Malformed JSON body")

    if not isinstance(body, dict) or not body.get("object"):
        raise HTTPException(status_code=404, detail="Not a WhatsApp event")

    if controller is None:
        raise HTTPException(status_code=503, detail="Bot not ready")

    try:
        messages = parse_webhook(body)
        if not messages:
            async with metrics_lock:
                request_counters["ignored"] += 1
            return {"status": "ignored"}

        for message in messages:
            await controller.handle(message)
            async with metrics_lock:
                request_counters["messages"] += 1

        return {"status": "ok", "handled": len(messages)}

    except Exception as e:
        async with metrics_lock:
            request_counters["errors"] += 1
        logger.exception(f"[ERROR] webhook exception={e}")
        raise HTTPException(
            status_code=500,
            detail=str(e) if DEBUG else "An unexpected error occurred",
        )


@app.post("/process")
async def process_request(request: UserRequest):
    async with metrics_lock:
        request_counters["total"] += 1
        request_counters["process"] += 1

    if controller is None:
        raise HTTPException(status_code=503, detail="Bot not ready")

    try:
        reply = await controller.decide(
            NormalizedMessage(identity=request.user_id, text=request.text)
        )
        return {"user_id": reply.identity, "message": reply.text}

    except Exception as e:
        async with metrics_lock:
            request_counters["errors"] += 1
        logger.exception(f"[ERROR] user_id={request.user_id}, exception={e}")
        raise HTTPException(
            status_code=500,
            detail=str(e) if DEBUG else "An unexpected error occurred",
        )


# -----------------------------
# Entrypoint
# -----------------------------
import os
import uvicorn

if __name__ == "__main__":
    port = int(os.environ.get("PORT", 8000))
    uvicorn.run("API_LAYER.app:app", host="0.0.0.0", port=port, workers=1)
