# FILE: services/remote_classifier.py
"""
Second classification tier: an external zero-shot / generative classifier.

Every backend answers with (label, confidence). The label is mapped onto a
Command through LABEL_TO_COMMAND and gated by a confidence threshold; below
the threshold the tier declines instead of guessing. Transport errors,
non-2xx answers and malformed bodies raise ClassificationFailure, which the
resolver treats as "try the next tier".
"""

import logging
from abc import abstractmethod
from typing import Any, Dict, Optional, Sequence, Tuple

import httpx

from core.command import Command
from core.errors import ClassificationFailure
from core.intent import ClassificationResult, ClassificationSource
from services.payload_parser import parse_payload
from services.strategy import IntentStrategy

logger = logging.getLogger("remote_classifier")

# -----------------------------
# Label -> Command (SINGLE SOURCE OF TRUTH)
# Labels are phrased for zero-shot NLI models; the LLM agent gets the same list.
# -----------------------------
LABEL_TO_COMMAND: Dict[str, Command] = {
    "check account balance": Command.BALANCE,
    "pay water bill": Command.PAY_WATER,
    "pay electricity bill": Command.PAY_ELECTRICITY,
    "pay tv subscription": Command.PAY_TV,
    "buy airtime or data": Command.AIRTIME,
    "top up or deposit to wallet": Command.TOP_UP,
    "send or transfer money": Command.TRANSFER,
    "apply for a loan": Command.LOANS,
    "ask for help": Command.HELP,
    "greeting": Command.GREETING,
}

CANDIDATE_LABELS: Tuple[str, ...] = tuple(LABEL_TO_COMMAND)

DEFAULT_CONFIDENCE_THRESHOLD = 0.5


class RemoteIntentClassifier(IntentStrategy):

    name = "remote"
    performs_io = True

    def __init__(self, threshold: float = DEFAULT_CONFIDENCE_THRESHOLD):
        self.threshold = threshold

    @abstractmethod
    async def predict(self, text: str, labels: Sequence[str]) -> Tuple[str, float]:
        """Return (top_label, confidence) or raise ClassificationFailure."""

    async def classify(
        self,
        text: str,
        labels: Optional[Sequence[str]] = None,
    ) -> ClassificationResult:
        label, confidence = await self.predict(text, labels or CANDIDATE_LABELS)
        return self.to_result(text, label, confidence)

    def to_result(self, text: str, label: str, confidence: float) -> ClassificationResult:
        command = LABEL_TO_COMMAND.get(label.strip().lower())
        if command is None:
            logger.info(f"[REMOTE] unknown label={label!r}, treating as unresolved")
        elif confidence < self.threshold:
            logger.info(
                f"[REMOTE] label={label!r} confidence={confidence:.2f} "
                f"below threshold={self.threshold:.2f}"
            )
            command = None

        payload = None
        if command is not None and command.is_sensitive():
            payload = parse_payload(command, text)

        return ClassificationResult(
            command=command,
            confidence=confidence,
            source=ClassificationSource.REMOTE,
            payload=payload,
        )


# -----------------------------
# Hugging Face zero-shot backend
# -----------------------------
class ZeroShotIntentClassifier(RemoteIntentClassifier):
    """
    Zero-shot classification over HTTP.

    Request:  {"inputs": text, "parameters": {"candidate_labels": [...]}}
    Response: {"labels": [...], "scores": [...]} (sorted, best first)
              or [{"label": ..., "score": ...}, ...]
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        url: str,
        token: Optional[str] = None,
        threshold: float = DEFAULT_CONFIDENCE_THRESHOLD,
    ):
        super().__init__(threshold=threshold)
        self.client = client
        self.url = url
        self.token = token

    async def predict(self, text: str, labels: Sequence[str]) -> Tuple[str, float]:
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"

        body = {"inputs": text, "parameters": {"candidate_labels": list(labels)}}

        try:
            response = await self.client.post(self.url, json=body, headers=headers)
        except httpx.HTTPError as e:
            raise ClassificationFailure(f"zero-shot request failed: {e}") from e

        if response.status_code // 100 != 2:
            raise ClassificationFailure(f"zero-shot service answered {response.status_code}")

        try:
            return self._top_label(response.json())
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise ClassificationFailure(f"malformed zero-shot response: {e}") from e

    @staticmethod
    def _top_label(data: Any) -> Tuple[str, float]:
        if isinstance(data, dict):
            return str(data["labels"][0]), float(data["scores"][0])
        if isinstance(data, list):
            best = max(data, key=lambda item: float(item["score"]))
            return str(best["label"]), float(best["score"])
        raise TypeError(f"unexpected body type {type(data).__name__}")
