from typing import Optional, Sequence, Tuple

from pydantic import BaseModel, Field
from pydantic_ai import Agent
from pydantic_ai.models.google import GoogleModel
from pydantic_ai.providers.google import GoogleProvider

from core.errors import ClassificationFailure
from services.remote_classifier import (
    CANDIDATE_LABELS,
    DEFAULT_CONFIDENCE_THRESHOLD,
    RemoteIntentClassifier,
)


# Define classifier schema
class IntentLabel(BaseModel):
    label: str  # one of the candidate labels, verbatim
    confidence: float = Field(..., ge=0.0, le=1.0)


SYSTEM_PROMPT = (
    "You are an intent classifier for a mobile-wallet chatbot in Uganda. "
    "Users write short, informal messages, sometimes mixing English and Luganda.\n\n"
    "Pick exactly ONE label from this list and copy it verbatim:\n"
    + "\n".join(f"- {label}" for label in CANDIDATE_LABELS)
    + "\n\nRules:\n"
    "1. If the message does not fit any label, return the label 'unknown'.\n"
    "2. confidence is your probability (0 to 1) that the label is correct.\n"
    "3. Never invent new labels.\n\n"
    "Return strictly as JSON: {\"label\": \"...\", \"confidence\": 0.0}."
)


def build_intent_agent(api_key: str, model_name: str) -> Agent:
    # Provider & Model setup
    provider = GoogleProvider(api_key=api_key)
    model = GoogleModel(model_name, provider=provider)
    return Agent(
        model,
        system_prompt=SYSTEM_PROMPT,
        output_type=IntentLabel,
    )


class AgentIntentClassifier(RemoteIntentClassifier):
    """
    Generative backend: asks an LLM agent for a label from the candidate list.
    """

    def __init__(self, agent: Agent, threshold: float = DEFAULT_CONFIDENCE_THRESHOLD):
        super().__init__(threshold=threshold)
        self.agent = agent

    async def predict(self, text: str, labels: Sequence[str]) -> Tuple[str, float]:
        prompt = text
        if tuple(labels) != CANDIDATE_LABELS:
            prompt = f"Candidate labels: {', '.join(labels)}\n\nMessage: {text}"

        try:
            result = await self.agent.run(prompt)
        except Exception as e:
            raise ClassificationFailure(f"intent agent failed: {e}") from e

        output: Optional[IntentLabel] = getattr(result, "output", None)
        if not isinstance(output, IntentLabel):
            raise ClassificationFailure("intent agent returned no structured output")
        return output.label, output.confidence
