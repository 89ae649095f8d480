"""Generated handover reports and quick task suggestions.

The text service is cosmetic: every failure turns into a fixed fallback string
and nothing is retried, so checklist work never waits on it.
"""

from __future__ import annotations

import logging
import os
from typing import Any, Dict, Optional, Protocol

import httpx

from models import ShiftData


logger = logging.getLogger(__name__)

GEMINI_API_KEY = os.getenv("GEMINI_API_KEY")
GENERATION_MODEL = os.getenv("FRONTDESK_GENERATION_MODEL", "gemini-2.5-flash")
GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"

HANDOVER_EMPTY = "Unable to generate summary."
HANDOVER_FALLBACK = "Error generating handover summary. Please check API key configuration."
SUGGESTION_EMPTY = "Check lobby ambiance."
SUGGESTION_FALLBACK = "Ensure cold towels are ready."


class GenerationError(RuntimeError):
    """Raised when the text service cannot produce a response."""


class TextGenerator(Protocol):
    def generate(self, prompt: str) -> str:
        ...


class GeminiTextGenerator:
    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = GENERATION_MODEL,
        *,
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.api_key = api_key if api_key is not None else GEMINI_API_KEY
        self.model = model
        self.timeout = timeout
        self.transport = transport

    def generate(self, prompt: str) -> str:
        if not self.api_key:
            raise GenerationError("GEMINI_API_KEY environment variable is not set")
        url = f"{GEMINI_BASE_URL}/models/{self.model}:generateContent"
        body = {"contents": [{"parts": [{"text": prompt}]}]}
        try:
            with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
                resp = client.post(url, headers={"x-goog-api-key": self.api_key}, json=body)
                resp.raise_for_status()
                payload = resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise GenerationError(f"Text generation request failed: {exc}") from exc
        return _response_text(payload)


def _response_text(payload: Dict[str, Any]) -> str:
    candidates = payload.get("candidates") or []
    if not candidates:
        return ""
    parts = (candidates[0].get("content") or {}).get("parts") or []
    return "".join(part.get("text", "") for part in parts if isinstance(part, dict)).strip()


def build_handover_prompt(shift: ShiftData) -> str:
    completed = sum(1 for task in shift.tasks if task.is_completed)
    pending = "\n".join(f"- {task.label} ({task.category})" for task in shift.tasks if not task.is_completed)
    notes = shift.notes or "No specific agent notes provided."
    return f"""
You are an AI assistant for a luxury resort in the Maldives called "Nova Maldives".
Your task is to generate a professional, concise, and clear Shift Handover Report for the next GSA (Guest Service Agent).

Shift Details:
- Shift Type: {shift.type}
- Date: {shift.date}
- Agent: {shift.agent_name}
- Occupancy: {shift.occupancy}%
- Task Completion: {completed}/{len(shift.tasks)}

Pending Tasks (High Priority to Mention):
{pending}

Agent's Log/Notes:
{notes}

Please format the report with these sections:
1. **Shift Overview**: Brief summary of the shift status.
2. **Pending Actions**: Bullet points of what the next shift MUST do immediately.
3. **Operational Notes**: Summary of the agent's notes or general observations.
4. **Guest Delight**: A suggestion for a guest delight activity based on the current occupancy (if high, suggest efficiency; if low, suggest personalized touches).

Tone: Professional, warm, resort-hospitality style.
""".strip()


def build_suggestion_prompt(weather: str, time_of_day: str) -> str:
    return (
        f'Given the current weather is "{weather}" and it is "{time_of_day}" at a luxury Maldives resort.\n'
        "Suggest one specific, actionable task for a Front Desk agent to improve guest experience right now.\n"
        "Keep it under 15 words."
    )


def _generate(generator: Optional[TextGenerator], prompt: str, *, empty: str, fallback: str, what: str) -> str:
    client = generator or GeminiTextGenerator()
    try:
        text = client.generate(prompt)
    except Exception as exc:  # noqa: BLE001
        logger.warning("Could not generate %s: %s", what, exc)
        return fallback
    return text or empty


def generate_handover_summary(shift: ShiftData, generator: Optional[TextGenerator] = None) -> str:
    return _generate(
        generator,
        build_handover_prompt(shift),
        empty=HANDOVER_EMPTY,
        fallback=HANDOVER_FALLBACK,
        what="handover summary",
    )


def smart_task_suggestion(weather: str, time_of_day: str, generator: Optional[TextGenerator] = None) -> str:
    return _generate(
        generator,
        build_suggestion_prompt(weather, time_of_day),
        empty=SUGGESTION_EMPTY,
        fallback=SUGGESTION_FALLBACK,
        what="task suggestion",
    )
