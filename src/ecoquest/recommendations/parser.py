"""Lifestyle recommendations produced by the chatbot collaborator.

The chatbot is any async callable taking a prompt and returning text.
Its output is validated here; anything malformed is treated like an
unavailable collaborator and replaced by the fixed fallback list.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Awaitable, Callable, Mapping

from pydantic import BaseModel, ValidationError, field_validator

from ecoquest.errors import CollaboratorUnavailable

logger = logging.getLogger(__name__)

ChatCompletion = Callable[[str], Awaitable[str]]

_FENCE_RE = re.compile(r"^\s*```(?:json)?\s*(.*?)\s*```\s*$", re.DOTALL)


class Recommendation(BaseModel):
    id: str
    action: str
    category: str

    @field_validator("id", mode="before")
    @classmethod
    def _id_as_string(cls, value: object) -> str:
        return str(value)


FALLBACK_RECOMMENDATIONS: list[Recommendation] = [
    Recommendation(id="1", action="Switch to public transport 3 days a week", category="transport"),
    Recommendation(id="2", action="Use reusable bags instead of plastic", category="waste"),
    Recommendation(id="3", action="Reduce shower time to 5 minutes", category="water"),
]

PROMPT_TEMPLATE = """\
You are an AI assistant helping users adopt sustainable lifestyles. Based on the following \
user habits, provide 3 specific, actionable recommendations to reduce their environmental \
impact. Each recommendation should be a short sentence (e.g., "Switch to public transport \
3 days a week") and include a category (transport, waste, water). Format the response as a \
JSON array of objects with "id", "action", and "category" fields.

User habits:
- Transport: {transport}
- Waste: {waste}
- Water: {water}
"""


def build_prompt(habits: Mapping[str, str]) -> str:
    return PROMPT_TEMPLATE.format(
        transport=habits.get("transport", "unknown"),
        waste=habits.get("waste", "unknown"),
        water=habits.get("water", "unknown"),
    )


def parse_recommendations(raw_text: str) -> list[Recommendation]:
    """Parse a JSON array of ``{id, action, category}``, optionally inside a code fence."""
    fenced = _FENCE_RE.match(raw_text)
    body = fenced.group(1) if fenced else raw_text.strip()
    try:
        data = json.loads(body)
    except json.JSONDecodeError as exc:
        raise CollaboratorUnavailable(
            f"Chatbot returned invalid JSON: {exc}", transient=False
        ) from exc

    if not isinstance(data, list) or not data:
        raise CollaboratorUnavailable("Chatbot did not return a list of recommendations", transient=False)
    try:
        return [Recommendation.model_validate(item) for item in data]
    except ValidationError as exc:
        raise CollaboratorUnavailable(
            f"Chatbot returned malformed recommendations: {exc.error_count()} errors",
            transient=False,
        ) from exc


def recommendations_from_reply(raw_text: str) -> list[Recommendation]:
    """Validate a chatbot reply, falling back to the fixed list when it is malformed."""
    try:
        return parse_recommendations(raw_text)
    except CollaboratorUnavailable as exc:
        logger.warning("Falling back to default recommendations: %s", exc)
        return list(FALLBACK_RECOMMENDATIONS)


async def generate_recommendations(
    habits: Mapping[str, str], complete: ChatCompletion
) -> list[Recommendation]:
    """Ask the chatbot for suggestions. Falls back to a fixed list on any collaborator failure.

    For deployments that call the chatbot from this service. The web client
    calls it directly and sends the reply to ``PUT /recommendations``.
    """
    try:
        raw_text = await complete(build_prompt(habits))
    except Exception:
        logger.exception("Chatbot request failed, using default recommendations")
        return list(FALLBACK_RECOMMENDATIONS)
    return recommendations_from_reply(raw_text)
