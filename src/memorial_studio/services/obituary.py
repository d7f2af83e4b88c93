"""Obituary drafting assistant backed by a text-generation model."""

import logging
import re
from dataclasses import dataclass
from typing import Literal, Protocol

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from memorial_studio.domain.errors import RateLimitedError, ServiceUnavailableError
from memorial_studio.domain.memorials import Account
from memorial_studio.services.rate_limit import RateLimiter

_logger = logging.getLogger(__name__)

_EMAIL_PATTERN = re.compile(r"[\w.-]+@[\w.-]+\.\w+")
_PHONE_PATTERN = re.compile(r"\(?\d{3}\)?[-.\s]?\d{3}[-.\s]?\d{4}")
_EXCESS_BLANK_LINES = re.compile(r"\n{3,}")

_TONE_PROMPTS = {
    "traditional": (
        "Write a respectful, traditional Catholic obituary that includes "
        "appropriate religious language and references to faith. Keep the tone "
        "formal yet warm."
    ),
    "celebratory": (
        "Write a life-celebrating obituary that focuses on joy, accomplishments, "
        "and positive memories while maintaining Catholic reverence and hope in "
        "eternal life."
    ),
    "simple": (
        "Write a brief, straightforward obituary with essential information and "
        "gentle Catholic faith references."
    ),
    "detailed": (
        "Write a comprehensive obituary that thoroughly covers the person's life "
        "story, relationships, and faith journey in the Catholic tradition."
    ),
}

_GUIDELINES = """Guidelines:
- Be respectful and dignified
- Avoid cliches while maintaining tradition
- Focus on celebrating the life lived
- Include specific details provided to personalize the obituary
- Keep sentences clear and readable
- Organize chronologically or by life themes
- End with service information placeholder if not provided"""


class ObituaryRequest(BaseModel):
    """Facts supplied by the family for an obituary draft."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    deceased_name: str = Field(min_length=1)
    date_of_birth: str | None = None
    date_of_death: str | None = None
    place_of_birth: str | None = None
    place_of_death: str | None = None
    occupation: str | None = None
    education: str | None = None
    military_service: str | None = None
    hobbies: str | None = None
    survived_by: str | None = None
    predeceased: str | None = None
    special_memories: str | None = None
    tone: Literal["traditional", "celebratory", "simple", "detailed"]
    include_religious: bool


@dataclass(frozen=True)
class ObituaryDraft:
    """Sanitized generated text plus suggestions for missing facts."""

    content: str
    suggestions: list[str]


class TextGenerationClient(Protocol):
    """Interface for LLM text generation."""

    async def generate(
        self, *, model: str, instructions: str, prompt: str, store: bool
    ) -> str:
        """Return generated text for the prompt."""


@dataclass
class ObituaryService:
    """Builds prompts, calls the model and cleans the result."""

    client: TextGenerationClient | None
    model: str
    store: bool
    rate_limiter: RateLimiter

    async def generate(
        self, account: Account, request: ObituaryRequest
    ) -> ObituaryDraft:
        """Generate an obituary draft for the account."""
        if self.client is None:
            raise ServiceUnavailableError(
                "AI assistance is temporarily unavailable. "
                "You can still write the obituary manually."
            )
        if not self.rate_limiter.check(f"obituary:{account.id}"):
            raise RateLimitedError(
                "You've made too many requests. "
                "Please wait a moment before trying again."
            )
        raw = await self.client.generate(
            model=self.model,
            instructions=build_system_prompt(request.tone, request.include_religious),
            prompt=build_user_prompt(request),
            store=self.store,
        )
        _logger.info(
            "Obituary generated: user_id=%s tone=%s chars=%s",
            account.id,
            request.tone,
            len(raw),
        )
        return ObituaryDraft(
            content=sanitize_obituary(raw), suggestions=suggest_missing(request)
        )


def build_system_prompt(tone: str, include_religious: bool) -> str:
    """Compose the system instructions for a tone."""
    religious = (
        "- Include appropriate prayers or Catholic references"
        if include_religious
        else "- Keep religious references minimal and universal"
    )
    return f"{_TONE_PROMPTS[tone]}\n\n{_GUIDELINES}\n{religious}"


def build_user_prompt(request: ObituaryRequest) -> str:
    """Turn the supplied facts into the user prompt."""
    sections = [f"Please write an obituary for {request.deceased_name}."]
    if request.date_of_birth or request.date_of_death:
        sections.append(
            f"Dates: Born {request.date_of_birth or '[date]'}, "
            f"passed away {request.date_of_death or '[date]'}"
        )
    if request.place_of_birth or request.place_of_death:
        sections.append(
            f"Places: Born in {request.place_of_birth or '[location]'}, "
            f"passed away in {request.place_of_death or '[location]'}"
        )
    labelled = (
        ("Career", request.occupation),
        ("Education", request.education),
        ("Military Service", request.military_service),
        ("Hobbies and Interests", request.hobbies),
        ("Survived by", request.survived_by),
        ("Predeceased by", request.predeceased),
        ("Special memories or qualities", request.special_memories),
    )
    sections.extend(f"{label}: {value}" for label, value in labelled if value)
    return "\n\n".join(sections)


def sanitize_obituary(content: str) -> str:
    """Strip contact details and collapse excess blank lines."""
    sanitized = _EMAIL_PATTERN.sub("[email]", content)
    sanitized = _PHONE_PATTERN.sub("[phone]", sanitized)
    sanitized = _EXCESS_BLANK_LINES.sub("\n\n", sanitized)
    return sanitized.strip()


def suggest_missing(request: ObituaryRequest) -> list[str]:
    """Suggest facts that would make the obituary more personal."""
    suggestions = []
    if not request.date_of_birth:
        suggestions.append("Consider adding the date of birth")
    if not request.place_of_birth and not request.place_of_death:
        suggestions.append("Include birthplace or place of passing")
    if not request.survived_by and not request.predeceased:
        suggestions.append("List surviving family members")
    if not request.special_memories:
        suggestions.append("Add personal qualities or cherished memories")
    if not request.occupation and not request.education:
        suggestions.append("Include career or educational achievements")
    if request.include_religious:
        suggestions.append("Consider mentioning church membership or faith activities")
    return suggestions
