"""Pure validation rules for memorial drafts."""

import re
from dataclasses import dataclass, field
from datetime import UTC, date, datetime

from memorial_studio.domain.memorials import PRIVACY_PASSWORD, MemorialDraft

CUSTOM_URL_PATTERN = re.compile(r"^[a-z0-9-]+$")
ISO_DATE_PATTERN = re.compile(r"^[0-9]{4}-[0-9]{2}-[0-9]{2}$")
CUSTOM_URL_MIN_LENGTH = 3
CUSTOM_URL_MAX_LENGTH = 50

_REQUIRED_LABELS = {
    "firstName": ("first_name", "First name is required"),
    "lastName": ("last_name", "Last name is required"),
    "birthDate": ("birth_date", "Date of birth is required"),
    "deathDate": ("death_date", "Date of death is required"),
    "title": ("title", "Memorial title is required"),
}


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of validating a draft: field name to message."""

    is_valid: bool
    errors: dict[str, str] = field(default_factory=dict)

    @property
    def first_error_field(self) -> str | None:
        return next(iter(self.errors), None)


def validate_memorial(
    draft: MemorialDraft, now: date | None = None
) -> ValidationResult:
    """Check a draft against every publish rule and report all violations."""
    today = now or datetime.now(tz=UTC).date()
    errors: dict[str, list[str]] = {}

    for key, (attribute, message) in _REQUIRED_LABELS.items():
        if _is_blank(getattr(draft, attribute)):
            errors.setdefault(key, []).append(message)

    birth = parse_iso_date(draft.birth_date)
    death = parse_iso_date(draft.death_date)
    if not _is_blank(draft.birth_date) and birth is None:
        errors.setdefault("birthDate", []).append("Enter a valid date")
    if not _is_blank(draft.death_date) and death is None:
        errors.setdefault("deathDate", []).append("Enter a valid date")
    if birth is not None and death is not None and death <= birth:
        errors.setdefault("deathDate", []).append(
            "Date of death must be after date of birth"
        )
    if death is not None and death > today:
        errors.setdefault("deathDate", []).append(
            "Date of death cannot be in the future"
        )

    if draft.privacy == PRIVACY_PASSWORD and _is_blank(draft.password):
        errors.setdefault("password", []).append(
            "Password is required for password-protected memorials"
        )

    url_errors = custom_url_errors(draft.custom_url)
    if url_errors:
        errors["customUrl"] = url_errors

    flattened = {key: " ".join(messages) for key, messages in errors.items()}
    return ValidationResult(is_valid=not flattened, errors=flattened)


def custom_url_errors(custom_url: str | None) -> list[str]:
    """Return every custom URL rule the value violates."""
    if _is_blank(custom_url):
        return []
    messages = []
    if not CUSTOM_URL_PATTERN.match(custom_url):
        messages.append(
            "Custom URL can only contain lowercase letters, numbers, and hyphens"
        )
    if not CUSTOM_URL_MIN_LENGTH <= len(custom_url) <= CUSTOM_URL_MAX_LENGTH:
        messages.append(
            f"Custom URL must be between {CUSTOM_URL_MIN_LENGTH} and "
            f"{CUSTOM_URL_MAX_LENGTH} characters"
        )
    return messages


def _is_blank(value: str | None) -> bool:
    return value is None or not value.strip()


def parse_iso_date(value: object) -> date | None:
    """Parse a strict YYYY-MM-DD string; anything else is None."""
    if not isinstance(value, str):
        return None
    cleaned = value.strip()
    if not ISO_DATE_PATTERN.fullmatch(cleaned):
        return None
    try:
        return date.fromisoformat(cleaned)
    except ValueError:
        return None
