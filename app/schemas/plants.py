"""
Plant Schemas
=============

Request schemas for the catalog endpoints.

Free text goes through ``validate_string`` (trimmed, capped, blanks become
null), ``metadata`` through ``sanitize_metadata``. Loose upstream-shaped
values (``year`` as ``"1753"``, ids as strings) are coerced rather than
rejected; structurally wrong values (metadata arrays, synonyms that are not
a list) are rejected.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.utils.validation import sanitize_metadata, validate_string

NOTES_MAX_LENGTH = 5000
URL_MAX_LENGTH = 2048

_TEXT_FIELDS = (
    "common_name",
    "family",
    "family_common_name",
    "genus",
    "author",
    "bibliography",
    "slug",
    "nickname",
    "location",
    "acquired_date",
    "status",
)


def _positive_int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value > 0 else None
    if isinstance(value, str) and value.strip().isdigit():
        parsed = int(value.strip())
        return parsed if parsed > 0 else None
    return None


class PlantPayload(BaseModel):
    """Body of ``POST /api/plants``."""

    model_config = ConfigDict(extra="ignore")

    scientific_name: str = Field(..., description="Botanical name (required)")
    common_name: str | None = None
    family: str | None = None
    family_common_name: str | None = None
    genus: str | None = None
    image_url: str | None = None
    author: str | None = None
    bibliography: str | None = None
    year: int | None = Field(default=None, description="Year of first publication")
    synonyms: list[str] | None = None
    slug: str | None = None
    trefle_id: int | None = None
    perenual_id: int | None = None
    metadata: dict[str, Any] = Field(default_factory=dict, description="Free-form JSON object, 10 KB max")
    notes: str | None = Field(default=None, description="Reference notes")
    nickname: str | None = None
    location: str | None = None
    acquired_date: str | None = None
    status: str | None = None

    @field_validator("scientific_name", mode="before")
    @classmethod
    def require_scientific_name(cls, v):
        cleaned = validate_string(v)
        if cleaned is None:
            raise ValueError("scientific_name is required")
        return cleaned

    @field_validator(*_TEXT_FIELDS, mode="before")
    @classmethod
    def clean_text(cls, v):
        return validate_string(v)

    @field_validator("notes", mode="before")
    @classmethod
    def clean_notes(cls, v):
        return validate_string(v, NOTES_MAX_LENGTH)

    @field_validator("image_url", mode="before")
    @classmethod
    def clean_image_url(cls, v):
        return validate_string(v, URL_MAX_LENGTH)

    @field_validator("year", mode="before")
    @classmethod
    def coerce_year(cls, v):
        if isinstance(v, bool):
            return None
        if isinstance(v, int):
            return v
        if isinstance(v, str) and v.strip().lstrip("-").isdigit():
            return int(v.strip())
        return None

    @field_validator("trefle_id", "perenual_id", mode="before")
    @classmethod
    def coerce_source_id(cls, v):
        return _positive_int(v)

    @field_validator("synonyms", mode="before")
    @classmethod
    def check_synonyms(cls, v):
        if v is None:
            return None
        if not isinstance(v, list):
            raise ValueError("synonyms must be a list of strings")
        cleaned = [s.strip() for s in v if isinstance(s, str) and s.strip()]
        return cleaned or None

    @field_validator("metadata", mode="before")
    @classmethod
    def check_metadata(cls, v):
        if v is None:
            return {}
        sanitized = sanitize_metadata(v)
        if sanitized is None:
            raise ValueError("Invalid metadata")
        return sanitized

    def to_columns(self) -> dict[str, Any]:
        """Column values for the plant repository."""
        return self.model_dump()


class UpdatePlantRequest(PlantPayload):
    """Body of ``PUT|PATCH /api/plants/update``: the full record plus its id."""

    id: int = Field(..., description="Plant ID")

    @field_validator("id", mode="before")
    @classmethod
    def check_id(cls, v):
        parsed = _positive_int(v)
        if parsed is None:
            raise ValueError("Plant ID required")
        return parsed

    def to_columns(self) -> dict[str, Any]:
        return self.model_dump(exclude={"id"})


def first_error_message(exc: Any, default: str = "Invalid request") -> str:
    """Caller-facing message from a pydantic ``ValidationError``.

    Only messages raised by the validators above are surfaced; pydantic's
    own type errors collapse to *default*.
    """
    for error in exc.errors():
        if error.get("type") == "value_error":
            ctx_error = (error.get("ctx") or {}).get("error")
            if ctx_error is not None:
                return str(ctx_error)
        if error.get("type") == "missing" and error.get("loc"):
            field_name = error["loc"][0]
            if field_name == "id":
                return "Plant ID required"
            return f"{field_name} is required"
    return default
