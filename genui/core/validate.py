"""Input validation with strong typing."""

from pydantic import BaseModel, ConfigDict, Field, field_validator


MAX_PROMPT_LENGTH = 10_000


class RequestValidator(BaseModel):
    """Base validator with strict configuration."""

    model_config = ConfigDict(
        strict=True, validate_assignment=True, extra="forbid", frozen=True  # Immutable by default
    )


class GenerateRequest(RequestValidator):
    """Validated generation request."""

    thread_id: str = Field(min_length=1)
    prompt: str = Field(min_length=1, max_length=MAX_PROMPT_LENGTH)
    base_version_id: str | None = None

    @field_validator("prompt")
    @classmethod
    def validate_prompt(cls, v: str) -> str:
        """Ensure prompt is non-empty after stripping."""
        stripped = v.strip()
        if not stripped:
            raise ValueError("Prompt cannot be empty")
        return stripped
