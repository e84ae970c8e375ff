"""Request bodies accepted by the HTTP endpoints."""

from __future__ import annotations

from urllib.parse import urlparse

from pydantic import BaseModel, Field, field_validator


class ExecuteCommandRequest(BaseModel):
    command: str = Field(min_length=1)


class TaskInputModel(BaseModel):
    name: str | None = None
    url: str

    @field_validator("url")
    @classmethod
    def _check_url(cls, value: str) -> str:
        parsed = urlparse(value)
        if parsed.scheme not in {"http", "https"} or not parsed.netloc:
            raise ValueError("Invalid URL format")
        return value


class ExecuteTaskRequest(BaseModel):
    task: str = Field(min_length=1)
    inputs: list[TaskInputModel] = Field(min_length=1)


def validation_details(errors: list[dict]) -> list[dict[str, str]]:
    """Flatten pydantic errors into `{field, message}` pairs."""

    details: list[dict[str, str]] = []
    for error in errors:
        location = [str(part) for part in error.get("loc", ()) if part != "body"]
        details.append(
            {
                "field": ".".join(location) or "body",
                "message": str(error.get("msg", "Invalid value")),
            },
        )
    return details
