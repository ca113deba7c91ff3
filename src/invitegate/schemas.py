"""Shared Pydantic base models. The dashboard consumes camelCase JSON."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class ResultResponse(CamelModel):
    """Envelope used for user-facing outcomes: ``{success, message}``."""

    success: bool
    message: str | None = None
