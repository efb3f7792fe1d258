"""Shared pydantic base model for Collybrix payloads.

Python code uses snake_case attributes while the JSON API speaks
camelCase. CamelModel accepts either spelling on input and is dumped by
alias on output, so every request body, response body and metric result
shares the same wire convention.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model with camelCase aliases and ORM attribute loading."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )
