"""Pydantic base for session records.

Session files under ``<sessions_dir>`` are written in camelCase so they
read the same as the generation endpoint's JSON (``sessionId``,
``currentCode``).  Python code keeps snake_case attributes.
"""
from __future__ import annotations

from pydantic import BaseModel, ConfigDict


def to_camel(name: str) -> str:
    """``current_code`` → ``currentCode``."""
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


class CamelModel(BaseModel):
    """Record base: snake_case in Python, camelCase on disk.

    Records are dumped with ``by_alias=True`` by ``SessionRepository``;
    loading accepts either spelling.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )
