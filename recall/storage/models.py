"""Pydantic models representing storage-layer entities."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict


class Session(BaseModel):
    """A logging session; snippets belong to exactly one session."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str | None = None
    created_at: datetime | None = None
    ended_at: datetime | None = None


class Transcript(BaseModel):
    """Raw transcribed segment as received from the client."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    session_id: str
    text: str
    timestamp: datetime
    audio_path: str = "placeholder"


class Snippet(BaseModel):
    """A logged unit of text with timing and an optional stored embedding.

    ``embedding`` is whatever the store holds: normally a list of floats, but
    legacy rows may carry serialized text or a vector of the wrong length, so
    consumers validate it before use.
    """

    model_config = ConfigDict(from_attributes=True)

    id: str
    session_id: str
    transcript_id: str | None = None
    text: str
    start_time: datetime
    end_time: datetime | None = None
    embedding: Any | None = None
