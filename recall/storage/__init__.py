"""Persistence for sessions, transcripts and snippets."""

from .models import Session, Snippet, Transcript
from .store import PostgresSnippetStore, SnippetStore

__all__ = ["PostgresSnippetStore", "Session", "Snippet", "SnippetStore", "Transcript"]
