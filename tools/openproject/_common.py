"""Helpers shared by the OpenProject tools."""

from __future__ import annotations

import httpx

from tools._base import ToolContext

from .client import OpenProjectClient, OpenProjectError

CLIENT_KEY = "openproject"

# Failures a tool reports back to the model as an "Error ..." line
API_ERRORS = (OpenProjectError, httpx.HTTPError)


def get_client(ctx: ToolContext) -> OpenProjectClient:
    client = ctx.extra.get(CLIENT_KEY)
    if client is None:
        raise RuntimeError("OpenProject client missing from tool context")
    return client


def short_date(value: str | None) -> str:
    """Date part of an ISO-8601 timestamp."""
    return value[:10] if value else "unknown"


def short_datetime(value: str | None) -> str:
    if not value:
        return "unknown"
    return value[:19].replace("T", " ")


def truncate(text: str, limit: int = 100) -> str:
    return text[:limit] + ("..." if len(text) > limit else "")
