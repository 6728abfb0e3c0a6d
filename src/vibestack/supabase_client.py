"""Hosted platform client (tables, RPC, auth) and row helpers."""

from __future__ import annotations

import re
from typing import Any

from supabase import AsyncClient, AsyncClientOptions, PostgrestAPIError, acreate_client

from vibestack.responses import ServiceError

_client: AsyncClient | None = None

UNIQUE_VIOLATION = "23505"

# ids are uuids; anything outside this set could close an or= group early
_FILTER_ID_RE = re.compile(r"[A-Za-z0-9_-]+")


def _stateless_options() -> AsyncClientOptions:
    return AsyncClientOptions(persist_session=False, auto_refresh_token=False)


async def init_supabase(url: str, key: str) -> None:
    """Create the shared async platform client. It never holds a user session."""
    global _client  # noqa: PLW0603
    _client = await acreate_client(url, key, options=_stateless_options())


async def create_session_client(url: str, key: str) -> AsyncClient:
    """
    A client for one auth exchange (sign-up, sign-in, refresh, MFA).

    Whatever session the exchange produces stays on this client and is
    discarded with it; the shared client keeps running on the service key.
    """
    return await acreate_client(url, key, options=_stateless_options())


async def close_supabase() -> None:
    """Drop the shared client."""
    global _client  # noqa: PLW0603
    _client = None


def get_supabase() -> AsyncClient:
    """Get the platform client instance."""
    if _client is None:
        msg = "Supabase client not initialized. Call init_supabase() first."
        raise RuntimeError(msg)
    return _client


def first_row(response: Any) -> dict[str, Any] | None:
    """First row of a query response, or None when nothing matched."""
    data = getattr(response, "data", None)
    if not data:
        return None
    if isinstance(data, list):
        return data[0]
    return data


def rows(response: Any) -> list[dict[str, Any]]:
    """All rows of a query response (never None)."""
    data = getattr(response, "data", None)
    if not data:
        return []
    return data if isinstance(data, list) else [data]


def count_of(response: Any) -> int:
    """Exact count from a `count="exact"` query, 0 when absent."""
    return getattr(response, "count", None) or 0


def rpc_payload(response: Any) -> Any:
    """RPC results come back as a bare object or a one-row set."""
    data = getattr(response, "data", None)
    if isinstance(data, list) and len(data) == 1 and isinstance(data[0], dict):
        return data[0]
    return data


def to_plain(obj: Any) -> Any:
    """Provider objects (users, sessions, auth responses) as plain dicts."""
    if obj is None or isinstance(obj, (dict, list, str, int, float, bool)):
        return obj
    if hasattr(obj, "model_dump"):
        return obj.model_dump(mode="json")
    return {k: v for k, v in vars(obj).items() if not k.startswith("_")}


def is_unique_violation(exc: BaseException) -> bool:
    """True for a unique-index conflict raised by the store."""
    return isinstance(exc, PostgrestAPIError) and getattr(exc, "code", None) == UNIQUE_VIOLATION


def filter_id(value: Any) -> str:
    """
    An id that is safe to paste into an ``or_`` expression.

    ``eq``/``in_`` send values as plain query parameters, but ``or_`` takes a
    PostgREST filter string where ``,`` and ``()`` are syntax. Raises
    INVALID_INPUT for anything that is not a bare identifier.
    """
    text = str(value)
    if not _FILTER_ID_RE.fullmatch(text):
        raise ServiceError("INVALID_INPUT", "Invalid id")
    return text
