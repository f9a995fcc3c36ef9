"""Request context management for logging correlation.

This module keeps request-scoped context (request ID, local actor ID and the
remote peer, i.e. the URL of the actor on the other side of a federation
exchange) in contextvars.

The context is isolated per request and propagates through async/await
boundaries, so it also follows push deliveries that are fanned out with
asyncio inside a single request.
"""

import uuid
from contextvars import ContextVar
from typing import Any

_request_id: ContextVar[str | None] = ContextVar("request_id", default=None)
_actor_id: ContextVar[str | None] = ContextVar("actor_id", default=None)
_peer_id: ContextVar[str | None] = ContextVar("peer_id", default=None)


def generate_request_id() -> str:
    """
    Generate a new UUID4 request ID.

    Example:
        >>> len(generate_request_id())
        36
    """
    return str(uuid.uuid4())


def set_request_id(request_id: str | None) -> None:
    _request_id.set(request_id)


def get_request_id() -> str | None:
    return _request_id.get()


def get_short_request_id() -> str:
    """
    Get the last 8 characters of the request ID (hyphens removed).

    Returns:
        Shortened request ID, or "-" if no request ID is set

    Example:
        >>> set_request_id("550e8400-e29b-41d4-a716-446655440000")
        >>> get_short_request_id()
        '55440000'
    """
    request_id = _request_id.get()
    if request_id:
        return request_id.replace("-", "")[-8:]
    return "-"


def set_actor_id(actor_id: str | None) -> None:
    """Set the local actor ID handled by the current request."""
    _actor_id.set(actor_id)


def get_actor_id() -> str | None:
    return _actor_id.get()


def set_peer_id(peer_id: str | None) -> None:
    """
    Set the remote peer for the current context.

    For inbound federation traffic this is the ``actor`` URL of the received
    activity; for push delivery it is left unset.
    """
    _peer_id.set(peer_id)


def get_peer_id() -> str | None:
    return _peer_id.get()


def get_short_peer_id() -> str:
    """
    Get a compact form of the peer: the last path segment of an actor URL.

    Example:
        >>> set_peer_id("https://remote.example/users/alice")
        >>> get_short_peer_id()
        'alice'
        >>> set_peer_id("alice")
        >>> get_short_peer_id()
        'alice'
        >>> set_peer_id(None)
        >>> get_short_peer_id()
        '-'
    """
    peer_id = _peer_id.get()
    if peer_id:
        return peer_id.rstrip("/").split("/")[-1]
    return "-"


def set_request_context(
    request_id: str | None = None,
    actor_id: str | None = None,
    peer_id: str | None = None,
    *,
    generate_id: bool = True,
) -> str:
    """
    Set all request context values at once.

    This is the entry point for the surrounding request layer to establish
    context at the start of handling an inbox delivery or a local action.

    Args:
        request_id: The request ID, or None to generate a new one
        actor_id: The local actor ID the request is for
        peer_id: The remote actor URL, if any
        generate_id: If True and request_id is None, generate a new UUID

    Returns:
        The request ID that was set (either provided or generated)
    """
    if request_id is None and generate_id:
        request_id = generate_request_id()

    _request_id.set(request_id)
    _actor_id.set(actor_id)
    _peer_id.set(peer_id)

    return request_id or ""


def clear_request_context() -> None:
    """Clear all request context values."""
    _request_id.set(None)
    _actor_id.set(None)
    _peer_id.set(None)


def get_context_dict() -> dict[str, Any]:
    """
    Get all context values as a dictionary, for structured logging.

    Returns:
        Dictionary with keys: request_id, actor_id, peer_id
    """
    return {
        "request_id": _request_id.get(),
        "actor_id": _actor_id.get(),
        "peer_id": _peer_id.get(),
    }


def format_context_compact() -> str:
    """
    Format context as ``[short_request_id:actor_id:short_peer_id]``.

    Missing values are represented as "-".

    Example:
        >>> set_request_context(
        ...     request_id="550e8400-e29b-41d4-a716-446655440000",
        ...     actor_id="actor123",
        ...     peer_id="https://remote.example/users/bob",
        ... )
        '550e8400-e29b-41d4-a716-446655440000'
        >>> format_context_compact()
        '[55440000:actor123:bob]'
    """
    short_req = get_short_request_id()
    actor = get_actor_id() or "-"
    short_peer = get_short_peer_id()

    return f"[{short_req}:{actor}:{short_peer}]"
