"""HTTP retry helper for the upstream AIS and sensor services.

Retries rate limits (429), transient server errors (5xx) and network
failures with a fixed backoff schedule. Client errors such as 400/401/404
are raised immediately since a retry cannot fix them.

Usage:
    from polarwatch.utils.http_retry import retry_request

    resp = retry_request(client.post, url, json=payload)
"""
from __future__ import annotations

import logging
import time
from typing import Any, Callable, Sequence

import httpx

logger = logging.getLogger(__name__)

_RETRYABLE_STATUS_CODES: frozenset[int] = frozenset({429, 500, 502, 503, 504})

_RETRYABLE_EXCEPTIONS = (httpx.ConnectError, httpx.TimeoutException, httpx.RemoteProtocolError)

# Interactive analysis: keep the total wait short
DEFAULT_DELAYS: tuple[float, ...] = (1.0, 3.0, 8.0)


def _retry_after(resp: httpx.Response, fallback: float) -> float:
    """Honour a numeric Retry-After header when it asks for a longer wait."""
    header = resp.headers.get("Retry-After")
    if not header:
        return fallback
    try:
        return max(fallback, float(header))
    except ValueError:
        return fallback


def retry_request(
    request_fn: Callable[..., httpx.Response],
    *args: Any,
    delays: Sequence[float] | None = None,
    **kwargs: Any,
) -> httpx.Response:
    """Call an httpx request method, retrying transient failures.

    Args:
        request_fn: Bound method such as ``client.get`` or ``client.post``.
        *args: Forwarded to request_fn (usually the URL).
        delays: Backoff schedule in seconds; one retry per entry.
        **kwargs: Forwarded to request_fn (params, json, headers...).

    Returns:
        The first response with status < 400.

    Raises:
        httpx.HTTPStatusError: Non-retryable status, or retryable status
            after the schedule is exhausted.
        httpx.TransportError: Network failure after the schedule is exhausted.
    """
    schedule = list(DEFAULT_DELAYS if delays is None else delays)
    target = str(args[0])[:120] if args else "<unknown>"

    for attempt in range(len(schedule) + 1):
        final = attempt == len(schedule)
        try:
            resp = request_fn(*args, **kwargs)
        except _RETRYABLE_EXCEPTIONS as exc:
            if final:
                raise
            delay = schedule[attempt]
            logger.warning(
                "%s for %s, retry %d/%d in %.0fs",
                type(exc).__name__, target, attempt + 1, len(schedule), delay,
            )
            time.sleep(delay)
            continue

        if resp.status_code < 400:
            return resp
        if resp.status_code not in _RETRYABLE_STATUS_CODES or final:
            resp.raise_for_status()

        delay = schedule[attempt]
        if resp.status_code == 429:
            delay = _retry_after(resp, delay)
        logger.warning(
            "HTTP %d from %s, retry %d/%d in %.0fs",
            resp.status_code, target, attempt + 1, len(schedule), delay,
        )
        time.sleep(delay)

    raise RuntimeError("retry_request exhausted retries without result")
