"""Ordered endpoint fallback.

Endpoint lists are priority lists, not pools: URLs are tried one at a time
in configured order, each at most once.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Sequence
from typing import TypeVar

import structlog

from blocktime.estimation.exceptions import EndpointFailureError

logger = structlog.get_logger()

T = TypeVar("T")


async def try_in_order(
    urls: Sequence[str],
    operation: Callable[[str], Awaitable[T]],
) -> tuple[T, str]:
    """Run ``operation`` against each URL until one succeeds.

    Returns:
        The first successful result and the URL that produced it.

    Raises:
        EndpointFailureError: If every URL failed. The error lists each
            URL's failure message in the order the URLs were tried.
    """
    failures: list[tuple[str, str]] = []
    for url in urls:
        try:
            result = await operation(url)
        except Exception as exc:  # noqa: BLE001
            message = str(exc) or type(exc).__name__
            logger.debug("endpoint_failed", url=url, error=message)
            failures.append((url, message))
            continue
        return result, url
    raise EndpointFailureError(failures)
