from __future__ import annotations

import logging
from typing import Awaitable, Callable, Optional, TypeVar

from rehearsal.models import CallOutcome, FallbackReason

LOG = logging.getLogger("rehearsal.calls")

I = TypeVar("I")
T = TypeVar("T")


def _is_blank(value: object) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False


class ResilientCaller:
    """Runs a remote generator and degrades to local content on any failure.

    ``is_configured`` is consulted before every call; when it reports no
    credential the remote function is never invoked.
    """

    def __init__(self, is_configured: Callable[[], bool]) -> None:
        self._is_configured = is_configured

    async def invoke(
        self,
        op: str,
        payload: I,
        remote_fn: Callable[[I], Awaitable[Optional[T]]],
        fallback_fn: Callable[[I], T],
    ) -> CallOutcome[T]:
        if not self._is_configured():
            LOG.info("LLM credential missing; %s fallback engaged", op)
            return CallOutcome.fallback(op, fallback_fn(payload), FallbackReason.UNAVAILABLE)

        try:
            value = await remote_fn(payload)
        except Exception as exc:
            LOG.warning("%s remote call failed, using fallback: %s", op, exc)
            return CallOutcome.fallback(op, fallback_fn(payload), FallbackReason.FAILURE)

        if _is_blank(value):
            LOG.warning("%s remote call returned empty content, using fallback", op)
            return CallOutcome.fallback(op, fallback_fn(payload), FallbackReason.FAILURE)
        return CallOutcome.remote(op, value)
