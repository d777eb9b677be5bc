from __future__ import annotations

import logging
import threading
from functools import partial

from crpt_document_service.core.config import get_settings
from crpt_document_service.services.crpt_client import CrptClient, CrptResponse
from crpt_document_service.services.documents import CreateGoodsDocumentRequest, serialize_document
from crpt_document_service.services.rate_limiter import AdmissionTimeout, SlidingWindowRateLimiter

logger = logging.getLogger(__name__)


class CrptRateLimitExceeded(Exception):
    pass


_limiter_lock = threading.Lock()
_limiter: SlidingWindowRateLimiter | None = None
_limiter_cfg: tuple[int, float, float] | None = None


def reset_limiter() -> None:
    """
    Test helper. Drops the process-wide limiter and its usage history.
    """
    global _limiter, _limiter_cfg
    with _limiter_lock:
        _limiter = None
        _limiter_cfg = None


def get_limiter() -> SlidingWindowRateLimiter:
    """
    Return the process-wide limiter guarding the CRPT endpoint.

    Built lazily from settings and rebuilt (with an empty window) whenever
    the limit, period or poll interval changes. Raises InvalidConfiguration
    for non-positive values.
    """
    settings = get_settings()
    cfg = (
        settings.crpt_rl_limit,
        float(settings.crpt_rl_period_s),
        float(settings.crpt_rl_poll_interval_s),
    )

    global _limiter, _limiter_cfg
    with _limiter_lock:
        if _limiter is None or _limiter_cfg != cfg:
            limit, period_s, poll_interval_s = cfg
            _limiter = SlidingWindowRateLimiter(period_s, limit, poll_interval_s=poll_interval_s)
            _limiter_cfg = cfg
            logger.info("CRPT limiter configured limit=%s period_s=%s", limit, period_s)
        return _limiter


def limiter_status() -> tuple[int, float, int]:
    limiter = get_limiter()
    return limiter.limit, limiter.period_s, limiter.available


def _max_wait_s() -> float | None:
    max_wait_s = float(get_settings().crpt_rl_max_wait_s)
    return max_wait_s if max_wait_s > 0 else None


def _wait_exceeded(limiter: SlidingWindowRateLimiter) -> CrptRateLimitExceeded:
    logger.warning(
        "CRPT rate limit wait exceeded limit=%s period_s=%s max_wait_s=%s",
        limiter.limit,
        limiter.period_s,
        _max_wait_s(),
    )
    return CrptRateLimitExceeded("CRPT rate limit exceeded")


def _submit(client: CrptClient, document: CreateGoodsDocumentRequest) -> CrptResponse:
    payload = serialize_document(document)
    return client.create_document(payload)


def create_introduce_goods_document(
        document: CreateGoodsDocumentRequest,
        *,
        cancel: threading.Event | None = None,
) -> CrptResponse:
    """
    Submit an "introduce goods" document through the shared rate limiter,
    blocking the calling thread while waiting for a slot.

    Serialization and the POST together form the guarded operation, so any
    attempt (including one that fails to serialize) consumes a slot.
    Waiting longer than CRPT_RL_MAX_WAIT_S raises CrptRateLimitExceeded;
    setting `cancel` aborts the wait with Cancelled.
    """
    limiter = get_limiter()

    # Misconfiguration must not burn a slot.
    client = CrptClient()

    try:
        return limiter.run_guarded(
            partial(_submit, client, document),
            cancel=cancel,
            timeout=_max_wait_s(),
        )
    except AdmissionTimeout as exc:
        raise _wait_exceeded(limiter) from exc


async def submit_introduce_goods_document(document: CreateGoodsDocumentRequest) -> CrptResponse:
    """
    Event-loop flavour of create_introduce_goods_document.

    Waits for a slot on the same process-wide limiter without holding a
    worker thread; cancelling the task abandons the wait.
    """
    limiter = get_limiter()
    client = CrptClient()

    async def submit() -> CrptResponse:
        payload = serialize_document(document)
        return await client.acreate_document(payload)

    try:
        return await limiter.run_guarded_async(submit, timeout=_max_wait_s())
    except AdmissionTimeout as exc:
        raise _wait_exceeded(limiter) from exc
