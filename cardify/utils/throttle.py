# cardify/utils/throttle.py
"""
Fixed-window request throttling on top of Django's cache framework.

Counters live in the default cache, so a shared backend (Redis, Memcached)
makes limits hold across workers; the LocMem default is per-process.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from functools import wraps

from django.core.cache import cache

from .http import client_ip, json_error

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ThrottleRule:
    key_prefix: str
    limit: int
    window_seconds: int


@dataclass
class ThrottleResult:
    allowed: bool
    remaining: int
    reset_at: float


# Checkout: 20 requests per 5 minutes per IP
CHECKOUT = ThrottleRule(key_prefix="checkout:session", limit=20, window_seconds=5 * 60)
# Anonymous image generation: 3 free generations per 24 hours per IP
FREE_GENERATIONS = ThrottleRule(key_prefix="generate:anon", limit=3, window_seconds=24 * 60 * 60)


def _key(rule: ThrottleRule, ident: str) -> str:
    return f"throttle:{rule.key_prefix}:{ident}"


def hit(rule: ThrottleRule, ident: str) -> ThrottleResult:
    """
    Count one request for `ident`. The window starts at the first request and
    is not extended by later ones. A refused request does not consume quota.
    """
    key = _key(rule, ident)
    now = time.time()
    state = cache.get(key)

    if not state or now > state["reset_at"]:
        state = {"count": 1, "reset_at": now + rule.window_seconds}
        cache.set(key, state, timeout=rule.window_seconds)
        return ThrottleResult(True, rule.limit - 1, state["reset_at"])

    if state["count"] >= rule.limit:
        return ThrottleResult(False, 0, state["reset_at"])

    state["count"] += 1
    cache.set(key, state, timeout=max(1, int(state["reset_at"] - now)))
    return ThrottleResult(True, rule.limit - state["count"], state["reset_at"])


def reset(rule: ThrottleRule, ident: str) -> None:
    cache.delete(_key(rule, ident))


def throttle(rule: ThrottleRule):
    """View decorator: 429 JSON with Retry-After once `rule` is exhausted for the client IP."""
    def decorator(view):
        @wraps(view)
        def inner(request, *args, **kwargs):
            ident = client_ip(request)
            result = hit(rule, ident)
            if not result.allowed:
                retry_after = max(1, int(result.reset_at - time.time()))
                logger.warning("Rate limit hit for %s on %s", ident, rule.key_prefix)
                resp = json_error(
                    "Too many requests. Please try again later.",
                    "RATE_LIMIT_EXCEEDED",
                    status=429,
                    retryAfter=retry_after,
                )
                resp["Retry-After"] = str(retry_after)
                return resp
            resp = view(request, *args, **kwargs)
            resp["X-RateLimit-Limit"] = str(rule.limit)
            resp["X-RateLimit-Remaining"] = str(result.remaining)
            return resp
        return inner
    return decorator
