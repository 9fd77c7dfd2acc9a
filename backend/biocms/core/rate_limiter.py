"""
Rate Limiting for the BioCMS API
================================
Moving-window request counters built on ``limits`` (the engine slowapi uses),
backed by in-memory storage or Redis via RATE_LIMIT_STORAGE_URI. Storage is the
asyncio flavour (``async+memory://``, ``async+redis://``) so counting never
blocks the event loop; plain ``memory://`` and ``redis://`` URIs are accepted
and mapped to it.

Policies are declared per route class and matched by path prefix:
- api:         every /api/ request, 1000 per 15 minutes per IP
- auth:        login, register, password reset, 20 per 15 minutes per IP
- newsletter:  subscribe, 5 per hour per IP
- contact:     contact form, 10 per hour per IP
- interaction: like/bookmark/comment, 60 per minute per principal
"""

import math
import time
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from limits import RateLimitItem, RateLimitItemPerSecond
from limits.aio.strategies import MovingWindowRateLimiter
from limits.storage import storage_from_string
from slowapi.util import get_remote_address
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from biocms.core.config import settings
from biocms.core.logging_config import logger
from biocms.core.responses import error_response
from biocms.core.security import peek_subject


@dataclass(frozen=True)
class RateLimitPolicy:
    """Limit for one route class"""
    name: str
    max_requests: int
    window_seconds: int
    message: str
    key: str = "ip"  # "ip" or "principal"

    def to_item(self) -> RateLimitItem:
        return RateLimitItemPerSecond(self.max_requests, self.window_seconds)


@dataclass(frozen=True)
class PolicyRoute:
    """Binds a policy to requests by path prefix and, optionally, method"""
    policy: str
    prefix: str
    methods: Tuple[str, ...] = ()
    suffixes: Tuple[str, ...] = ()

    def matches(self, method: str, path: str) -> bool:
        if not path.startswith(self.prefix):
            return False
        if self.methods and method not in self.methods:
            return False
        if self.suffixes and not path.rstrip("/").endswith(self.suffixes):
            return False
        return True


API_PREFIX = f"/api/{settings.API_VERSION}"


def async_storage_uri(uri: str) -> str:
    """Map a ``limits`` storage URI onto its asyncio counterpart"""
    if uri.startswith("async+"):
        return uri
    return f"async+{uri}"


def default_policies() -> Dict[str, RateLimitPolicy]:
    return {
        "api": RateLimitPolicy(
            name="api",
            max_requests=settings.RATE_LIMIT_API_PER_WINDOW,
            window_seconds=settings.RATE_LIMIT_API_WINDOW_SECONDS,
            message="Too many requests from this IP, please try again later.",
        ),
        "auth": RateLimitPolicy(
            name="auth",
            max_requests=settings.RATE_LIMIT_AUTH_PER_WINDOW,
            window_seconds=settings.RATE_LIMIT_AUTH_WINDOW_SECONDS,
            message="Too many authentication attempts, please try again later.",
        ),
        "newsletter": RateLimitPolicy(
            name="newsletter",
            max_requests=settings.RATE_LIMIT_NEWSLETTER_PER_HOUR,
            window_seconds=3600,
            message="Too many subscription attempts, please try again in an hour.",
        ),
        "contact": RateLimitPolicy(
            name="contact",
            max_requests=settings.RATE_LIMIT_CONTACT_PER_HOUR,
            window_seconds=3600,
            message="Too many messages sent, please try again in an hour.",
        ),
        "interaction": RateLimitPolicy(
            name="interaction",
            max_requests=settings.RATE_LIMIT_INTERACTION_PER_MINUTE,
            window_seconds=60,
            message="You are doing that too often, please slow down.",
            key="principal",
        ),
    }


POLICY_ROUTES: List[PolicyRoute] = [
    PolicyRoute("api", "/api/"),
    PolicyRoute("auth", f"{API_PREFIX}/auth/login"),
    PolicyRoute("auth", f"{API_PREFIX}/auth/register"),
    PolicyRoute("auth", f"{API_PREFIX}/auth/forgot-password"),
    PolicyRoute("auth", f"{API_PREFIX}/auth/reset-password"),
    PolicyRoute("newsletter", f"{API_PREFIX}/newsletter/subscribe", methods=("POST",)),
    PolicyRoute("contact", f"{API_PREFIX}/contacts", methods=("POST",)),
    PolicyRoute(
        "interaction",
        f"{API_PREFIX}/biographies/",
        methods=("PATCH", "POST"),
        suffixes=("/like", "/bookmark", "/comments"),
    ),
]


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    policy: RateLimitPolicy
    remaining: int
    retry_after: int


class RateLimiter:
    """
    Moving-window limiter shared by all requests.

    Counters live in the configured ``limits`` storage, whose moving-window
    acquire is atomic per key.
    """

    def __init__(
        self,
        storage_uri: Optional[str] = None,
        policies: Optional[Dict[str, RateLimitPolicy]] = None,
        routes: Optional[List[PolicyRoute]] = None
    ):
        self.storage_uri = async_storage_uri(storage_uri or settings.RATE_LIMIT_STORAGE_URI)
        # redis-py client for async Redis, ignored by memory storage
        self.storage = storage_from_string(self.storage_uri, implementation="redispy")
        self.strategy = MovingWindowRateLimiter(self.storage)
        self.policies = policies or default_policies()
        self.routes = routes if routes is not None else POLICY_ROUTES

    def get_policy(self, name: str) -> RateLimitPolicy:
        return self.policies[name]

    def policies_for(self, method: str, path: str) -> List[RateLimitPolicy]:
        names: List[str] = []
        for route in self.routes:
            if route.matches(method, path) and route.policy not in names:
                names.append(route.policy)
        return [self.policies[name] for name in names if name in self.policies]

    async def allow(self, policy_name: str, client_key: str) -> bool:
        """Count one request for ``client_key``; False once over the limit"""
        decision = await self.check(self.get_policy(policy_name), client_key)
        return decision.allowed

    async def check(self, policy: RateLimitPolicy, client_key: str) -> RateLimitDecision:
        item = policy.to_item()
        allowed = await self.strategy.hit(item, policy.name, client_key)
        reset_time, remaining = await self.strategy.get_window_stats(item, policy.name, client_key)
        retry_after = max(1, math.ceil(reset_time - time.time()))
        return RateLimitDecision(
            allowed=allowed,
            policy=policy,
            remaining=remaining,
            retry_after=retry_after,
        )

    async def reset(self) -> None:
        """Drop every counter"""
        await self.storage.reset()


def get_client_key(request: Request, policy: RateLimitPolicy) -> str:
    """
    Rate limit key for a request.

    Principal-keyed policies use the token subject when one is present and
    fall back to the client address.
    """
    if policy.key == "principal":
        token = None
        authorization = request.headers.get("Authorization", "")
        if authorization.lower().startswith("bearer "):
            token = authorization[7:].strip()
        if not token:
            token = request.cookies.get(settings.JWT_COOKIE_NAME)
        subject = peek_subject(token)
        if subject:
            return f"user:{subject}"

    return f"ip:{get_remote_address(request)}"


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Applies every matching policy before the request reaches caching,
    authentication or handlers. The limiter is read from ``app.state``.
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        limiter: Optional[RateLimiter] = getattr(request.app.state, "rate_limiter", None)
        if limiter is None or not settings.RATE_LIMIT_ENABLED or request.method == "OPTIONS":
            return await call_next(request)

        lowest: Optional[RateLimitDecision] = None
        for policy in limiter.policies_for(request.method, request.url.path):
            client_key = get_client_key(request, policy)
            decision = await limiter.check(policy, client_key)

            if not decision.allowed:
                logger.warning(
                    f"[RateLimit] Exceeded '{policy.name}' for {client_key} on {request.url.path}",
                    extra={
                        "event_type": "rate_limited",
                        "policy": policy.name,
                        "client_key": client_key,
                        "http_path": request.url.path,
                    }
                )
                return error_response(
                    429,
                    policy.message,
                    code="RATE_LIMITED",
                    headers={
                        "Retry-After": str(decision.retry_after),
                        "X-RateLimit-Limit": str(policy.max_requests),
                        "X-RateLimit-Remaining": "0",
                    },
                )

            if lowest is None or decision.remaining < lowest.remaining:
                lowest = decision

        response = await call_next(request)
        if lowest is not None:
            response.headers["X-RateLimit-Limit"] = str(lowest.policy.max_requests)
            response.headers["X-RateLimit-Remaining"] = str(lowest.remaining)
        return response
