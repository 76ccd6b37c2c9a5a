"""Redis-backed rate limiter."""
import hashlib
import logging
import time
from typing import Optional, Tuple

import redis
from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from storefront.monitoring import rate_limit_exceeded_counter, suspicious_activity_counter

logger = logging.getLogger(__name__)


def principal_for(request: Request) -> Optional[str]:
    """
    Identify the caller for per-principal limits without verifying credentials.

    Bearer tokens and API keys are hashed so raw secrets never reach Redis.
    """
    auth_header = request.headers.get("authorization")
    if auth_header and auth_header.startswith("Bearer "):
        digest = hashlib.sha256(auth_header[7:].encode("utf-8")).hexdigest()[:16]
        return f"token:{digest}"

    api_key = request.headers.get("x-api-key")
    if api_key:
        digest = hashlib.sha256(api_key.encode("utf-8")).hexdigest()[:16]
        return f"apikey:{digest}"

    return None


class RedisRateLimiter(BaseHTTPMiddleware):
    """
    Rate limiter using Redis for distributed sliding-window limits.

    Implements dual-tier limiting:
    - Per IP: higher limit, tolerates shared addresses
    - Per principal (bearer token or API key): stricter limit

    Redis errors fail open so an unavailable cache never blocks checkout.
    """

    def __init__(
        self,
        app,
        redis_client: redis.Redis,
        requests_per_minute_ip: int = 1000,
        requests_per_minute_principal: int = 300,
        window_seconds: int = 60
    ):
        """
        Initialize Redis-backed rate limiter.

        Args:
            app: FastAPI application
            redis_client: Redis connection
            requests_per_minute_ip: Max requests per IP per window
            requests_per_minute_principal: Max requests per principal per window
            window_seconds: Sliding window size in seconds
        """
        super().__init__(app)
        self.redis = redis_client
        self.requests_per_minute_ip = requests_per_minute_ip
        self.requests_per_minute_principal = requests_per_minute_principal
        self.window_seconds = window_seconds

    def _check_rate_limit(
        self,
        key: str,
        limit: int,
        window: int
    ) -> Tuple[bool, int]:
        """
        Check rate limit using a Redis sorted set (sliding window).

        Args:
            key: Redis key for this limit (e.g., "rate:ip:192.168.1.1")
            limit: Maximum requests allowed
            window: Time window in seconds

        Returns:
            Tuple of (is_allowed, current_count)
        """
        try:
            current_time = time.time()

            pipe = self.redis.pipeline()
            pipe.zremrangebyscore(key, 0, current_time - window)
            pipe.zcard(key)
            pipe.zadd(key, {str(current_time): current_time})
            pipe.expire(key, window + 1)
            results = pipe.execute()

            # Count BEFORE adding current request
            count = results[1]
            return count < limit, count + 1

        except redis.RedisError as e:
            logger.error(f"Redis rate limit error: {e}")
            return True, 0

    def _reject(self, limit_type: str, limit: int) -> JSONResponse:
        return JSONResponse(
            status_code=429,
            content={
                "error": f"Rate limit exceeded for {limit_type}. "
                         f"Maximum {limit} requests per {self.window_seconds} seconds."
            },
            headers={"Retry-After": str(self.window_seconds)}
        )

    async def dispatch(self, request: Request, call_next):
        """
        Process request with Redis-backed dual-tier rate limiting.

        Returns:
            Response, or 429 if rate limited
        """
        client_ip = request.client.host if request.client else "unknown"
        if "x-forwarded-for" in request.headers:
            client_ip = request.headers["x-forwarded-for"].split(",")[0].strip()

        ip_allowed, ip_count = self._check_rate_limit(
            f"rate:ip:{client_ip}",
            self.requests_per_minute_ip,
            self.window_seconds
        )
        if not ip_allowed:
            rate_limit_exceeded_counter.add(1, {"limit_type": "ip"})
            logger.warning("IP rate limit exceeded", extra={
                "client_ip": client_ip,
                "requests_in_window": ip_count,
                "limit": self.requests_per_minute_ip
            })
            return self._reject("IP", self.requests_per_minute_ip)

        principal = principal_for(request)
        if principal:
            allowed, count = self._check_rate_limit(
                f"rate:principal:{principal}",
                self.requests_per_minute_principal,
                self.window_seconds
            )
            if not allowed:
                rate_limit_exceeded_counter.add(1, {"limit_type": "principal"})
                logger.warning("Principal rate limit exceeded", extra={
                    "principal": principal,
                    "client_ip": client_ip,
                    "requests_in_window": count,
                    "limit": self.requests_per_minute_principal
                })
                return self._reject("client", self.requests_per_minute_principal)

        response = await call_next(request)

        self._detect_suspicious_activity(request, response.status_code, client_ip)

        return response

    def _record(self, key: str, window: int) -> int:
        current_time = time.time()
        self.redis.zadd(key, {str(current_time): current_time})
        self.redis.expire(key, window + 1)
        return self.redis.zcount(key, current_time - window, current_time)

    def _detect_suspicious_activity(self, request: Request, status_code: int, client_ip: str):
        """
        Detect suspicious activity patterns using Redis.

        Patterns:
        - Credential stuffing: 5+ 401s in 5 minutes
        - Endpoint scanning: 10+ 404s in 5 minutes
        - Abuse: 20+ 4xx errors in 5 minutes
        """
        window = 300
        try:
            if status_code == 401:
                count = self._record(f"suspicious:401:{client_ip}", window)
                if count >= 5:
                    suspicious_activity_counter.add(1, {"type": "credential_stuffing"})
                    logger.warning("Suspicious activity: possible credential stuffing", extra={
                        "client_ip": client_ip,
                        "failed_auth_count": count,
                        "endpoint": request.url.path
                    })

            if status_code == 404:
                count = self._record(f"suspicious:404:{client_ip}", window)
                if count >= 10:
                    suspicious_activity_counter.add(1, {"type": "endpoint_scanning"})
                    logger.warning("Suspicious activity: possible endpoint scanning", extra={
                        "client_ip": client_ip,
                        "not_found_count": count
                    })

            if 400 <= status_code < 500:
                count = self._record(f"suspicious:4xx:{client_ip}", window)
                if count >= 20:
                    suspicious_activity_counter.add(1, {"type": "abuse"})
                    logger.warning("Suspicious activity: high rate of client errors", extra={
                        "client_ip": client_ip,
                        "error_count": count
                    })

        except redis.RedisError as e:
            logger.error(f"Error detecting suspicious activity: {e}")
