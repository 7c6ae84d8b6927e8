"""Base JSON-RPC client with circuit breaker and retry logic.

This module provides:
- CircuitState enum for circuit breaker states
- CircuitBreaker dataclass guarding an RPC endpoint
- BaseRPCClient for resilient JSON-RPC calls over httpx
"""

import asyncio
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from enum import Enum
from itertools import count
from typing import Any

import httpx
import structlog

from stakeflow.core.exceptions import CircuitBreakerOpenError, ExternalServiceError

log = structlog.get_logger(__name__)


class CircuitState(Enum):
    """Circuit breaker states."""

    CLOSED = "closed"  # Calls allowed
    OPEN = "open"  # Calls blocked
    HALF_OPEN = "half_open"  # One probe call allowed


@dataclass
class CircuitBreaker:
    """Opens after consecutive endpoint failures, probes after a cooldown.

    Attributes:
        failure_threshold: Consecutive failures before opening.
        cooldown_seconds: Seconds before a probe call is allowed.
        failure_count: Current consecutive failure count.
        last_failure_time: Timestamp of the most recent failure.
        state: Current circuit state.
    """

    failure_threshold: int = 5
    cooldown_seconds: int = 30
    failure_count: int = field(default=0, init=False)
    last_failure_time: datetime | None = field(default=None, init=False)
    state: CircuitState = field(default=CircuitState.CLOSED, init=False)

    def record_success(self) -> None:
        """Reset failures and close the circuit."""
        self.failure_count = 0
        self.state = CircuitState.CLOSED

    def record_failure(self) -> None:
        """Count a failure; open the circuit at threshold or on a failed probe."""
        self.failure_count += 1
        self.last_failure_time = datetime.now(UTC)

        if self.state == CircuitState.HALF_OPEN or self.failure_count >= self.failure_threshold:
            self.state = CircuitState.OPEN
            log.warning(
                "circuit_breaker_opened",
                failure_count=self.failure_count,
                threshold=self.failure_threshold,
            )

    def can_execute(self) -> bool:
        """Check whether a call may go out, moving OPEN to HALF_OPEN after cooldown."""
        if self.state != CircuitState.OPEN:
            return True
        if self.last_failure_time is None:
            return False
        elapsed = datetime.now(UTC) - self.last_failure_time
        if elapsed > timedelta(seconds=self.cooldown_seconds):
            self.state = CircuitState.HALF_OPEN
            log.info("circuit_breaker_half_open", cooldown_elapsed=elapsed.total_seconds())
            return True
        return False

    def raise_if_open(self) -> None:
        """Raise if the circuit is open.

        Raises:
            CircuitBreakerOpenError: If calls are currently blocked.
        """
        if not self.can_execute():
            raise CircuitBreakerOpenError(
                f"Circuit breaker is open. Next retry in "
                f"{self._time_until_half_open():.1f} seconds."
            )

    def _time_until_half_open(self) -> float:
        if self.last_failure_time is None:
            return 0.0
        elapsed = datetime.now(UTC) - self.last_failure_time
        return max(0.0, self.cooldown_seconds - elapsed.total_seconds())


class BaseRPCClient:
    """JSON-RPC client with retry and circuit breaker support.

    Provides:
    - Lazy httpx client creation
    - Retry with exponential backoff on 429, 5xx and transport errors
    - Circuit breaker protection
    - Explicit cleanup through close()

    Example:
        client = BaseRPCClient(endpoint="https://api.devnet.solana.com")
        slot = await client.call("getSlot")
        await client.close()
    """

    def __init__(
        self,
        endpoint: str,
        timeout: float = 10.0,
        max_retries: int = 3,
        circuit_breaker_threshold: int = 5,
        circuit_breaker_cooldown: int = 30,
    ) -> None:
        """Initialize BaseRPCClient.

        Args:
            endpoint: JSON-RPC endpoint URL.
            timeout: Request timeout in seconds.
            max_retries: Attempts per call.
            circuit_breaker_threshold: Failures before circuit opens.
            circuit_breaker_cooldown: Seconds before half-open.
        """
        self.endpoint = endpoint
        self.timeout = timeout
        self.max_retries = max_retries
        self._client: httpx.AsyncClient | None = None
        self._ids = count(1)
        self._circuit_breaker = CircuitBreaker(
            failure_threshold=circuit_breaker_threshold,
            cooldown_seconds=circuit_breaker_cooldown,
        )

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                headers={"Content-Type": "application/json"},
            )
            log.debug("httpx_client_created", endpoint=self.endpoint)
        return self._client

    async def close(self) -> None:
        """Close the httpx client and release resources."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None
            log.debug("httpx_client_closed", endpoint=self.endpoint)

    async def call(self, method: str, params: list[Any] | None = None) -> Any:
        """Call a JSON-RPC method and return its ``result``.

        Raises:
            CircuitBreakerOpenError: If circuit breaker is open.
            ExternalServiceError: On an RPC error object, a 4xx response, or
                once all retries are exhausted.
        """
        self._circuit_breaker.raise_if_open()
        client = await self._get_client()
        payload = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": params or [],
        }
        last_error: Exception | None = None

        for attempt in range(self.max_retries):
            try:
                response = await client.post(self.endpoint, json=payload)
                response.raise_for_status()
                body = response.json()
                self._circuit_breaker.record_success()

                error = body.get("error")
                if error:
                    log.warning("rpc_error", method=method, error=error)
                    raise ExternalServiceError(
                        service="solana-rpc",
                        message=f"{method}: {error.get('message', error)}",
                    )
                return body.get("result")

            except httpx.HTTPStatusError as e:
                status_code = e.response.status_code
                if 400 <= status_code < 500 and status_code != 429:
                    raise ExternalServiceError(
                        service="solana-rpc",
                        message=str(e),
                        status_code=status_code,
                    ) from e
                self._circuit_breaker.record_failure()
                last_error = e
                log.warning(
                    "rpc_server_error",
                    method=method,
                    status_code=status_code,
                    attempt=attempt + 1,
                )

            except (httpx.TimeoutException, httpx.RequestError) as e:
                self._circuit_breaker.record_failure()
                last_error = e
                log.warning(
                    "rpc_connection_error",
                    method=method,
                    error=str(e),
                    attempt=attempt + 1,
                )

            # Exponential backoff: 1s, 2s, 4s (capped)
            if attempt < self.max_retries - 1:
                await asyncio.sleep(min(2**attempt, 4))

        log.error("rpc_max_retries_exceeded", method=method, max_retries=self.max_retries)
        raise ExternalServiceError(
            service="solana-rpc",
            message=f"Max retries ({self.max_retries}) exceeded: {last_error}",
        )
