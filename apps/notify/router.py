"""
Fan-out notification router.

Delivers a set of NotificationRequests to their channels concurrently and
collects one NotificationResult per request. One channel failing never blocks
or rolls back the others, and partial failure is reported, not raised.

Failure policy per channel:
- TransportError (connection, timeout, 5xx): retried with exponential backoff,
  up to max_retries extra attempts
- ChannelDeliveryError (4xx, bad target/config): fails immediately
- dispatch deadline: requests still running are reported as failed("timeout")
"""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor, wait
from typing import Any, Callable

from apps.incidents.exceptions import ChannelDeliveryError, TransportError, ValidationError
from apps.notify.config import ConfigProvider, SettingsConfigProvider
from apps.notify.drivers import (
    BaseNotifyDriver,
    NotificationRequest,
    NotificationResult,
    build_drivers,
    is_channel_enabled,
)
from apps.notify.drivers.base import DELIVERED, FAILED
from apps.notify.signals import (
    DeliveryTags,
    emit_delivered,
    emit_dispatch_completed,
    emit_failed,
    emit_retrying,
)
from apps.notify.transport import HttpTransport, UrllibTransport

logger = logging.getLogger(__name__)


class NotificationRouter:
    """
    Fan-out dispatcher over the channel drivers.

    Usage:
        router = NotificationRouter()
        results = router.dispatch([
            NotificationRequest(channel="chat", target="#incidents", payload={"text": "db down"}),
            NotificationRequest(channel="sms", target="+15550100", payload={"body": "db down"}),
        ])
    """

    max_retries: int
    backoff_base: float
    backoff_factor: float
    drivers: dict[str, BaseNotifyDriver]

    def __init__(
        self,
        transport: HttpTransport | None = None,
        config: ConfigProvider | None = None,
        drivers: dict[str, BaseNotifyDriver] | None = None,
        max_retries: int | None = None,
        backoff_base: float | None = None,
        backoff_factor: float | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Initialize the router.

        Args:
            transport: HTTP transport shared by drivers (default: urllib).
            config: Channel configuration (default: Django settings).
            drivers: Channel -> driver mapping (default: every registered driver).
            max_retries: Extra attempts for transient failures (default from config).
            backoff_base: First backoff delay in seconds (default from config).
            backoff_factor: Backoff multiplier (default from config).
            sleep: Sleep function used between retries.
        """
        self.config = config or SettingsConfigProvider()
        self.transport = transport or UrllibTransport()
        self.drivers = drivers if drivers is not None else build_drivers(self.transport, self.config)
        self.max_retries = (
            max_retries if max_retries is not None else self.config.get_int("max_retries")
        )
        self.backoff_base = (
            backoff_base if backoff_base is not None else self.config.get_float("backoff_base")
        )
        self.backoff_factor = (
            backoff_factor
            if backoff_factor is not None
            else self.config.get_float("backoff_factor")
        )
        self.sleep = sleep

    def validate(self, requests: list[NotificationRequest]) -> None:
        """Reject malformed requests before anything is sent."""
        for index, request in enumerate(requests):
            if request.channel not in self.drivers:
                raise ValidationError(
                    f"Unknown channel: {request.channel!r}",
                    channel=request.channel,
                    index=index,
                    available_channels=sorted(self.drivers),
                )
            if not isinstance(request.target, str) or not request.target.strip():
                raise ValidationError(
                    f"Missing target for {request.channel} notification",
                    channel=request.channel,
                    index=index,
                )

    def deliver(self, request: NotificationRequest) -> dict[str, Any]:
        """
        Deliver a single request.

        Returns:
            Driver metadata.

        Raises:
            ValidationError: malformed request.
            ChannelDeliveryError: the channel failed (after retries if transient).
        """
        self.validate([request])
        metadata, _ = self._send_with_retry(request)
        return metadata

    def dispatch(
        self,
        requests: list[NotificationRequest],
        deadline: float | None = None,
    ) -> list[NotificationResult]:
        """
        Deliver every request concurrently and aggregate the outcomes.

        Args:
            requests: Requests to deliver (results keep this order).
            deadline: Seconds to wait for all channels (default from config).

        Returns:
            One NotificationResult per request.
        """
        self.validate(requests)
        if not requests:
            return []

        if deadline is None:
            deadline = self.config.get_float("dispatch_deadline")

        start_time = time.perf_counter()
        executor = ThreadPoolExecutor(max_workers=len(requests), thread_name_prefix="notify")
        try:
            futures = [executor.submit(self._deliver_safely, request) for request in requests]
            done, _ = wait(futures, timeout=deadline)

            results: list[NotificationResult] = []
            for request, future in zip(requests, futures):
                if future in done:
                    results.append(future.result())
                    continue

                future.cancel()
                elapsed = time.perf_counter() - start_time
                logger.warning(
                    f"{request.channel} notification to {request.target} "
                    f"did not finish within {deadline}s"
                )
                emit_failed(self._tags(request), "timeout", True, elapsed * 1000)
                results.append(
                    NotificationResult(
                        channel=request.channel,
                        target=request.target,
                        outcome=FAILED,
                        reason="timeout",
                        latency=elapsed,
                        role=request.role,
                    )
                )
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

        delivered = sum(1 for r in results if r.delivered)
        duration_ms = (time.perf_counter() - start_time) * 1000
        emit_dispatch_completed(delivered, len(results) - delivered, duration_ms)
        logger.info(
            f"Dispatched {len(results)} notification(s): "
            f"{delivered} delivered, {len(results) - delivered} failed"
        )
        return results

    def _deliver_safely(self, request: NotificationRequest) -> NotificationResult:
        """Deliver one request and convert any failure into a failed result."""
        start_time = time.perf_counter()

        if not is_channel_enabled(request.channel):
            return NotificationResult(
                channel=request.channel,
                target=request.target,
                outcome=FAILED,
                reason="channel disabled",
                attempts=0,
                role=request.role,
            )

        try:
            metadata, attempts = self._send_with_retry(request)
        except ChannelDeliveryError as e:
            return NotificationResult(
                channel=request.channel,
                target=request.target,
                outcome=FAILED,
                reason=e.message,
                latency=time.perf_counter() - start_time,
                attempts=e.attempts,
                role=request.role,
            )
        except Exception as e:
            logger.exception(f"Unexpected error delivering {request.channel} notification: {e}")
            return NotificationResult(
                channel=request.channel,
                target=request.target,
                outcome=FAILED,
                reason=f"Unexpected error: {e}",
                latency=time.perf_counter() - start_time,
                role=request.role,
            )

        return NotificationResult(
            channel=request.channel,
            target=request.target,
            outcome=DELIVERED,
            latency=time.perf_counter() - start_time,
            attempts=attempts,
            role=request.role,
            metadata=metadata,
        )

    def _send_with_retry(self, request: NotificationRequest) -> tuple[dict[str, Any], int]:
        """Send with bounded retries for transient errors; return (metadata, attempts)."""
        driver = self.drivers[request.channel]
        tags = self._tags(request)
        start_time = time.perf_counter()

        for attempt in range(1, self.max_retries + 2):
            tags.attempt = attempt
            try:
                metadata = driver.send(request)
            except TransportError as e:
                if attempt > self.max_retries:
                    latency_ms = (time.perf_counter() - start_time) * 1000
                    emit_failed(tags, e.message, True, latency_ms)
                    raise ChannelDeliveryError(
                        request.channel,
                        f"{e.message} (gave up after {attempt} attempts)",
                        status=e.status,
                        retryable=True,
                        attempts=attempt,
                    ) from e

                backoff_time = self.backoff_base * self.backoff_factor ** (attempt - 1)
                emit_retrying(tags, e.message, backoff_time)
                self.sleep(backoff_time)
            except ChannelDeliveryError as e:
                e.attempts = attempt
                latency_ms = (time.perf_counter() - start_time) * 1000
                emit_failed(tags, e.message, False, latency_ms)
                raise
            else:
                emit_delivered(tags, (time.perf_counter() - start_time) * 1000)
                return metadata, attempt

        raise RuntimeError("Delivery loop exited without a result")

    def _tags(self, request: NotificationRequest) -> DeliveryTags:
        return DeliveryTags(
            channel=request.channel,
            role=request.role,
            incident_id=request.incident_id,
            severity=request.severity,
        )
