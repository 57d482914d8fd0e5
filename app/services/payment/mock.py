"""
Mock Payment Service Implementation

Simulates Stripe Checkout without making real API calls.
Used in development mode (ENV_MODE=development) to:
    - Run the complete checkout flow locally
    - Develop without internet connectivity or Stripe keys

Behavior:
    - Simulates gateway latency
    - Rejects a configurable share of sessions (simulates gateway errors)
    - Generates Stripe-like IDs (cs_mock_xxx)
    - The session URL is the success URL, so following it "pays"
"""

import asyncio
import json
import random
import uuid
import logging
from collections import OrderedDict
from typing import Optional

from app.services.payment.base import (
    BasePaymentService,
    CheckoutLineItem,
    CheckoutSessionResult,
)

logger = logging.getLogger(__name__)


class MockPaymentService(BasePaymentService):
    """
    Mock implementation of the payment gateway.

    Attributes:
        failure_rate: Probability of a simulated gateway failure (0.0-1.0)
        min_latency: Minimum simulated response time in seconds
        max_latency: Maximum simulated response time in seconds
        max_sessions: Number of recent sessions kept for inspection

    Example:
        >>> service = MockPaymentService(failure_rate=0.0)
        >>> result = await service.create_checkout_session(1, items, ok, cancel)
        >>> result.session_url == ok
        True
    """

    # Simulated failure reasons (mimics real Stripe error codes)
    FAILURE_REASONS = [
        ("api_connection_error", "Could not connect to the payment gateway."),
        ("rate_limit", "Too many requests to the payment gateway."),
        ("processing_error", "An error occurred while creating the checkout session."),
    ]

    def __init__(
        self,
        failure_rate: float = 0.0,
        min_latency: float = 0.1,
        max_latency: float = 0.3,
        currency: str = "usd",
        max_sessions: int = 1000,
    ):
        self.failure_rate = failure_rate
        self.min_latency = min_latency
        self.max_latency = max(min_latency, max_latency)
        self.currency = currency
        self.max_sessions = max_sessions
        self.sessions: OrderedDict[str, dict] = OrderedDict()

        logger.info(
            f"MockPaymentService initialized "
            f"(failure_rate={failure_rate:.0%}, "
            f"latency={min_latency}-{max_latency}s)"
        )

    @property
    def provider_name(self) -> str:
        return "mock"

    def _generate_session_id(self) -> str:
        """Generate a Stripe-like checkout session ID."""
        return f"cs_mock_{uuid.uuid4().hex[:24]}"

    async def _simulate_latency(self) -> float:
        """
        Simulate network latency.

        Returns:
            float: Actual latency in milliseconds
        """
        latency = random.uniform(self.min_latency, self.max_latency)
        if latency > 0:
            await asyncio.sleep(latency)
        return latency * 1000

    def _should_fail(self) -> bool:
        return random.random() < self.failure_rate

    async def create_checkout_session(
        self,
        order_id: int,
        line_items: list[CheckoutLineItem],
        success_url: str,
        cancel_url: str,
        currency: Optional[str] = None,
        metadata: Optional[dict] = None,
    ) -> CheckoutSessionResult:
        """Simulate creating a hosted checkout session."""
        currency = currency or self.currency
        amount = round(sum(item.total for item in line_items), 2)

        if not line_items or amount <= 0:
            return CheckoutSessionResult(
                success=False,
                error_message="Amount must be greater than 0",
                error_code="invalid_amount",
            )

        latency_ms = await self._simulate_latency()

        if self._should_fail():
            error_code, error_message = random.choice(self.FAILURE_REASONS)
            logger.debug(f"Mock: Checkout session rejected - {error_code}")

            return CheckoutSessionResult(
                success=False,
                amount=amount,
                currency=currency,
                error_message=error_message,
                error_code=error_code,
                response_time_ms=latency_ms,
            )

        session_id = self._generate_session_id()
        self.sessions[session_id] = {
            "order_id": order_id,
            "amount": amount,
            "currency": currency,
            "metadata": {"order_id": str(order_id), **(metadata or {})},
        }
        while len(self.sessions) > self.max_sessions:
            self.sessions.popitem(last=False)

        logger.info(f"Mock: Checkout session {session_id} for order #{order_id} - {amount:.2f}")

        return CheckoutSessionResult(
            success=True,
            session_id=session_id,
            session_url=success_url,
            amount=amount,
            currency=currency,
            response_time_ms=latency_ms,
            metadata={"cancel_url": cancel_url, "mock": True},
        )

    async def verify_webhook(
        self,
        payload: bytes,
        signature: Optional[str],
    ) -> Optional[dict]:
        """
        Simulate webhook verification.

        In mock mode the payload is trusted and only parsed.
        """
        try:
            event = json.loads(payload)
        except (json.JSONDecodeError, UnicodeDecodeError):
            logger.warning("Mock: Invalid webhook payload")
            return None

        if not isinstance(event, dict) or "type" not in event:
            logger.warning("Mock: Webhook payload has no event type")
            return None
        return event

    async def health_check(self) -> bool:
        """Mock health check always returns True."""
        logger.debug("Mock: Health check passed")
        return True
