"""
Payment Service Abstract Base Class

Defines the interface contract for all payment gateway implementations.
Both MockPaymentService and StripePaymentService must implement these
methods, so the order lifecycle behaves the same regardless of which
gateway is active.

Design Pattern: Strategy Pattern
    - Runtime switching between gateways via ENV_MODE
    - Tests inject a deterministic mock
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional


@dataclass
class CheckoutLineItem:
    """
    One line on the hosted checkout page.

    Attributes:
        name: Display name
        unit_price: Price per unit in major currency units (e.g. 12.50)
        quantity: Number of units
    """
    name: str
    unit_price: float
    quantity: int = 1

    @property
    def total(self) -> float:
        return round(self.unit_price * self.quantity, 2)


@dataclass
class CheckoutSessionResult:
    """
    Standardized result from creating a hosted checkout session.

    Attributes:
        success: Whether the gateway accepted the session
        session_id: Gateway session identifier (Stripe format: cs_xxx)
        session_url: URL the client redirects to in order to pay
        amount: Total amount of the session in major units
        currency: Currency code (e.g., "usd")
        error_message: Error description if the gateway rejected the request
        error_code: Machine-readable error code
        response_time_ms: Time taken by the gateway call
    """
    success: bool
    session_id: Optional[str] = None
    session_url: Optional[str] = None
    amount: Optional[float] = None
    currency: str = "usd"
    error_message: Optional[str] = None
    error_code: Optional[str] = None
    response_time_ms: float = 0.0
    metadata: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "success": self.success,
            "session_id": self.session_id,
            "session_url": self.session_url,
            "amount": self.amount,
            "currency": self.currency,
            "error_message": self.error_message,
            "error_code": self.error_code,
            "response_time_ms": self.response_time_ms,
            "metadata": self.metadata,
        }


class BasePaymentService(ABC):
    """
    Abstract base class for payment gateways.

    Example:
        >>> service = get_payment_service()  # Returns Mock or Stripe
        >>> result = await service.create_checkout_session(
        ...     order_id=42,
        ...     line_items=[CheckoutLineItem("Greek salad", 12.0, 2)],
        ...     success_url="https://shop/verify?success=true&orderId=42",
        ...     cancel_url="https://shop/verify?success=false&orderId=42",
        ... )
        >>> if result.success:
        ...     print(result.session_url)
    """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the name of the gateway (e.g., "mock", "stripe")."""
        pass

    @abstractmethod
    async def create_checkout_session(
        self,
        order_id: int,
        line_items: list[CheckoutLineItem],
        success_url: str,
        cancel_url: str,
        currency: Optional[str] = None,
        metadata: Optional[dict] = None,
    ) -> CheckoutSessionResult:
        """
        Create a hosted checkout session for an order.

        The client completes payment out of process; the outcome comes
        back through /order/verify or the gateway webhook.

        Note:
            - Prices are in major units; implementations convert if needed
            - Failures are returned as unsuccessful results, never raised
        """
        pass

    @abstractmethod
    async def verify_webhook(
        self,
        payload: bytes,
        signature: Optional[str],
    ) -> Optional[dict]:
        """
        Verify and parse a webhook from the gateway.

        Returns:
            dict: Parsed webhook event if valid, None if invalid
        """
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """Return True if the gateway is reachable and operational."""
        pass
