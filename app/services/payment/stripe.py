"""
Stripe Payment Service Implementation

Production implementation using the official Stripe Python SDK and
hosted Checkout Sessions. Used when ENV_MODE=production or staging.

Requirements:
    - STRIPE_SECRET_KEY must be set in environment
    - STRIPE_WEBHOOK_SECRET for webhook verification

Security Notes:
    - Card data never touches this service (hosted checkout)
    - Always verify webhook signatures
"""

import json
import logging
from datetime import datetime
from typing import Optional

import stripe

from app.core.config import get_settings
from app.services.payment.base import (
    BasePaymentService,
    CheckoutLineItem,
    CheckoutSessionResult,
)

logger = logging.getLogger(__name__)


class StripePaymentService(BasePaymentService):
    """
    Stripe Checkout gateway.

    Configuration:
        Requires STRIPE_SECRET_KEY environment variable.
        Uses STRIPE_WEBHOOK_SECRET for webhook verification when set.
    """

    def __init__(self):
        """
        Initialize Stripe with API key from settings.

        Raises:
            ValueError: If STRIPE_SECRET_KEY is not configured
        """
        settings = get_settings()

        if not settings.stripe_secret_key:
            raise ValueError(
                "STRIPE_SECRET_KEY is required for production mode. "
                "Set it in your .env file or environment variables."
            )

        stripe.api_key = settings.stripe_secret_key
        stripe.api_version = "2023-10-16"  # Pin API version for stability

        self._webhook_secret = settings.stripe_webhook_secret
        self._currency = settings.stripe_currency

        logger.info(
            f"StripePaymentService initialized "
            f"(api_version={stripe.api_version})"
        )

    @property
    def provider_name(self) -> str:
        return "stripe"

    def _convert_to_cents(self, amount: float) -> int:
        """
        Convert a major-unit amount to the smallest currency unit.

        Args:
            amount: Amount in dollars (e.g., 29.99)

        Returns:
            int: Amount in cents (e.g., 2999)
        """
        return int(round(amount * 100))

    def _convert_from_cents(self, cents: Optional[int]) -> Optional[float]:
        if cents is None:
            return None
        return cents / 100.0

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
        Create a Stripe Checkout Session for the order.

        ``metadata.order_id`` is attached so the webhook can find the order.
        """
        start_time = datetime.now()
        currency = currency or self._currency

        logger.info(f"Stripe: Creating checkout session for order #{order_id}")

        try:
            session = stripe.checkout.Session.create(
                line_items=[
                    {
                        "price_data": {
                            "currency": currency,
                            "product_data": {"name": item.name},
                            "unit_amount": self._convert_to_cents(item.unit_price),
                        },
                        "quantity": item.quantity,
                    }
                    for item in line_items
                ],
                mode="payment",
                success_url=success_url,
                cancel_url=cancel_url,
                client_reference_id=str(order_id),
                metadata={
                    "order_id": str(order_id),
                    **(metadata or {}),
                },
            )

            elapsed_ms = (datetime.now() - start_time).total_seconds() * 1000

            logger.info(f"Stripe: Checkout session created - {session.id}")

            return CheckoutSessionResult(
                success=True,
                session_id=session.id,
                session_url=session.url,
                amount=self._convert_from_cents(session.amount_total),
                currency=session.currency or currency,
                response_time_ms=elapsed_ms,
            )

        except stripe.InvalidRequestError as e:
            # Invalid parameters
            elapsed_ms = (datetime.now() - start_time).total_seconds() * 1000
            logger.error(f"Stripe: Invalid request - {e}")

            return CheckoutSessionResult(
                success=False,
                error_message=str(e),
                error_code="invalid_request",
                response_time_ms=elapsed_ms,
            )

        except stripe.AuthenticationError as e:
            # API key issues
            logger.critical(f"Stripe: Authentication failed - {e}")

            return CheckoutSessionResult(
                success=False,
                error_message="Payment service configuration error",
                error_code="authentication_error",
            )

        except stripe.APIConnectionError as e:
            # Network issues
            elapsed_ms = (datetime.now() - start_time).total_seconds() * 1000
            logger.error(f"Stripe: Connection error - {e}")

            return CheckoutSessionResult(
                success=False,
                error_message="Payment service temporarily unavailable",
                error_code="connection_error",
                response_time_ms=elapsed_ms,
            )

        except stripe.StripeError as e:
            # Generic Stripe error
            elapsed_ms = (datetime.now() - start_time).total_seconds() * 1000
            logger.error(f"Stripe: Error - {e}")

            return CheckoutSessionResult(
                success=False,
                error_message="Payment processing error",
                error_code="stripe_error",
                response_time_ms=elapsed_ms,
            )

    async def verify_webhook(
        self,
        payload: bytes,
        signature: Optional[str],
    ) -> Optional[dict]:
        """
        Verify and parse a Stripe webhook event.

        Args:
            payload: Raw request body
            signature: Stripe-Signature header value

        Returns:
            Parsed event if valid, None if verification fails
        """
        if not self._webhook_secret:
            logger.warning(
                "Stripe: Webhook secret not configured, skipping verification"
            )
            try:
                return json.loads(payload)
            except (json.JSONDecodeError, UnicodeDecodeError):
                return None

        if not signature:
            logger.warning("Stripe: Webhook received without signature")
            return None

        try:
            event = stripe.Webhook.construct_event(
                payload,
                signature,
                self._webhook_secret,
            )

            logger.debug(f"Stripe: Webhook verified - {event['type']}")
            return event.to_dict() if hasattr(event, "to_dict") else dict(event)

        except stripe.SignatureVerificationError as e:
            logger.warning(f"Stripe: Webhook signature invalid - {e}")
            return None

        except ValueError as e:
            logger.warning(f"Stripe: Webhook payload invalid - {e}")
            return None

    async def health_check(self) -> bool:
        """
        Verify Stripe API connectivity.

        Makes a lightweight API call to verify credentials and connectivity.
        """
        try:
            stripe.Account.retrieve()
            logger.debug("Stripe: Health check passed")
            return True

        except stripe.StripeError as e:
            logger.error(f"Stripe: Health check failed - {e}")
            return False
