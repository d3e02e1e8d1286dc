"""Delivery notice client - composes the customer message and sends it once"""

import re
import logging
from urllib.parse import quote
import httpx
from layaway_hub.config import settings
from layaway_hub.domain.exceptions import NotificationDispatchFailed
from layaway_hub.domain.models import FinancingRequest


def normalize_phone(phone: str, country_code: str, national_prefix: str) -> str:
    """
    Turn a locally typed number into an international one.

    Example (country 234, prefix 0):
        "0801 234 5678"      -> "2348012345678"
        "+234 801 234 5678"  -> "2348012345678"
        "+234 0801 234 5678" -> "2348012345678"
        "8012345678"         -> "2348012345678"
    """
    digits = re.sub(r"\D", "", phone or "")
    if digits.startswith(country_code):
        digits = digits[len(country_code):]
    # Trunk prefix is dropped even when typed after the country code
    if national_prefix and digits.startswith(national_prefix):
        digits = digits[len(national_prefix):]
    return country_code + digits if digits else ""


class NotificationDispatcher:
    """Best-effort sender of the 'your device has been delivered' message"""

    def __init__(
        self,
        webhook_url: str | None = None,
        link_base: str | None = None,
        country_code: str | None = None,
        national_prefix: str | None = None,
        currency_symbol: str | None = None,
        timeout: float | None = None,
    ):
        self.webhook_url = webhook_url or settings.notification_webhook_url
        self.link_base = (link_base or settings.messaging_link_base).rstrip("/")
        self.country_code = country_code or settings.phone_country_code
        self.national_prefix = national_prefix if national_prefix is not None else settings.phone_national_prefix
        self.currency_symbol = currency_symbol or settings.currency_symbol
        self.timeout = timeout or settings.http_timeout_seconds

    def compose_message(self, request: FinancingRequest) -> str:
        return (
            f"Hello {request.customer_name}, your layaway for {request.product_name} is complete "
            f"and has been marked delivered. Total paid: {self.currency_symbol}{request.amount_paid:,}. "
            f"Delivery address: {request.address}. Thank you for financing with us!"
        )

    def build_link(self, phone: str, message: str) -> str:
        return f"{self.link_base}/{phone}?text={quote(message)}"

    def send_delivery_notice(self, request: FinancingRequest) -> str:
        """
        Compose and dispatch the delivery message. Sent at most once.

        Without a webhook configured the deep link is only logged for the
        operator to open.

        Returns:
            The messaging deep link

        Raises:
            NotificationDispatchFailed: missing phone, or the webhook errored
        """
        phone = normalize_phone(request.phone, self.country_code, self.national_prefix)
        if not phone:
            raise NotificationDispatchFailed(f"Request {request.id} has no usable phone number")

        message = self.compose_message(request)
        link = self.build_link(phone, message)

        if not self.webhook_url:
            logging.info(
                "Delivery notice ready",
                extra={"financing_request_id": request.id, "step": "notify", "link": link},
            )
            return link

        try:
            with httpx.Client(timeout=self.timeout) as client:
                response = client.post(
                    self.webhook_url,
                    json={"to": phone, "message": message, "link": link},
                )
                response.raise_for_status()
        except httpx.TimeoutException as e:
            raise NotificationDispatchFailed(f"Messaging webhook timeout after {self.timeout}s") from e
        except httpx.HTTPStatusError as e:
            raise NotificationDispatchFailed(f"Messaging webhook error: {e.response.status_code}") from e
        except httpx.RequestError as e:
            raise NotificationDispatchFailed(f"Messaging webhook unreachable: {e}") from e
        except httpx.InvalidURL as e:
            raise NotificationDispatchFailed(f"Messaging webhook URL is malformed: {e}") from e

        return link
