"""
Outbound email client.

Posts messages to a Resend-compatible HTTP mail API.
"""

import logging
from html import escape
from typing import Optional

import httpx

from backend.app.core.exceptions import DownstreamError

logger = logging.getLogger("parcel_delivery.mailer")


class EmailClient:

    def __init__(
        self,
        client: httpx.AsyncClient,
        api_url: str,
        api_key: Optional[str],
        sender: str,
        timeout: float = 10.0,
    ):
        self._client = client
        self._url = api_url.rstrip("/") + "/emails"
        self._api_key = api_key
        self._sender = sender
        self._timeout = timeout

    async def send(self, to: str, subject: str, html: str, text: str) -> bool:
        """
        Send a single email.

        Returns False when sending is skipped (no API key or recipient).

        Raises:
            DownstreamError: if the mail API rejects the message or is unreachable
        """
        if not self._api_key:
            logger.info("Email skipped (missing mail API key): %s", subject)
            return False

        recipient = (to or "").strip().lower()
        if not recipient:
            logger.info("Email skipped (no recipient): %s", subject)
            return False

        payload = {
            "from": self._sender,
            "to": [recipient],
            "subject": subject,
            "html": html,
            "text": text,
        }
        headers = {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }

        try:
            response = await self._client.post(
                self._url, json=payload, headers=headers, timeout=self._timeout
            )
        except httpx.HTTPError as exc:
            raise DownstreamError("mail", str(exc)) from exc

        if response.status_code >= 400:
            raise DownstreamError("mail", f"status {response.status_code}: {response.text}")

        logger.info("Email sent to %s: %s", recipient, subject)
        return True


def _escaped(parcel) -> tuple:
    """User-supplied fields, HTML-escaped for the message body."""
    return (
        escape(parcel.sender_name or ""),
        escape(parcel.pickup_address or ""),
        escape(parcel.delivery_address or ""),
    )


def booking_confirmation(parcel) -> tuple:
    """Return (subject, html, text) for a new booking."""
    subject = "Parcel Booking Confirmation"
    sender, pickup, delivery = _escaped(parcel)
    html = f"""
        <h2>Thank you, {sender}!</h2>
        <p>Your parcel has been booked successfully with the following details:</p>
        <ul>
          <li><strong>Pickup:</strong> {pickup}</li>
          <li><strong>Delivery:</strong> {delivery}</li>
          <li><strong>Size:</strong> {parcel.parcel_size.value}</li>
          <li><strong>Payment:</strong> {parcel.payment_type.value}</li>
        </ul>
        <p>Status: <strong>{parcel.status.value}</strong></p>
        <br />
        <p>We'll notify you once it's out for delivery.</p>
    """
    text = (
        f"Thank you, {parcel.sender_name}! Your parcel has been booked.\n"
        f"Pickup: {parcel.pickup_address}\n"
        f"Delivery: {parcel.delivery_address}\n"
        f"Size: {parcel.parcel_size.value}\n"
        f"Payment: {parcel.payment_type.value}\n"
        f"Status: {parcel.status.value}\n"
    )
    return subject, html, text


def status_update(parcel, new_status) -> tuple:
    """Return (subject, html, text) for a status change."""
    subject = f"Parcel Status Update: {new_status.value}"
    sender, pickup, delivery = _escaped(parcel)
    html = f"""
        <h3>Hello {sender},</h3>
        <p>Your parcel status has been updated to <strong>{new_status.value}</strong>.</p>
        <ul>
          <li><strong>Pickup Address:</strong> {pickup}</li>
          <li><strong>Delivery Address:</strong> {delivery}</li>
        </ul>
        <br />
        <p>Thank you for using GoQuick!</p>
    """
    text = (
        f"Hello {parcel.sender_name},\n"
        f"Your parcel status has been updated to {new_status.value}.\n"
        f"Pickup Address: {parcel.pickup_address}\n"
        f"Delivery Address: {parcel.delivery_address}\n"
    )
    return subject, html, text
