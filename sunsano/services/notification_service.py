"""Customer email notifications via SendGrid.

Sending is best effort: an unconfigured or failing mail provider is logged
and reported as False, never raised into order or webhook handling.
"""

import html
import logging
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any

import httpx

from sunsano.config import settings
from sunsano.models.order import Order

logger = logging.getLogger(__name__)


class NotificationService:
    """Service for sending order emails."""

    SENDGRID_URL = "https://api.sendgrid.com/v3/mail/send"

    # Notification types
    ORDER_CONFIRMED = "order_confirmed"
    PAYMENT_FAILED = "payment_failed"

    def __init__(self) -> None:
        self._http_client: httpx.AsyncClient | None = None

    @property
    def http_client(self) -> httpx.AsyncClient:
        """Lazy-load HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=30.0)
        return self._http_client

    async def close(self) -> None:
        """Close HTTP client."""
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None

    async def send_email(
        self,
        to_email: str,
        subject: str,
        html_content: str,
        text_content: str | None = None,
    ) -> bool:
        """Send an email via SendGrid.

        Args:
            to_email: Recipient email
            subject: Email subject
            html_content: HTML body
            text_content: Plain text body

        Returns:
            bool: True if sent successfully
        """
        if not settings.sendgrid_api_key:
            logger.warning(f"Email service not configured, skipping '{subject}'")
            return False

        headers = {
            "Authorization": f"Bearer {settings.sendgrid_api_key}",
            "Content-Type": "application/json",
        }
        payload: dict[str, Any] = {
            "personalizations": [{"to": [{"email": to_email}]}],
            "from": {
                "email": settings.email_from_address,
                "name": settings.email_from_name,
            },
            "subject": subject,
            "content": [{"type": "text/html", "value": html_content}],
        }
        if text_content:
            payload["content"].insert(0, {"type": "text/plain", "value": text_content})

        try:
            response = await self.http_client.post(self.SENDGRID_URL, headers=headers, json=payload)
        except httpx.HTTPError as e:
            logger.error(f"Error sending email '{subject}' to {to_email}: {e}")
            return False

        if response.status_code not in (200, 202):
            logger.error(f"SendGrid rejected '{subject}' with {response.status_code}: {response.text}")
            return False
        logger.info(f"Email '{subject}' sent to {to_email}")
        return True

    async def send_order_confirmation(self, order: Order) -> bool:
        """Send the order confirmation after successful payment."""
        subject = f"Bestellbestätigung - {order.order_number}"
        body = self._generate_order_html(
            order,
            title="Vielen Dank für deine Bestellung!",
            intro=(
                f"Hallo {html.escape(order.customer_firstname)}, deine Zahlung ist eingegangen. "
                "Wir bereiten deine Säfte frisch zu und liefern sie so schnell wie möglich."
            ),
        )
        text = (
            f"Bestellung {order.order_number} bestätigt. "
            f"Gesamt: {self._format_money(order.total)}"
        )
        return await self.send_email(order.customer_email, subject, body, text)

    async def send_payment_failed(self, order: Order) -> bool:
        """Tell the customer that the payment did not go through."""
        subject = f"Zahlung fehlgeschlagen - {order.order_number}"
        body = self._generate_order_html(
            order,
            title="Deine Zahlung konnte nicht abgeschlossen werden",
            intro=(
                f"Hallo {html.escape(order.customer_firstname)}, leider ist die Zahlung für deine "
                "Bestellung fehlgeschlagen. Du kannst die Zahlung jederzeit erneut versuchen."
            ),
        )
        text = f"Die Zahlung für Bestellung {order.order_number} ist fehlgeschlagen."
        return await self.send_email(order.customer_email, subject, body, text)

    @staticmethod
    def _format_money(amount: Decimal | float) -> str:
        return f"{Decimal(str(amount)):.2f} €"

    def _generate_order_html(self, order: Order, title: str, intro: str) -> str:
        """Generate order email HTML with the item table and totals."""
        rows = "".join(
            f"""
            <tr>
                <td style="padding: 10px; border-bottom: 1px solid #eee;">{html.escape(item["name"])}</td>
                <td style="padding: 10px; border-bottom: 1px solid #eee; text-align: center;">{item["quantity"]}</td>
                <td style="padding: 10px; border-bottom: 1px solid #eee; text-align: right;">{self._format_money(item["price"])}</td>
                <td style="padding: 10px; border-bottom: 1px solid #eee; text-align: right;">{self._format_money(Decimal(str(item["price"])) * item["quantity"])}</td>
            </tr>"""
            for item in order.items
        )

        return f"""
        <!DOCTYPE html>
        <html>
        <head>
            <meta charset="utf-8">
            <title>{title} - {settings.app_name}</title>
        </head>
        <body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333;
                     max-width: 600px; margin: 0 auto; padding: 20px;">
            <h1 style="color: #f59e0b;">{title}</h1>
            <p>{intro}</p>
            <p><strong>Bestellnummer:</strong> {order.order_number}</p>
            <table style="width: 100%; border-collapse: collapse;">
                <thead>
                    <tr>
                        <th style="text-align: left;">Produkt</th>
                        <th>Menge</th>
                        <th style="text-align: right;">Preis</th>
                        <th style="text-align: right;">Summe</th>
                    </tr>
                </thead>
                <tbody>{rows}</tbody>
            </table>
            <p style="text-align: right;">
                Zwischensumme: {self._format_money(order.subtotal)}<br>
                Lieferung: {self._format_money(order.delivery_cost)}<br>
                <strong>Gesamt: {self._format_money(order.total)}</strong>
            </p>
            <p>
                Lieferadresse: {html.escape(order.customer_address)},
                {html.escape(order.customer_zipcode)} {html.escape(order.customer_city)}
            </p>
            <p style="color: #9ca3af; font-size: 12px; margin-top: 24px; text-align: center;">
                &copy; {datetime.now(UTC).year} {settings.app_name}
            </p>
        </body>
        </html>
        """


# Singleton instance
notification_service = NotificationService()
