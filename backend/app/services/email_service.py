"""
Email Service
Sends account and order notification emails over SMTP

Emails are queued with FastAPI BackgroundTasks by the routers; a failed send
is logged and never fails the request that triggered it.
"""
import logging
import random
import smtplib
from email.message import EmailMessage
from html import escape
from typing import Optional

from app.core.config import settings
from app.domain.order import Order, OrderStatus

logger = logging.getLogger(__name__)

STATUS_MESSAGES = {
    OrderStatus.PENDING: "We have received your order.",
    OrderStatus.AWAITING_PROCESSING: "Your order is awaiting processing.",
    OrderStatus.ORDER_CONFIRMATION: "Your order has been confirmed.",
    OrderStatus.APPROVED: "Your order has been approved and is being prepared.",
    OrderStatus.SHIPPED: "Your order is on its way!",
    OrderStatus.DELIVERED: "Your order has been delivered. Enjoy!",
    OrderStatus.REFUSED: "Unfortunately we could not accept your order.",
    OrderStatus.CANCELLED: "Your order has been cancelled.",
}


def generate_otp() -> str:
    """Six digit one-time code"""
    return str(random.randint(100000, 999999))


def _status_label(status: str) -> str:
    return status.replace("_", " ").title()


def _items_table(order: Order) -> str:
    rows = "".join(
        f"<tr><td>{escape(item.name)} ({escape(item.size)}"
        f"{' / ' + escape(item.color) if item.color else ''})</td>"
        f"<td>{item.quantity}</td><td>{item.price * item.quantity:.2f}</td></tr>"
        for item in order.items
    )
    return (
        "<table><tr><th>Item</th><th>Qty</th><th>Price</th></tr>"
        f"{rows}"
        f"<tr><td>Shipping</td><td></td><td>{order.shipping.cost:.2f}</td></tr>"
        f"<tr><td><strong>Total</strong></td><td></td><td><strong>{order.total:.2f}</strong></td></tr>"
        "</table>"
    )


class EmailService:
    """
    SMTP mailer for TinyTales notifications

    When SMTP_HOST is not configured, messages are logged and skipped.
    """

    def __init__(self):
        self.host = settings.SMTP_HOST
        self.port = settings.SMTP_PORT
        self.user = settings.SMTP_USER
        self.password = settings.SMTP_PASS
        self.sender = settings.MAIL_FROM

    @property
    def enabled(self) -> bool:
        return bool(self.host)

    def send(self, to: str, subject: str, html: str) -> bool:
        """
        Send one HTML email

        Returns:
            True if the message was handed to the SMTP server
        """
        if not self.enabled:
            logger.info(f"SMTP not configured, skipping email '{subject}' to {to}")
            return False

        message = EmailMessage()
        message["From"] = self.sender
        message["To"] = to
        message["Subject"] = subject
        message.set_content("This email requires an HTML capable client.")
        message.add_alternative(html, subtype="html")

        try:
            if self.port == 465:
                smtp = smtplib.SMTP_SSL(self.host, self.port, timeout=30)
            else:
                smtp = smtplib.SMTP(self.host, self.port, timeout=30)
                smtp.starttls()
            with smtp:
                if self.user:
                    smtp.login(self.user, self.password)
                smtp.send_message(message)
            logger.info(f"Sent email '{subject}' to {to}")
            return True
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Failed to send email '{subject}' to {to}: {e}")
            return False

    # Account emails

    def send_verification_email(self, email: str, otp: str) -> bool:
        return self.send(
            email,
            "Verify Your TinyTales Account",
            f"<h1>TinyTales</h1><p>Your verification code is:</p>"
            f"<h2>{otp}</h2><p>This code expires in 10 minutes.</p>",
        )

    def send_password_reset_email(self, email: str, token: str) -> bool:
        link = f"{settings.FRONTEND_URL}/reset-password?token={token}"
        return self.send(
            email,
            "Reset Your TinyTales Password",
            f"<h1>TinyTales</h1><p>Click the link below to reset your password:</p>"
            f'<p><a href="{escape(link)}">Reset password</a></p>'
            "<p>This link expires in 1 hour. If you did not ask for a reset, ignore this email.</p>",
        )

    # Order emails

    def send_order_confirmation_email(self, email: str, order: Order) -> bool:
        return self.send(
            email,
            f"Order Confirmation - {order.order_number}",
            f"<h1>Thank you for your order!</h1>"
            f"<p>Order number: <strong>{order.order_number}</strong></p>"
            f"{_items_table(order)}"
            f"<p>Payment: {escape(order.payment.method)}</p>",
        )

    def send_admin_order_notification_email(self, order: Order) -> bool:
        if not settings.ADMIN_EMAIL:
            logger.info(f"ADMIN_EMAIL not configured, skipping admin notification for order {order.id}")
            return False

        address = order.address
        return self.send(
            settings.ADMIN_EMAIL,
            f"New Order - {order.order_number}",
            f"<h1>New order received</h1>"
            f"<p>Customer: {escape(order.email)}</p>"
            f"<p>Ship to: {escape(address.street_address or '')}, {escape(address.city_area or '')}, "
            f"{escape(address.region_state or '')}</p>"
            f"{_items_table(order)}",
        )

    def send_order_status_email(
        self,
        email: str,
        order: Order,
        status: str,
        shipper_name: Optional[str] = None,
        reason: Optional[str] = None
    ) -> bool:
        body = f"<h1>Order {order.order_number}</h1><p>{STATUS_MESSAGES.get(status, '')}</p>"
        if shipper_name and status == OrderStatus.SHIPPED:
            body += f"<p>Shipped with: {escape(shipper_name)}</p>"
        if reason:
            body += f"<p>Reason: {escape(reason)}</p>"
        return self.send(email, f"Order Update - {_status_label(status)}", body)

    def send_order_cancellation_email(self, email: str, order: Order, cancelled_by: str) -> bool:
        who = "our team" if cancelled_by == "admin" else "you"
        body = f"<h1>Order {order.order_number} cancelled</h1><p>This order was cancelled by {who}.</p>"
        if order.cancel_reason:
            body += f"<p>Reason: {escape(order.cancel_reason)}</p>"
        return self.send(email, f"Order Cancelled - {order.order_number}", body)
