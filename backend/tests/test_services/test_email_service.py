"""
Unit tests for EmailService

SMTP is mocked; no mail server is contacted.
"""
import smtplib
from datetime import datetime, timezone
from unittest.mock import MagicMock, patch

import pytest

from app.domain.order import Order, OrderItem, OrderStatus
from app.services.email_service import EmailService, generate_otp


@pytest.fixture
def order():
    now = datetime.now(timezone.utc)
    return Order(
        id="1700000000000",
        order_number="TT-1700000000000-42",
        email="parent@example.com",
        items=[OrderItem(product_id="romper", name="Cloud <Soft> Romper", price=19.99, quantity=2, color="Cream")],
        created_at=now,
        updated_at=now,
    )


@pytest.fixture
def smtp_service():
    service = EmailService()
    service.host = "smtp.example.com"
    service.port = 465
    service.user = "mailer"
    service.password = "pw"
    return service


class TestEmailService:
    """Test message sending and failure handling"""

    def test_disabled_without_host(self, order):
        service = EmailService()

        assert not service.enabled
        assert service.send_order_confirmation_email(order.email, order) is False

    @patch("app.services.email_service.smtplib.SMTP_SSL")
    def test_send_over_ssl(self, mock_smtp_ssl, smtp_service, order):
        smtp = MagicMock()
        mock_smtp_ssl.return_value = smtp
        smtp.__enter__.return_value = smtp

        sent = smtp_service.send_order_confirmation_email(order.email, order)

        assert sent is True
        mock_smtp_ssl.assert_called_once_with("smtp.example.com", 465, timeout=30)
        smtp.login.assert_called_once_with("mailer", "pw")
        message = smtp.send_message.call_args[0][0]
        assert message["Subject"] == "Order Confirmation - TT-1700000000000-42"
        html = message.get_body(preferencelist=("html",)).get_content()
        assert "Cloud &lt;Soft&gt; Romper" in html
        assert "139.98" in html

    @patch("app.services.email_service.smtplib.SMTP")
    def test_starttls_on_other_ports(self, mock_smtp, smtp_service, order):
        smtp_service.port = 587
        smtp = MagicMock()
        mock_smtp.return_value = smtp
        smtp.__enter__.return_value = smtp

        assert smtp_service.send_order_status_email(order.email, order, OrderStatus.SHIPPED, "Pathao")

        smtp.starttls.assert_called_once()
        message = smtp.send_message.call_args[0][0]
        assert message["Subject"] == "Order Update - Shipped"
        assert "Pathao" in message.get_body(preferencelist=("html",)).get_content()

    @patch("app.services.email_service.smtplib.SMTP_SSL")
    def test_smtp_failure_is_logged_not_raised(self, mock_smtp_ssl, smtp_service, order, caplog):
        mock_smtp_ssl.side_effect = smtplib.SMTPConnectError(421, "busy")

        assert smtp_service.send_order_cancellation_email(order.email, order, "admin") is False
        assert "Failed to send email" in caplog.text

    def test_admin_notification_needs_admin_email(self, smtp_service, order, monkeypatch):
        monkeypatch.setattr("app.services.email_service.settings.ADMIN_EMAIL", "")
        assert smtp_service.send_admin_order_notification_email(order) is False

    def test_generate_otp(self):
        otp = generate_otp()
        assert len(otp) == 6
        assert otp.isdigit()
