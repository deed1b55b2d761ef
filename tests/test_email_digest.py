#!/usr/bin/env python3
"""Tests for digest rendering, the email digester and the SMTP service."""

from __future__ import annotations

import smtplib
from datetime import datetime
from typing import List
from unittest.mock import MagicMock, Mock, patch

import pytest

from thought_reviewer.database.models import Category, Note
from thought_reviewer.email.digester import DeliveryError, EmailDigester
from thought_reviewer.email.service import AuthenticationError, EmailConfig, EmailError, EmailService
from thought_reviewer.email.templates import (
    DIGEST_SUBJECT,
    EMPTY_BATCH_MESSAGE,
    DigestContext,
    DigestTemplate,
    SimpleTemplateEngine,
    TemplateError,
)
from thought_reviewer.review.adapters import AdapterError


@pytest.fixture
def email_config() -> EmailConfig:
    return EmailConfig(
        smtp_server="smtp.example.com",
        smtp_port=587,
        username="sender@example.com",
        password="app-password",
        from_email="sender@example.com",
        from_name="Thought App",
        timeout_seconds=10,
    )


@pytest.fixture
def batch(captured_at: datetime) -> List[Note]:
    return [
        Note(id=1, category=Category.TODO, body="water plants", created_at=captured_at),
        Note(id=2, category=Category.NOTES, body="met <Sam> & Alex", created_at=captured_at),
        Note(id=3, category=Category.PROJECT, body="solar kiln", created_at=captured_at),
        Note(id=4, category=Category.TODO, body="renew passport", created_at=captured_at),
    ]


def render(notes: List[Note], analysis: str | None = None):
    context = DigestContext(
        notes=notes,
        recipient_name="Robin",
        send_timestamp=datetime(2024, 3, 10, 18, 0),
        analysis=analysis,
    )
    return DigestTemplate().render(context)


class TestDigestTemplate:
    """Rendering of the digest bodies."""

    def test_empty_batch_renders_explicit_message(self) -> None:
        digest = render([])

        assert EMPTY_BATCH_MESSAGE in digest.text_content
        assert EMPTY_BATCH_MESSAGE in digest.html_content
        assert digest.subject == f"{DIGEST_SUBJECT} (0 thoughts)"
        assert "category_counts" not in digest.text_content

    def test_groups_follow_category_order_and_keep_claim_order(self, batch: List[Note]) -> None:
        text = render(batch).text_content

        assert text.index("== Notes (1) ==") < text.index("== Project (1) ==") < text.index("== Todo (2) ==")
        assert text.index("water plants") < text.index("renew passport")
        assert "- solar kiln (2024-03-08 09:30)" in text
        assert "Misc" not in text

    def test_counts_and_greeting(self, batch: List[Note]) -> None:
        digest = render(batch)

        assert digest.subject == f"{DIGEST_SUBJECT} (4 thoughts)"
        assert "Hi Robin," in digest.text_content
        assert "4 thoughts captured (1 Notes, 1 Project, 2 Todo)" in digest.text_content

    def test_html_escapes_bodies(self, batch: List[Note]) -> None:
        html_content = render(batch).html_content

        assert "met &lt;Sam&gt; &amp; Alex" in html_content
        assert "<Sam>" not in html_content

    def test_analysis_section_only_when_present(self, batch: List[Note]) -> None:
        without = render(batch)
        with_analysis = render(batch, analysis="=== IDEA #1 ===\nKilns <3")

        assert "== Analysis ==" not in without.text_content
        assert "== Analysis ==\n=== IDEA #1 ===\nKilns <3" in with_analysis.text_content
        assert "Kilns &lt;3" in with_analysis.html_content

    def test_engine_rejects_unknown_placeholder(self) -> None:
        with pytest.raises(TemplateError):
            SimpleTemplateEngine().render("Hello {{missing}}", {})


class TestEmailDigester:
    """The digester adapter on top of a mocked email service."""

    def test_deliver_sends_one_email_with_rendered_digest(self, batch: List[Note]) -> None:
        service = Mock(spec=EmailService)
        digester = EmailDigester(service, "reader@example.com", recipient_name="Robin")

        digester.deliver(batch, analysis="worth a look")

        service.send_email.assert_called_once()
        kwargs = service.send_email.call_args.kwargs
        assert kwargs["to_email"] == "reader@example.com"
        assert kwargs["to_name"] == "Robin"
        assert kwargs["subject"] == f"{DIGEST_SUBJECT} (4 thoughts)"
        assert "worth a look" in kwargs["text_content"]
        assert "solar kiln" in kwargs["html_content"]

    def test_deliver_sends_for_empty_batch(self) -> None:
        service = Mock(spec=EmailService)

        EmailDigester(service, "reader@example.com").deliver([])

        service.send_email.assert_called_once()
        assert EMPTY_BATCH_MESSAGE in service.send_email.call_args.kwargs["text_content"]

    def test_email_failure_becomes_delivery_error(self, batch: List[Note]) -> None:
        service = Mock(spec=EmailService)
        service.send_email.side_effect = AuthenticationError("bad app password")
        digester = EmailDigester(service, "reader@example.com")

        with pytest.raises(DeliveryError) as exc_info:
            digester.deliver(batch)

        assert isinstance(exc_info.value, AdapterError)
        assert isinstance(exc_info.value.__cause__, AuthenticationError)

    def test_recipient_must_look_like_an_address(self) -> None:
        with pytest.raises(ValueError):
            EmailDigester(Mock(spec=EmailService), "not-an-address")


class TestEmailService:
    """SMTP interaction with smtplib patched out."""

    def test_send_email_uses_starttls_login_and_quits(self, email_config: EmailConfig) -> None:
        server = MagicMock()
        with patch("thought_reviewer.email.service.smtplib.SMTP", return_value=server) as smtp:
            EmailService(email_config).send_email(
                to_email="reader@example.com",
                subject="Subject",
                text_content="plain body",
                html_content="<p>html body</p>",
                to_name="Robin",
            )

        smtp.assert_called_once_with("smtp.example.com", 587, timeout=10)
        server.starttls.assert_called_once()
        server.login.assert_called_once_with("sender@example.com", "app-password")
        server.sendmail.assert_called_once()
        from_addr, to_addrs, message = server.sendmail.call_args.args
        assert from_addr == "sender@example.com"
        assert to_addrs == ["reader@example.com"]
        assert "Subject: Subject" in message
        server.quit.assert_called_once()

    def test_authentication_failure_maps_to_authentication_error(self, email_config: EmailConfig) -> None:
        server = MagicMock()
        server.login.side_effect = smtplib.SMTPAuthenticationError(535, b"Username and Password not accepted")
        with patch("thought_reviewer.email.service.smtplib.SMTP", return_value=server):
            with pytest.raises(AuthenticationError):
                EmailService(email_config).send_email("reader@example.com", "Subject", "body")

        server.sendmail.assert_not_called()

    def test_send_failure_maps_to_email_error_and_still_quits(self, email_config: EmailConfig) -> None:
        server = MagicMock()
        server.sendmail.side_effect = smtplib.SMTPRecipientsRefused({"reader@example.com": (550, b"no such user")})
        with patch("thought_reviewer.email.service.smtplib.SMTP", return_value=server):
            with pytest.raises(EmailError):
                EmailService(email_config).send_email("reader@example.com", "Subject", "body")

        server.quit.assert_called_once()

    def test_unreachable_server_maps_to_email_error(self, email_config: EmailConfig) -> None:
        with patch("thought_reviewer.email.service.smtplib.SMTP", side_effect=OSError("connection refused")):
            with pytest.raises(EmailError):
                EmailService(email_config).send_email("reader@example.com", "Subject", "body")

    def test_build_message_validates_inputs(self, email_config: EmailConfig) -> None:
        service = EmailService(email_config)

        with pytest.raises(ValueError):
            service.build_message("nobody", "", "Subject", "body")
        with pytest.raises(ValueError):
            service.build_message("reader@example.com", "", " ", "body")
        with pytest.raises(ValueError):
            service.build_message("reader@example.com", "", "Subject", " ", " ")

    def test_connection_check_reports_failure(self, email_config: EmailConfig) -> None:
        with patch("thought_reviewer.email.service.smtplib.SMTP", side_effect=OSError("down")):
            assert EmailService(email_config).test_connection() is False

    def test_gmail_config_requires_gmail_address(self) -> None:
        config = EmailService.create_gmail_config("someone@gmail.com", "app-password")
        assert config.smtp_server == "smtp.gmail.com"
        assert config.smtp_port == 587

        with pytest.raises(ValueError):
            EmailService.create_gmail_config("someone@example.com", "app-password")
