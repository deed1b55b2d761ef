"""Digester adapter that emails a claimed batch."""

from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence

from loguru import logger

from ..database.models import Note
from ..review.adapters import AdapterError
from .service import EmailError, EmailService
from .templates import DigestContext, DigestTemplate, RenderedDigest, TemplateError


class DeliveryError(AdapterError):
    """Raised when the digest could not be rendered or sent."""
    pass


class EmailDigester:
    """Sends one digest email per call, including when the batch is empty."""

    def __init__(
        self,
        email_service: EmailService,
        recipient_email: str,
        recipient_name: str = "",
        template: Optional[DigestTemplate] = None
    ) -> None:
        if "@" not in recipient_email:
            raise ValueError("Recipient email must be a valid email address")

        self.email_service: EmailService = email_service
        self.recipient_email: str = recipient_email
        self.recipient_name: str = recipient_name
        self.template: DigestTemplate = template or DigestTemplate()

    def render(self, batch: Sequence[Note], analysis: Optional[str] = None) -> RenderedDigest:
        """Render the digest without sending it."""
        context: DigestContext = DigestContext(
            notes=tuple(batch),
            recipient_name=self.recipient_name,
            send_timestamp=datetime.now(),
            analysis=analysis
        )
        return self.template.render(context)

    def deliver(self, batch: Sequence[Note], analysis: Optional[str] = None) -> None:
        """Render and email the digest for ``batch``.

        Raises:
            DeliveryError: If rendering or sending fails.
        """
        try:
            digest: RenderedDigest = self.render(batch, analysis)
            self.email_service.send_email(
                to_email=self.recipient_email,
                subject=digest.subject,
                text_content=digest.text_content,
                html_content=digest.html_content,
                to_name=self.recipient_name
            )
        except (EmailError, TemplateError, ValueError) as e:
            logger.error(f"Digest delivery to {self.recipient_email} failed: {e}")
            raise DeliveryError(f"Digest delivery failed: {e}") from e

        logger.info(f"Digest with {len(batch)} thoughts delivered to {self.recipient_email}")
