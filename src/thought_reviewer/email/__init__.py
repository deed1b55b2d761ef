"""Email package for thought review scheduler."""

from .digester import DeliveryError, EmailDigester
from .service import AuthenticationError, EmailConfig, EmailError, EmailService
from .templates import (
    DigestContext,
    DigestTemplate,
    RenderedDigest,
    TemplateError,
)

__all__ = [
    # Service
    "EmailService",
    "EmailConfig",
    "EmailError",
    "AuthenticationError",
    # Templates
    "DigestContext",
    "DigestTemplate",
    "RenderedDigest",
    "TemplateError",
    # Digester
    "EmailDigester",
    "DeliveryError",
]
