"""
Template-based transactional email.

EmailService renders a plain text and an HTML body from
``notifications/email/<template_name>.txt`` / ``.html`` and sends them as one
multipart message through Django's configured EMAIL_BACKEND.

Delivery errors (SMTP failures, refused connections) propagate: the email
jobs that call this service are retried by the email queue policy.

Configuration:
    Email settings are read from Django settings:
    - EMAIL_BACKEND
    - EMAIL_HOST, EMAIL_PORT, EMAIL_USE_TLS
    - DEFAULT_FROM_EMAIL

Usage:
    from notifications.email import EmailService

    EmailService().send(
        to=user.email,
        subject="Payment Receipt - Intro to Python",
        template_name="payment_receipt",
        context={"user": user, "payment": payment, "course": course},
    )
"""

from __future__ import annotations

import logging
from typing import Any

from django.conf import settings
from django.core.mail import EmailMultiAlternatives
from django.template.loader import render_to_string

logger = logging.getLogger(__name__)

TEMPLATE_DIR = "notifications/email"


class EmailService:
    """Renders and sends multipart template emails."""

    def __init__(self, from_email: str | None = None, connection=None):
        self.from_email = from_email
        self.connection = connection

    def render(self, template_name: str, context: dict[str, Any]) -> tuple[str, str]:
        """Return the (text, html) bodies for ``template_name``."""
        text_content = render_to_string(f"{TEMPLATE_DIR}/{template_name}.txt", context)
        html_content = render_to_string(f"{TEMPLATE_DIR}/{template_name}.html", context)
        return text_content, html_content

    def send(
        self,
        to: str | list[str],
        subject: str,
        template_name: str,
        context: dict[str, Any],
        reply_to: str | None = None,
    ) -> int:
        """
        Send email using a template.

        Args:
            to: Recipient email address(es)
            subject: Email subject line
            template_name: Template name without directory or extension
            context: Template context variables
            reply_to: Reply-to address

        Returns:
            Number of messages sent (1)

        Raises:
            TemplateDoesNotExist: If either template is missing
            SMTPException / OSError: If delivery fails
        """
        if isinstance(to, str):
            to = [to]

        text_content, html_content = self.render(template_name, context)

        email = EmailMultiAlternatives(
            subject=subject,
            body=text_content,
            from_email=self.from_email or settings.DEFAULT_FROM_EMAIL,
            to=to,
            reply_to=[reply_to] if reply_to else None,
            connection=self.connection,
        )
        email.attach_alternative(html_content, "text/html")

        sent = email.send(fail_silently=False)
        logger.info(
            f"Email sent: {subject}",
            extra={"template": template_name, "recipients": len(to)},
        )
        return sent
