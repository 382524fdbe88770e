"""
Invitation emails for external signers.

Dispatch failures are reported to the caller as ``False`` and logged; they
never undo the lifecycle change that preceded them.
"""

import logging
import smtplib

from django.conf import settings
from django.core.mail import send_mail
from django.template.loader import render_to_string
from django.utils.html import strip_tags

logger = logging.getLogger(__name__)


class NotificationService:
    """Service for signer notifications."""

    @staticmethod
    def build_signing_link(token):
        base_url = settings.FRONTEND_BASE_URL.rstrip('/')
        return f'{base_url}/external-sign/{token}'

    @staticmethod
    def send_invite(email, link, document_name, requester_name,
                    signer_name='', reminder=False):
        """
        Email a signing link.

        Args:
            email: str, signer address
            link: str, tokenized signing URL
            document_name: str, original filename shown to the signer
            requester_name: str, who asked for the signature
            signer_name: str, greeting name
            reminder: bool, True when re-sending an existing invitation

        Returns:
            bool: True if the message was handed to the mail backend
        """
        if reminder:
            subject = f'Document Signature Request - {document_name}'
        else:
            subject = f'Signature Request from {requester_name} via Docu-Signer'

        html_body = render_to_string('documents/emails/signature_invite.html', {
            'signer_name': signer_name,
            'requester_name': requester_name,
            'document_name': document_name,
            'link': link,
            'ttl_days': settings.EXTERNAL_SIGNATURE_TTL_DAYS,
            'reminder': reminder,
        })

        try:
            send_mail(
                subject,
                strip_tags(html_body),
                settings.DEFAULT_FROM_EMAIL,
                [email],
                html_message=html_body,
            )
        except (smtplib.SMTPException, OSError) as e:
            logger.warning("Invite email to %s failed: %s", email, e)
            return False

        logger.info("Invite email sent to %s", email)
        return True


# Singleton instance
_notification_service = None


def get_notification_service() -> NotificationService:
    """Get singleton instance of notification service."""
    global _notification_service
    if _notification_service is None:
        _notification_service = NotificationService()
    return _notification_service
