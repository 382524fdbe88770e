"""
Audit trail recording.
"""

import logging

from ..models import AuditEntry

logger = logging.getLogger(__name__)


class AuditService:
    """Append entries to a document's audit trail."""

    @staticmethod
    def record_event(document, user, action, ip_address=None):
        """
        Record one action against a document.

        Args:
            document: Document instance
            user: acting User, or None for external signers
            action: str, human-readable description
            ip_address: str or None, origin address of the request

        Returns:
            AuditEntry
        """
        entry = AuditEntry.objects.create(
            document=document,
            user=user,
            action=action,
            ip_address=ip_address or None,
        )
        logger.info("Audit: document %s: %s", document.pk, action)
        return entry

    @staticmethod
    def trail(document):
        return document.audit_entries.select_related('user').order_by('timestamp', 'id')
