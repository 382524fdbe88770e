"""
Document business logic service layer.

Responsibilities:
- Look up documents with ownership checks
- Register uploaded PDFs (with their audit entry)
- Verify signed-artifact provenance
"""

import logging

from ..exceptions import NotFound, Forbidden
from ..models import Document
from .audit_service import AuditService
from .hashing import HashingService

logger = logging.getLogger(__name__)


class DocumentService:
    """Service for document lookups and bookkeeping."""

    @staticmethod
    def get_document(document_id):
        """
        Fetch a document by primary key.

        Raises:
            NotFound: no such document
        """
        try:
            return Document.objects.select_related('owner').get(pk=document_id)
        except (Document.DoesNotExist, ValueError, TypeError):
            raise NotFound('Document not found')

    @staticmethod
    def get_owned_document(document_id, user):
        """
        Fetch a document the user owns.

        Raises:
            NotFound: no such document
            Forbidden: document belongs to someone else
        """
        document = DocumentService.get_document(document_id)
        if not document.belongs_to(user):
            raise Forbidden('User not authorized to access this document')
        return document

    @staticmethod
    def create_document(owner, uploaded_file, ip_address=None):
        """
        Store an uploaded PDF and record the upload in the audit trail.

        Args:
            owner: User uploading the file
            uploaded_file: Django UploadedFile
            ip_address: str or None

        Returns:
            Document
        """
        document = Document(
            owner=owner,
            file=uploaded_file,
            original_name=uploaded_file.name,
        )
        document.save()
        AuditService.record_event(document, owner, 'Uploaded document', ip_address)
        logger.info("Document %s uploaded by user %s", document.pk, owner.pk)
        return document

    @staticmethod
    def verify_signed_artifact(document):
        """
        Check the stored signed PDF still matches its recorded hash.

        Returns:
            bool or None: None when the document has no signed artifact
        """
        if not document.signed_file or not document.signed_pdf_sha256:
            return None
        try:
            with document.signed_file.open('rb') as f:
                current = HashingService.compute_file_sha256(f)
        except OSError as e:
            logger.warning("Signed artifact of document %s unreadable: %s", document.pk, e)
            return False
        return current == document.signed_pdf_sha256


# Singleton instance
_document_service = None


def get_document_service() -> DocumentService:
    """Get singleton instance of document service."""
    global _document_service
    if _document_service is None:
        _document_service = DocumentService()
    return _document_service
