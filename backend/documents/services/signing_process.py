"""
Signing process service layer.

Responsibilities:
- Stamp a batch of field placements onto a stored PDF
- Persist the signed sibling artifact and its provenance hash
- Record field history and audit entries

Two entry points share one pipeline:
- owner signing, authorised by document ownership
- external signing, authorised by an invitation token

Every field is stamped in memory before anything is written, so a bad page
number or an unreadable PDF leaves no signed file and no state change behind.
"""

import logging
import math

from django.db import transaction
from django.utils import timezone

from ..exceptions import InvalidInput, RenderFailure
from ..models import ExternalSignatureRequest, SignatureField
from .audit_service import AuditService
from .document_service import DocumentService
from .external_signature_service import ExternalSignatureService
from .hashing import HashingService
from .page_stamper import FieldPlacement, stamp_document
from .storage import (
    EXTERNAL_SIGNED_SUFFIX, SIGNED_SUFFIX, get_artifact_storage, signed_artifact_name,
)

logger = logging.getLogger(__name__)


class SigningProcessService:
    """Service for stamping documents and persisting the result."""

    @staticmethod
    def validate_fields(fields):
        """
        Coerce a submitted field list into FieldPlacements.

        Raises:
            InvalidInput: empty or non-list payload
        """
        if not fields or not isinstance(fields, (list, tuple)):
            raise InvalidInput('Signature fields are required.')

        placements = []
        for field in fields:
            if not isinstance(field, FieldPlacement):
                try:
                    field = FieldPlacement.from_dict(field)
                except (KeyError, TypeError, ValueError) as e:
                    raise InvalidInput(f'Malformed field placement: {e}') from e
            if not isinstance(field.content, str) or not field.content.strip():
                raise InvalidInput('Field content is required.')
            if not (math.isfinite(field.x) and math.isfinite(field.y)) or field.x < 0 or field.y < 0:
                raise InvalidInput('Field coordinates must be non-negative numbers.')
            placements.append(field)
        return placements

    @staticmethod
    def render_signed_pdf(document, fields):
        """
        Load the original PDF and stamp every field onto it.

        Returns:
            bytes: the signed PDF (not yet persisted)

        Raises:
            RenderFailure: unreadable source or out-of-range page
        """
        storage = get_artifact_storage()
        source_bytes = storage.read_bytes(document.file.name)
        logger.info("Stamping %d field(s) onto document %s", len(fields), document.pk)
        return stamp_document(source_bytes, fields)

    @staticmethod
    def save_signed_artifact(document, signed_bytes, suffix):
        """
        Write the signed PDF next to the original and point the document at it.

        Returns:
            str: storage name of the artifact

        Raises:
            RenderFailure: the storage backend refused the write
        """
        storage = get_artifact_storage()
        try:
            name = storage.write_bytes(signed_artifact_name(document.file.name, suffix), signed_bytes)
        except OSError as e:
            logger.error("Could not store signed artifact of document %s: %s", document.pk, e)
            raise RenderFailure('The signed document could not be stored.') from e

        document.signed_file.name = name
        document.signed_pdf_sha256 = HashingService.compute_bytes_sha256(signed_bytes)
        document.save(update_fields=['signed_file', 'signed_pdf_sha256'])
        return name

    @staticmethod
    def sign_owned(document_id, user, fields, ip_address=None):
        """
        Stamp fields onto a document on behalf of its owner.

        Args:
            document_id: Document primary key
            user: acting User (must own the document)
            fields: list of FieldPlacement or placement dicts, in draw order
            ip_address: str or None

        Returns:
            dict: {'signed_artifact_path', 'signed_pdf_sha256'}

        Raises:
            NotFound, Forbidden, InvalidInput, RenderFailure
        """
        document = DocumentService.get_owned_document(document_id, user)
        placements = SigningProcessService.validate_fields(fields)

        signed_bytes = SigningProcessService.render_signed_pdf(document, placements)
        storage = get_artifact_storage()

        # a rolled-back signing leaves the previous artifact in place
        with storage.restoring(signed_artifact_name(document.file.name, SIGNED_SUFFIX)), \
                transaction.atomic():
            name = SigningProcessService.save_signed_artifact(
                document, signed_bytes, SIGNED_SUFFIX
            )
            SignatureField.objects.bulk_create([
                SignatureField(
                    document=document,
                    user=user,
                    field_type=placement.field_type,
                    content=placement.content,
                    font_style=placement.font_style,
                    font_size=placement.font_size,
                    color=placement.color if isinstance(placement.color, dict) else {},
                    x=placement.x,
                    y=placement.y,
                    page=placement.page,
                )
                for placement in placements
            ])
            AuditService.record_event(document, user, 'Signed by owner', ip_address)

        logger.info("Document %s signed by owner %s -> %s", document.pk, user.pk, name)
        return {
            'signed_artifact_path': storage.url(name),
            'signed_pdf_sha256': document.signed_pdf_sha256,
        }

    @staticmethod
    def submit_external_sign(token, fields, ip_address=None):
        """
        Stamp fields submitted by an external signer and close the request.

        Args:
            token: str, invitation token
            fields: list of FieldPlacement or placement dicts
            ip_address: str or None

        Returns:
            dict: {'signed_at', 'signed_artifact_path'}

        Raises:
            InvalidInput: empty field list
            NotFound: unknown token
            Expired: invitation past its expiry
            Conflict: invitation already signed or rejected (including by a
                concurrent submission that won the race)
            RenderFailure: stamping or storing the artifact failed
        """
        placements = SigningProcessService.validate_fields(fields)
        request = ExternalSignatureService.get_active_request(token)
        document = request.document

        signed_bytes = SigningProcessService.render_signed_pdf(document, placements)
        storage = get_artifact_storage()

        with storage.restoring(signed_artifact_name(document.file.name, EXTERNAL_SIGNED_SUFFIX)), \
                transaction.atomic():
            signed_at = timezone.now()
            ExternalSignatureService.transition(
                request,
                ExternalSignatureRequest.STATUS_SIGNED,
                now=signed_at,
                signed_at=signed_at,
            )
            name = SigningProcessService.save_signed_artifact(
                document, signed_bytes, EXTERNAL_SIGNED_SUFFIX
            )
            AuditService.record_event(
                document,
                None,
                f'Signed by external user ({request.signer_email})',
                ip_address,
            )

        logger.info("Document %s signed externally by %s", document.pk, request.signer_email)
        return {
            'signed_at': signed_at,
            'signed_artifact_path': storage.url(name),
        }


# Singleton instance
_signing_process_service = None


def get_signing_process_service() -> SigningProcessService:
    """Get singleton instance of signing process service."""
    global _signing_process_service
    if _signing_process_service is None:
        _signing_process_service = SigningProcessService()
    return _signing_process_service
