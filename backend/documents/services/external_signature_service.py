"""
External signature request lifecycle.

States: pending -> sent -> signed | rejected | expired.

Responsibilities:
- Issue and re-issue invitation tokens
- Apply expiry lazily whenever a token is presented
- Guard every status change with a conditional UPDATE so that two
  concurrent submissions for one token cannot both succeed

There is no background sweep; a stale invite only becomes ``expired`` the
next time someone presents its token.
"""

import logging
from dataclasses import dataclass

from django.db import transaction
from django.utils import timezone

from ..exceptions import NotFound, Forbidden, Expired, Conflict, InvalidInput
from ..models import ExternalSignatureRequest
from .document_service import DocumentService
from .notification_service import NotificationService, get_notification_service
from .token_utils import generate_unique_token

logger = logging.getLogger(__name__)

ACTIVE = ExternalSignatureRequest.ACTIVE_STATUSES


@dataclass
class InviteResult:
    request: ExternalSignatureRequest
    link: str
    email_sent: bool


def _already_processed(request):
    return Conflict(f'Document has already been {request.status}.')


class ExternalSignatureService:
    """Service for the external signing invitation state machine."""

    @staticmethod
    def create_invite(document_id, requester, signer_email, signer_name, fields=None):
        """
        Invite a signer, reusing any live invitation for the same signer.

        An existing pending/sent request for this document and email gets a
        fresh token instead of a duplicate row.

        Args:
            document_id: Document primary key
            requester: User who owns the document
            signer_email: str
            signer_name: str
            fields: list of placement dicts offered to the signer, or None

        Returns:
            InviteResult

        Raises:
            NotFound, Forbidden: document lookup failed
        """
        document = DocumentService.get_owned_document(document_id, requester)
        signer_email = signer_email.strip()

        with transaction.atomic():
            request = ExternalSignatureRequest.objects.select_for_update().filter(
                document=document,
                signer_email__iexact=signer_email,
                status__in=ACTIVE,
            ).order_by('-created_at').first()

            if request is not None:
                request.generate_new_token()
                if fields is not None:
                    request.fields = fields
                request.save()
                logger.info("Reissued external request %s for %s", request.pk, signer_email)
            else:
                request = ExternalSignatureRequest.objects.create(
                    document=document,
                    requester=requester,
                    signer_email=signer_email,
                    signer_name=signer_name,
                    token=generate_unique_token(),
                    expires_at=ExternalSignatureRequest.default_expiry(),
                    fields=fields or [],
                )
                logger.info("Created external request %s for %s", request.pk, signer_email)

        link, email_sent = ExternalSignatureService._dispatch(request, reminder=False)
        return InviteResult(request=request, link=link, email_sent=email_sent)

    @staticmethod
    def resend_invite(request_id, requester):
        """
        Issue a new token and expiry for an invitation and email it again.

        Raises:
            NotFound: no such request
            Forbidden: request belongs to another requester
            Conflict: request was already signed or rejected
        """
        with transaction.atomic():
            try:
                request = ExternalSignatureRequest.objects.select_for_update().get(pk=request_id)
            except (ExternalSignatureRequest.DoesNotExist, ValueError, TypeError):
                raise NotFound('External signature request not found')

            if request.requester_id != requester.pk:
                raise Forbidden('User not authorized to manage this request')
            if request.is_terminal:
                raise _already_processed(request)

            request.generate_new_token()
            request.save()
            logger.info("Resending external request %s", request.pk)

        link, email_sent = ExternalSignatureService._dispatch(request, reminder=True)
        return InviteResult(request=request, link=link, email_sent=email_sent)

    @staticmethod
    def _dispatch(request, reminder):
        """Email the signing link; mark the request sent on success."""
        link = NotificationService.build_signing_link(request.token)
        requester = request.requester
        requester_name = requester.get_full_name() or requester.get_username()

        email_sent = get_notification_service().send_invite(
            request.signer_email,
            link,
            request.document.original_name,
            requester_name,
            signer_name=request.signer_name,
            reminder=reminder,
        )
        if not email_sent:
            logger.warning(
                "External request %s left %s; invite email not delivered",
                request.pk, request.status
            )
            return link, False

        updated = ExternalSignatureRequest.objects.filter(
            pk=request.pk, token=request.token, status__in=ACTIVE
        ).update(status=ExternalSignatureRequest.STATUS_SENT, updated_at=timezone.now())
        if updated:
            request.status = ExternalSignatureRequest.STATUS_SENT
        return link, True

    @staticmethod
    def expire_if_stale(request, now=None):
        """
        Apply the lazy expiry transition.

        Returns:
            bool: True if the request is expired after the check
        """
        if request.status == ExternalSignatureRequest.STATUS_EXPIRED:
            return True
        if request.status not in ACTIVE or not request.is_expired(now):
            return False

        updated = ExternalSignatureRequest.objects.filter(
            pk=request.pk, status__in=ACTIVE
        ).update(status=ExternalSignatureRequest.STATUS_EXPIRED, updated_at=timezone.now())
        if not updated:
            # someone else moved it first
            request.refresh_from_db(fields=['status'])
            return request.status == ExternalSignatureRequest.STATUS_EXPIRED

        request.status = ExternalSignatureRequest.STATUS_EXPIRED
        logger.info("External request %s expired", request.pk)
        return True

    @staticmethod
    def get_active_request(token):
        """
        Resolve a token to a request that may still be signed or rejected.

        Raises:
            NotFound: unknown token
            Conflict: request already signed or rejected
            Expired: request is (or has just become) expired
        """
        if not token:
            raise NotFound('Invalid or expired signature link')
        try:
            request = ExternalSignatureRequest.objects.select_related(
                'document', 'requester'
            ).get(token=token)
        except ExternalSignatureRequest.DoesNotExist:
            raise NotFound('Invalid or expired signature link')

        if request.is_terminal:
            raise _already_processed(request)
        if ExternalSignatureService.expire_if_stale(request):
            raise Expired()
        if request.is_terminal:
            raise _already_processed(request)
        return request

    @staticmethod
    def fetch_for_signing(token):
        """Return the live request behind a token without changing it."""
        return ExternalSignatureService.get_active_request(token)

    @staticmethod
    def transition(request, new_status, now=None, **changes):
        """
        Move an active request to a terminal status, atomically.

        The UPDATE only matches while the row still carries the same token,
        is still active and is not past its expiry, so exactly one of several
        concurrent callers wins. Losers get the error describing the state
        they lost to.
        """
        now = now or timezone.now()
        updated = ExternalSignatureRequest.objects.filter(
            pk=request.pk,
            token=request.token,
            status__in=ACTIVE,
            expires_at__gte=now,
        ).update(status=new_status, updated_at=now, **changes)

        if updated:
            request.status = new_status
            for name, value in changes.items():
                setattr(request, name, value)
            logger.info("External request %s -> %s", request.pk, new_status)
            return request

        try:
            current = ExternalSignatureRequest.objects.get(pk=request.pk)
        except ExternalSignatureRequest.DoesNotExist:
            raise NotFound('Invalid or expired signature link')
        if current.token != request.token:
            raise NotFound('Invalid or expired signature link')
        if current.is_terminal:
            raise _already_processed(current)
        ExternalSignatureService.expire_if_stale(current, now)
        raise Expired()

    @staticmethod
    def submit_reject(token, reason):
        """
        Decline to sign.

        Raises:
            InvalidInput: missing or blank reason
            NotFound, Expired, Conflict: see get_active_request
        """
        reason = reason.strip() if isinstance(reason, str) else ''
        if not reason:
            raise InvalidInput('A reason for rejection is required.')

        request = ExternalSignatureService.get_active_request(token)
        return ExternalSignatureService.transition(
            request,
            ExternalSignatureRequest.STATUS_REJECTED,
            rejection_reason=reason,
        )

    @staticmethod
    def list_for_requester(requester):
        return ExternalSignatureRequest.objects.filter(
            requester=requester
        ).select_related('document').order_by('-created_at')


# Singleton instance
_external_signature_service = None


def get_external_signature_service() -> ExternalSignatureService:
    """Get singleton instance of external signature service."""
    global _external_signature_service
    if _external_signature_service is None:
        _external_signature_service = ExternalSignatureService()
    return _external_signature_service
