import smtplib
from datetime import timedelta
from unittest import mock

import pytest
from django.core import mail
from django.utils import timezone

from documents.exceptions import Conflict, Expired, Forbidden, InvalidInput, NotFound
from documents.models import ExternalSignatureRequest
from documents.services import ExternalSignatureService

pytestmark = pytest.mark.django_db


@pytest.fixture
def invite(document, owner):
    return ExternalSignatureService.create_invite(
        document.pk, owner, 'signer@example.com', 'Sam Signer',
        fields=[{'field_type': 'SIGNATURE', 'content': 'Sam', 'x': 10, 'y': 10, 'page': 1}],
    )


def stale(request):
    ExternalSignatureRequest.objects.filter(pk=request.pk).update(
        expires_at=timezone.now() - timedelta(seconds=1)
    )
    request.refresh_from_db()
    return request


class TestCreateInvite:

    def test_creates_sent_request_and_emails_link(self, invite, settings):
        request = invite.request
        request.refresh_from_db()

        assert invite.email_sent
        assert request.status == ExternalSignatureRequest.STATUS_SENT
        assert invite.link == f'http://signer.test/external-sign/{request.token}'
        assert len(mail.outbox) == 1
        assert mail.outbox[0].to == ['signer@example.com']
        assert invite.link in mail.outbox[0].body

    def test_expiry_is_seven_days_out(self, invite):
        delta = invite.request.expires_at - timezone.now()

        assert timedelta(days=6, hours=23) < delta <= timedelta(days=7)

    def test_tokens_are_url_safe_and_long(self, invite):
        token = invite.request.token

        assert len(token) >= 43
        assert all(ch.isalnum() or ch in '-_' for ch in token)

    def test_live_invite_for_same_signer_is_reissued(self, invite, document, owner):
        old_token = invite.request.token

        again = ExternalSignatureService.create_invite(
            document.pk, owner, 'SIGNER@example.com', 'Sam Signer'
        )

        assert again.request.pk == invite.request.pk
        assert again.request.token != old_token
        assert ExternalSignatureRequest.objects.count() == 1
        with pytest.raises(NotFound):
            ExternalSignatureService.get_active_request(old_token)

    def test_other_signer_gets_own_request(self, invite, document, owner):
        other = ExternalSignatureService.create_invite(
            document.pk, owner, 'second@example.com', 'Second'
        )

        assert other.request.pk != invite.request.pk

    def test_email_failure_leaves_request_pending(self, document, owner):
        with mock.patch(
            'documents.services.notification_service.send_mail',
            side_effect=smtplib.SMTPException('relay down'),
        ):
            result = ExternalSignatureService.create_invite(
                document.pk, owner, 'signer@example.com', 'Sam'
            )

        result.request.refresh_from_db()
        assert not result.email_sent
        assert result.request.status == ExternalSignatureRequest.STATUS_PENDING

    def test_only_owner_can_invite(self, document, other_user):
        with pytest.raises(Forbidden):
            ExternalSignatureService.create_invite(document.pk, other_user, 'a@b.com', 'A')

    def test_unknown_document(self, owner):
        with pytest.raises(NotFound):
            ExternalSignatureService.create_invite(9999, owner, 'a@b.com', 'A')


class TestResendInvite:

    def test_resend_rotates_token_and_extends_expiry(self, invite, owner):
        request = stale(invite.request)
        old_token = request.token

        result = ExternalSignatureService.resend_invite(request.pk, owner)

        request.refresh_from_db()
        assert request.token != old_token
        assert request.expires_at > timezone.now() + timedelta(days=6)
        assert request.status == ExternalSignatureRequest.STATUS_SENT
        assert result.email_sent
        assert mail.outbox[-1].subject.startswith('Document Signature Request')

    def test_resend_revives_expired_request(self, invite, owner):
        request = stale(invite.request)
        with pytest.raises(Expired):
            ExternalSignatureService.get_active_request(request.token)

        result = ExternalSignatureService.resend_invite(request.pk, owner)

        assert ExternalSignatureService.get_active_request(result.request.token).pk == request.pk

    @pytest.mark.parametrize('status', ['signed', 'rejected'])
    def test_terminal_request_cannot_be_resent(self, invite, owner, status):
        ExternalSignatureRequest.objects.filter(pk=invite.request.pk).update(status=status)

        with pytest.raises(Conflict):
            ExternalSignatureService.resend_invite(invite.request.pk, owner)

    def test_other_user_cannot_resend(self, invite, other_user):
        with pytest.raises(Forbidden):
            ExternalSignatureService.resend_invite(invite.request.pk, other_user)

    def test_unknown_request(self, owner):
        with pytest.raises(NotFound):
            ExternalSignatureService.resend_invite(424242, owner)

    def test_email_failure_is_reported_not_raised(self, invite, owner):
        with mock.patch(
            'documents.services.notification_service.send_mail',
            side_effect=OSError('connection refused'),
        ):
            result = ExternalSignatureService.resend_invite(invite.request.pk, owner)

        assert not result.email_sent
        assert result.request.status == ExternalSignatureRequest.STATUS_PENDING


class TestActiveRequest:

    def test_fetch_for_signing_changes_nothing(self, invite):
        before = ExternalSignatureRequest.objects.get(pk=invite.request.pk)

        first = ExternalSignatureService.fetch_for_signing(before.token)
        second = ExternalSignatureService.fetch_for_signing(before.token)

        after = ExternalSignatureRequest.objects.get(pk=invite.request.pk)
        assert first.pk == second.pk == before.pk
        assert (after.status, after.expires_at, after.token) == (
            before.status, before.expires_at, before.token
        )
        assert after.updated_at == before.updated_at

    def test_unknown_token(self):
        with pytest.raises(NotFound):
            ExternalSignatureService.get_active_request('no-such-token')

    def test_empty_token(self):
        with pytest.raises(NotFound):
            ExternalSignatureService.get_active_request('')

    def test_stale_request_is_expired_lazily(self, invite):
        request = stale(invite.request)

        with pytest.raises(Expired):
            ExternalSignatureService.get_active_request(request.token)

        request.refresh_from_db()
        assert request.status == ExternalSignatureRequest.STATUS_EXPIRED

    def test_expired_request_stays_expired(self, invite):
        request = stale(invite.request)
        for _ in range(2):
            with pytest.raises(Expired):
                ExternalSignatureService.get_active_request(request.token)

    def test_request_valid_up_to_expiry_instant(self, invite):
        now = timezone.now()
        request = invite.request
        request.expires_at = now

        assert not ExternalSignatureService.expire_if_stale(request, now)
        assert ExternalSignatureService.expire_if_stale(request, now + timedelta(microseconds=1))

    @pytest.mark.parametrize('status', ['signed', 'rejected'])
    def test_terminal_request_is_conflict_even_after_expiry(self, invite, status):
        request = stale(invite.request)
        ExternalSignatureRequest.objects.filter(pk=request.pk).update(status=status)

        with pytest.raises(Conflict):
            ExternalSignatureService.get_active_request(request.token)

        request.refresh_from_db()
        assert request.status == status


class TestReject:

    def test_reject_stores_reason(self, invite):
        ExternalSignatureService.submit_reject(invite.request.token, '  Wrong amount  ')

        request = ExternalSignatureRequest.objects.get(pk=invite.request.pk)
        assert request.status == ExternalSignatureRequest.STATUS_REJECTED
        assert request.rejection_reason == 'Wrong amount'

    @pytest.mark.parametrize('reason', ['', '   ', None])
    def test_reason_is_required(self, invite, reason):
        with pytest.raises(InvalidInput):
            ExternalSignatureService.submit_reject(invite.request.token, reason)

        invite.request.refresh_from_db()
        assert invite.request.status == ExternalSignatureRequest.STATUS_SENT

    def test_reject_twice_is_conflict(self, invite):
        ExternalSignatureService.submit_reject(invite.request.token, 'No')

        with pytest.raises(Conflict):
            ExternalSignatureService.submit_reject(invite.request.token, 'Still no')

    def test_reject_expired_request(self, invite):
        request = stale(invite.request)

        with pytest.raises(Expired):
            ExternalSignatureService.submit_reject(request.token, 'Too late')


class TestTransition:

    def test_loser_of_a_race_gets_conflict(self, invite):
        request = ExternalSignatureService.get_active_request(invite.request.token)
        # another worker closes the request between lookup and update
        ExternalSignatureRequest.objects.filter(pk=request.pk).update(
            status=ExternalSignatureRequest.STATUS_REJECTED
        )

        with pytest.raises(Conflict):
            ExternalSignatureService.transition(request, ExternalSignatureRequest.STATUS_SIGNED)

    def test_rotated_token_is_not_found(self, invite, owner):
        request = ExternalSignatureService.get_active_request(invite.request.token)
        ExternalSignatureService.resend_invite(request.pk, owner)

        with pytest.raises(NotFound):
            ExternalSignatureService.transition(request, ExternalSignatureRequest.STATUS_SIGNED)

    def test_list_for_requester(self, invite, owner, other_user):
        assert list(ExternalSignatureService.list_for_requester(owner)) == [invite.request]
        assert not ExternalSignatureService.list_for_requester(other_user).exists()
