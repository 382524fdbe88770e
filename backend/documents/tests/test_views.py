from datetime import timedelta
from unittest import mock

import pytest
from django.core.files.uploadedfile import SimpleUploadedFile
from django.urls import reverse
from django.utils import timezone

from documents.models import AuditEntry, Document, ExternalSignatureRequest
from documents.services import AuditService, ExternalSignatureService
from documents.tests.utils import make_pdf
from documents.views import get_client_ip

pytestmark = pytest.mark.django_db


def sign_payload(**overrides):
    field = {
        'type': 'signature',
        'content': 'Olive Owner',
        'fontStyle': "'Pacifico', cursive",
        'fontSize': 20,
        'color': {'r': 0.1, 'g': 0.2, 'b': 0.3},
        'x': 50,
        'y': 60,
        'page': 1,
    }
    field.update(overrides)
    return {'fields': [field]}


@pytest.fixture
def invite(document, owner):
    return ExternalSignatureService.create_invite(
        document.pk, owner, 'signer@example.com', 'Sam Signer'
    )


def test_client_ip_prefers_first_forwarded_hop(rf):
    request = rf.get('/', HTTP_X_FORWARDED_FOR='198.51.100.7, 10.0.0.1', REMOTE_ADDR='10.0.0.2')
    assert get_client_ip(request) == '198.51.100.7'

    request = rf.get('/', REMOTE_ADDR='10.0.0.2')
    assert get_client_ip(request) == '10.0.0.2'


class TestDocumentEndpoints:

    def test_upload(self, owner_client, owner, pdf_bytes):
        upload = SimpleUploadedFile('lease.pdf', pdf_bytes, content_type='application/pdf')

        response = owner_client.post(
            reverse('documents:document-upload'), {'file': upload}, format='multipart'
        )

        assert response.status_code == 201
        assert response.data['original_name'] == 'lease.pdf'
        assert response.data['page_count'] == 2
        assert response.data['signed_file_url'] is None
        document = Document.objects.get(pk=response.data['id'])
        assert document.owner == owner
        assert AuditEntry.objects.filter(document=document, action='Uploaded document').exists()

    def test_upload_rejects_non_pdf(self, owner_client):
        upload = SimpleUploadedFile('notes.txt', b'hello world', content_type='text/plain')

        response = owner_client.post(
            reverse('documents:document-upload'), {'file': upload}, format='multipart'
        )

        assert response.status_code == 400

    def test_anonymous_is_rejected(self, api_client, document):
        response = api_client.get(reverse('documents:document-detail', args=[document.pk]))

        assert response.status_code in (401, 403)

    def test_detail_for_other_user_is_forbidden(self, api_client, other_user, document):
        api_client.force_authenticate(user=other_user)

        response = api_client.get(reverse('documents:document-detail', args=[document.pk]))

        assert response.status_code == 403
        assert response.data['code'] == 'forbidden'

    def test_sign(self, owner_client, document, font_registry):
        response = owner_client.post(
            reverse('documents:document-sign', args=[document.pk]), sign_payload(), format='json'
        )

        assert response.status_code == 200
        assert response.data['signedPath'].endswith('contract-signed.pdf')

        detail = owner_client.get(reverse('documents:document-detail', args=[document.pk]))
        assert detail.data['signed_pdf_verified'] is True
        assert detail.data['signed_pdf_sha256'] == response.data['signed_pdf_sha256']

    def test_sign_validation_errors(self, owner_client, document):
        url = reverse('documents:document-sign', args=[document.pk])

        assert owner_client.post(url, {'fields': []}, format='json').status_code == 400
        assert owner_client.post(url, sign_payload(type='stamp'), format='json').status_code == 400
        assert owner_client.post(url, sign_payload(x=-5), format='json').status_code == 400
        assert owner_client.post(url, sign_payload(content=''), format='json').status_code == 400

    @pytest.mark.parametrize('size', [0, -4, None])
    def test_unusable_font_size_falls_back_to_default(self, owner_client, document, settings,
                                                      font_registry, size):
        response = owner_client.post(
            reverse('documents:document-sign', args=[document.pk]),
            sign_payload(fontSize=size), format='json'
        )

        assert response.status_code == 200
        row = document.fields.get()
        assert row.font_size == settings.DEFAULT_FIELD_FONT_SIZE

    def test_sign_page_out_of_range(self, owner_client, document, font_registry):
        response = owner_client.post(
            reverse('documents:document-sign', args=[document.pk]),
            sign_payload(page=7), format='json'
        )

        assert response.status_code == 422
        assert response.data['code'] == 'render_failure'

    def test_sign_missing_document(self, owner_client):
        response = owner_client.post(
            reverse('documents:document-sign', args=[999]), sign_payload(), format='json'
        )

        assert response.status_code == 404

    def test_audit_trail_in_order(self, owner_client, document, owner, font_registry):
        AuditService.record_event(document, owner, 'Uploaded document', '127.0.0.1')
        owner_client.post(
            reverse('documents:document-sign', args=[document.pk]), sign_payload(), format='json'
        )

        response = owner_client.get(reverse('documents:document-audit', args=[document.pk]))

        assert response.status_code == 200
        assert [e['action'] for e in response.data] == ['Uploaded document', 'Signed by owner']
        assert response.data[1]['user_email'] == 'owner@example.com'


class TestExternalSignatureEndpoints:

    def test_create_invite(self, owner_client, document):
        response = owner_client.post(reverse('documents:external-signature-list'), {
            'documentId': document.pk,
            'signerEmail': 'signer@example.com',
            'signerName': 'Sam Signer',
        }, format='json')

        assert response.status_code == 201
        assert response.data['email_sent'] is True
        assert response.data['status'] == 'sent'
        request = ExternalSignatureRequest.objects.get(pk=response.data['id'])
        assert response.data['tokenized_url'].endswith(f'/external-sign/{request.token}')

    def test_create_invite_with_fields(self, owner_client, document):
        response = owner_client.post(reverse('documents:external-signature-list'), {
            'documentId': document.pk,
            'signerEmail': 'signer@example.com',
            'signerName': 'Sam Signer',
            'fields': sign_payload()['fields'],
        }, format='json')

        request = ExternalSignatureRequest.objects.get(pk=response.data['id'])
        assert request.fields[0]['field_type'] == 'SIGNATURE'
        assert request.fields[0]['font_style'] == "'Pacifico', cursive"

    def test_create_invite_bad_email(self, owner_client, document):
        response = owner_client.post(reverse('documents:external-signature-list'), {
            'documentId': document.pk, 'signerEmail': 'nope', 'signerName': 'X',
        }, format='json')

        assert response.status_code == 400

    def test_list(self, owner_client, invite):
        response = owner_client.get(reverse('documents:external-signature-list'))

        assert response.status_code == 200
        assert [r['id'] for r in response.data] == [invite.request.pk]
        assert response.data[0]['effective_status'] == 'sent'

    def test_list_reports_stale_as_expired(self, owner_client, invite):
        ExternalSignatureRequest.objects.filter(pk=invite.request.pk).update(
            expires_at=timezone.now() - timedelta(hours=1)
        )

        response = owner_client.get(reverse('documents:external-signature-list'))

        assert response.data[0]['status'] == 'sent'
        assert response.data[0]['effective_status'] == 'expired'

    def test_resend(self, owner_client, invite):
        old_token = invite.request.token

        response = owner_client.post(
            reverse('documents:external-signature-resend', args=[invite.request.pk])
        )

        assert response.status_code == 200
        assert response.data['token'] != old_token
        assert response.data['message'] == 'Email sent successfully'

    def test_resend_signed_is_conflict(self, owner_client, invite):
        ExternalSignatureRequest.objects.filter(pk=invite.request.pk).update(status='signed')

        response = owner_client.post(
            reverse('documents:external-signature-resend', args=[invite.request.pk])
        )

        assert response.status_code == 409


class TestPublicEndpoints:

    def test_fetch_document_for_signing(self, api_client, invite):
        response = api_client.get(
            reverse('documents:public-external-sign', args=[invite.request.token])
        )

        assert response.status_code == 200
        assert response.data['document']['original_name'] == 'contract.pdf'
        assert response.data['signer_info'] == {'email': 'signer@example.com', 'name': 'Sam Signer'}
        assert response.data['requester']['name'] == 'Olive Owner'

    def test_invite_fields_round_trip_to_signing(self, owner_client, api_client, document,
                                                 font_registry):
        created = owner_client.post(reverse('documents:external-signature-list'), {
            'documentId': document.pk,
            'signerEmail': 'signer@example.com',
            'signerName': 'Sam Signer',
            'fields': sign_payload(fontStyle='Pacifico', fontSize=30, content='Sam')['fields'],
        }, format='json')
        token = created.data['token']

        fetched = api_client.get(reverse('documents:public-external-sign', args=[token]))

        offered = fetched.data['fields']
        assert offered[0]['type'] == 'SIGNATURE'
        assert offered[0]['fontStyle'] == 'Pacifico'
        assert offered[0]['fontSize'] == 30
        assert 'font_style' not in offered[0]

        with mock.patch(
            'documents.services.signing_process.stamp_document', return_value=make_pdf()
        ) as stamp:
            signed = api_client.post(
                reverse('documents:public-external-sign-submit', args=[token]),
                {'fields': offered}, format='json'
            )

        assert signed.status_code == 200
        placement = stamp.call_args[0][1][0]
        assert (placement.font_style, placement.font_size) == ('Pacifico', 30)

    def test_unknown_token(self, api_client):
        response = api_client.get(reverse('documents:public-external-sign', args=['missing']))

        assert response.status_code == 404
        assert response.data['code'] == 'not_found'

    def test_expired_token(self, api_client, invite):
        ExternalSignatureRequest.objects.filter(pk=invite.request.pk).update(
            expires_at=timezone.now() - timedelta(days=1)
        )

        response = api_client.get(
            reverse('documents:public-external-sign', args=[invite.request.token])
        )

        assert response.status_code == 410

    def test_sign_then_sign_again(self, api_client, invite, font_registry):
        url = reverse('documents:public-external-sign-submit', args=[invite.request.token])

        first = api_client.post(url, sign_payload(content='Sam Signer'), format='json',
                                HTTP_X_FORWARDED_FOR='203.0.113.5')
        second = api_client.post(url, sign_payload(content='Sam Signer'), format='json')

        assert first.status_code == 200
        assert 'signedAt' in first.data
        assert second.status_code == 409
        entry = AuditEntry.objects.get(action__startswith='Signed by external')
        assert entry.ip_address == '203.0.113.5'

    def test_reject(self, api_client, invite):
        url = reverse('documents:public-external-sign-reject', args=[invite.request.token])

        assert api_client.post(url, {'reason': ''}, format='json').status_code == 400
        assert api_client.post(url, {'reason': 'Wrong name'}, format='json').status_code == 200
        assert api_client.post(url, {'reason': 'Again'}, format='json').status_code == 409

        request = ExternalSignatureRequest.objects.get(pk=invite.request.pk)
        assert request.status == 'rejected'
        assert request.rejection_reason == 'Wrong name'
