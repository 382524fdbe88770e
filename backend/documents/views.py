from rest_framework import viewsets, status
from rest_framework.decorators import action
from rest_framework.response import Response
from rest_framework.parsers import MultiPartParser, FormParser, JSONParser
from rest_framework.permissions import AllowAny, IsAuthenticated

from .serializers import (
    AuditEntrySerializer, DocumentSerializer, DocumentUploadSerializer,
    ExternalSignatureCreateSerializer, ExternalSignatureRequestSerializer,
    FieldPlacementListSerializer, InviteResultSerializer,
    PublicSigningDocumentSerializer, RejectPayloadSerializer,
)
from .services import (
    AuditService, DocumentService, ExternalSignatureService, SigningProcessService,
)


def get_client_ip(request):
    """Extract client IP from request."""
    x_forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
    if x_forwarded_for:
        ip = x_forwarded_for.split(',')[0].strip()
    else:
        ip = request.META.get('REMOTE_ADDR')
    return ip


class DocumentViewSet(viewsets.ViewSet):
    """Upload, inspect and owner-sign documents."""
    permission_classes = [IsAuthenticated]
    parser_classes = [JSONParser, MultiPartParser, FormParser]

    def create(self, request):
        """Upload a PDF."""
        serializer = DocumentUploadSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        document = DocumentService.create_document(
            request.user, serializer.validated_data['file'], get_client_ip(request)
        )
        return Response(
            DocumentSerializer(document, context={'request': request}).data,
            status=status.HTTP_201_CREATED
        )

    def retrieve(self, request, pk=None):
        document = DocumentService.get_owned_document(pk, request.user)
        return Response(DocumentSerializer(document, context={'request': request}).data)

    @action(detail=True, methods=['post'])
    def sign(self, request, pk=None):
        """Stamp the submitted fields onto the document as its owner."""
        serializer = FieldPlacementListSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = SigningProcessService.sign_owned(
            pk,
            request.user,
            serializer.validated_data['fields'],
            ip_address=get_client_ip(request),
        )
        return Response({
            'message': 'Document signed successfully!',
            'signedPath': result['signed_artifact_path'],
            'signed_pdf_sha256': result['signed_pdf_sha256'],
        })

    @action(detail=True, methods=['get'])
    def audit(self, request, pk=None):
        """Audit trail for a document, oldest first."""
        document = DocumentService.get_owned_document(pk, request.user)
        entries = AuditService.trail(document)
        return Response(AuditEntrySerializer(entries, many=True).data)


class ExternalSignatureViewSet(viewsets.ViewSet):
    """Requester-side management of external signature invitations."""
    permission_classes = [IsAuthenticated]

    def list(self, request):
        requests = ExternalSignatureService.list_for_requester(request.user)
        return Response(ExternalSignatureRequestSerializer(requests, many=True).data)

    def create(self, request):
        """Create (or reissue) an invitation and email it."""
        serializer = ExternalSignatureCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        result = ExternalSignatureService.create_invite(
            data['document_id'],
            request.user,
            data['signer_email'],
            data['signer_name'],
            fields=data.get('fields'),
        )
        response_data = InviteResultSerializer(result).data
        response_data['message'] = 'External signature request created successfully'
        if not result.email_sent:
            response_data['warning'] = 'Invitation email could not be sent; use resend to retry.'
        return Response(response_data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=['post'])
    def resend(self, request, pk=None):
        """Issue a fresh token and send the invitation again."""
        result = ExternalSignatureService.resend_invite(pk, request.user)
        response_data = InviteResultSerializer(result).data
        if result.email_sent:
            response_data['message'] = 'Email sent successfully'
        else:
            response_data['message'] = 'Invitation renewed'
            response_data['warning'] = 'Invitation email could not be sent; use resend to retry.'
        return Response(response_data)


class PublicExternalSignViewSet(viewsets.ViewSet):
    """Token-authorised endpoints for external signers (no account needed)."""
    permission_classes = [AllowAny]
    authentication_classes = []
    parser_classes = [JSONParser]

    def retrieve(self, request, token=None):
        """Document, fields and signer info behind a signing link."""
        signature_request = ExternalSignatureService.fetch_for_signing(token)
        return Response(
            PublicSigningDocumentSerializer(signature_request, context={'request': request}).data
        )

    @action(detail=False, methods=['post'])
    def sign(self, request, token=None):
        serializer = FieldPlacementListSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = SigningProcessService.submit_external_sign(
            token,
            serializer.validated_data['fields'],
            ip_address=get_client_ip(request),
        )
        return Response({
            'message': 'Document signed successfully',
            'signedAt': result['signed_at'],
        })

    @action(detail=False, methods=['post'])
    def reject(self, request, token=None):
        serializer = RejectPayloadSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        ExternalSignatureService.submit_reject(token, serializer.validated_data.get('reason'))
        return Response({'message': 'You have successfully declined to sign.'})
