import math

from django.conf import settings
from rest_framework import serializers

from .models import Document, SignatureField, ExternalSignatureRequest, AuditEntry
from .services import DocumentService
from .services.page_stamper import FIELD_TYPES


class FieldPlacementSerializer(serializers.Serializer):
    """
    One field placement as sent by the viewer.

    Accepts the client's camelCase keys and produces snake_case data that
    FieldPlacement.from_dict understands; serializing a stored snake_case
    placement gives the camelCase shape back. Color is passed through
    untouched and malformed colors are rendered black rather than rejected.
    """
    type = serializers.CharField(source='field_type', required=False, default='SIGNATURE')
    content = serializers.CharField()
    fontStyle = serializers.CharField(
        source='font_style', required=False, allow_null=True, allow_blank=True, default=None
    )
    fontSize = serializers.FloatField(
        source='font_size', required=False, allow_null=True,
        default=settings.DEFAULT_FIELD_FONT_SIZE
    )
    color = serializers.JSONField(required=False, allow_null=True, default=None)
    x = serializers.FloatField(min_value=0)
    y = serializers.FloatField(min_value=0)
    page = serializers.IntegerField(min_value=1)

    def validate_type(self, value):
        value = value.upper()
        if value not in FIELD_TYPES:
            raise serializers.ValidationError(f'Must be one of {", ".join(FIELD_TYPES)}')
        return value

    def _finite(self, value):
        if not math.isfinite(value):
            raise serializers.ValidationError('Must be a finite number')
        return value

    def validate_x(self, value):
        return self._finite(value)

    def validate_y(self, value):
        return self._finite(value)

    def validate_fontSize(self, value):
        """Unusable sizes fall back to the default size."""
        if value is None or not math.isfinite(value) or value <= 0:
            return settings.DEFAULT_FIELD_FONT_SIZE
        return value


class FieldPlacementListSerializer(serializers.Serializer):
    """Payload of both signing endpoints."""
    fields = FieldPlacementSerializer(many=True, allow_empty=False)


class SignatureFieldSerializer(serializers.ModelSerializer):
    """Serializer for stamped-field history."""

    class Meta:
        model = SignatureField
        fields = [
            'id', 'field_type', 'content', 'font_style', 'font_size', 'color',
            'x', 'y', 'page', 'created_at'
        ]
        read_only_fields = fields


class DocumentUploadSerializer(serializers.Serializer):
    """Serializer for uploading a source PDF."""
    file = serializers.FileField()

    def validate_file(self, value):
        """Only PDFs can be stamped."""
        head = value.read(5)
        value.seek(0)
        if head != b'%PDF-':
            raise serializers.ValidationError('Only PDF files are accepted')
        return value


class DocumentSerializer(serializers.ModelSerializer):
    """Serializer for Document detail."""
    file_url = serializers.SerializerMethodField()
    signed_file_url = serializers.SerializerMethodField()
    signed_pdf_verified = serializers.SerializerMethodField()

    class Meta:
        model = Document
        fields = [
            'id', 'filename', 'original_name', 'size', 'page_count', 'uploaded_at',
            'file_url', 'signed_file_url', 'signed_pdf_sha256', 'signed_pdf_verified'
        ]
        read_only_fields = fields

    def _absolute(self, file_field):
        if not file_field:
            return None
        request = self.context.get('request')
        if request:
            return request.build_absolute_uri(file_field.url)
        return file_field.url

    def get_file_url(self, obj):
        return self._absolute(obj.file)

    def get_signed_file_url(self, obj):
        """Return signed file URL if available."""
        return self._absolute(obj.signed_file)

    def get_signed_pdf_verified(self, obj):
        return DocumentService.verify_signed_artifact(obj)


class AuditEntrySerializer(serializers.ModelSerializer):
    """Serializer for audit trail entries."""
    user_name = serializers.SerializerMethodField()
    user_email = serializers.SerializerMethodField()

    class Meta:
        model = AuditEntry
        fields = ['id', 'action', 'ip_address', 'timestamp', 'user', 'user_name', 'user_email']
        read_only_fields = fields

    def get_user_name(self, obj):
        if obj.user is None:
            return None
        return obj.user.get_full_name() or obj.user.get_username()

    def get_user_email(self, obj):
        return obj.user.email if obj.user else None


class ExternalSignatureCreateSerializer(serializers.Serializer):
    """Serializer for creating an external signature request."""
    documentId = serializers.IntegerField(source='document_id')
    signerEmail = serializers.EmailField(source='signer_email')
    signerName = serializers.CharField(source='signer_name', max_length=255)
    fields = FieldPlacementSerializer(many=True, required=False)


class ExternalSignatureRequestSerializer(serializers.ModelSerializer):
    """Requester-side view of an invitation."""
    document_name = serializers.CharField(source='document.original_name', read_only=True)
    effective_status = serializers.CharField(read_only=True)

    class Meta:
        model = ExternalSignatureRequest
        fields = [
            'id', 'document', 'document_name', 'signer_email', 'signer_name',
            'status', 'effective_status', 'rejection_reason', 'fields',
            'expires_at', 'signed_at', 'created_at'
        ]
        read_only_fields = fields


class InviteResultSerializer(serializers.Serializer):
    """Response of invite creation and resend."""
    id = serializers.IntegerField(source='request.id')
    token = serializers.CharField(source='request.token')
    status = serializers.CharField(source='request.status')
    expires_at = serializers.DateTimeField(source='request.expires_at')
    signer_email = serializers.EmailField(source='request.signer_email')
    signer_name = serializers.CharField(source='request.signer_name')
    tokenized_url = serializers.CharField(source='link')
    email_sent = serializers.BooleanField()


class PublicSigningDocumentSerializer(serializers.Serializer):
    """What an external signer sees when opening their link."""
    document = serializers.SerializerMethodField()
    fields = FieldPlacementSerializer(many=True, read_only=True)
    signer_info = serializers.SerializerMethodField()
    requester = serializers.SerializerMethodField()
    expires_at = serializers.DateTimeField()

    def get_document(self, obj):
        document = obj.document
        url = document.file.url
        request = self.context.get('request')
        return {
            'id': document.id,
            'original_name': document.original_name,
            'page_count': document.page_count,
            'file_url': request.build_absolute_uri(url) if request else url,
        }

    def get_signer_info(self, obj):
        return {'email': obj.signer_email, 'name': obj.signer_name}

    def get_requester(self, obj):
        requester = obj.requester
        return {
            'name': requester.get_full_name() or requester.get_username(),
            'email': requester.email,
        }


class RejectPayloadSerializer(serializers.Serializer):
    """Rejection reason; emptiness is judged by the lifecycle service."""
    reason = serializers.CharField(required=False, allow_blank=True, allow_null=True, default='')
