import os
import logging
from datetime import timedelta

from django.conf import settings
from django.db import models
from django.core.validators import MinValueValidator
from django.utils import timezone
from PyPDF2 import PdfReader
from PyPDF2.errors import PdfReadError

logger = logging.getLogger(__name__)


def document_upload_path(instance, filename):
    """
    Generate upload path for source PDFs.
    Signed artifacts are written next to the original, so everything for one
    owner lives under a single directory.
    """
    return f'documents/{instance.owner_id}/{filename}'


class Document(models.Model):
    """
    Document represents one uploaded PDF and its latest signed artifact.
    """
    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='documents'
    )
    file = models.FileField(upload_to=document_upload_path)
    original_name = models.CharField(max_length=255)
    size = models.PositiveIntegerField(default=0)
    page_count = models.PositiveIntegerField(default=1, validators=[MinValueValidator(1)])
    signed_file = models.FileField(
        upload_to=document_upload_path,
        null=True,
        blank=True,
        help_text="Sibling PDF with all stamped fields burned in"
    )
    signed_pdf_sha256 = models.CharField(
        max_length=64,
        null=True,
        blank=True,
        help_text="SHA256 hash of the latest signed PDF"
    )
    uploaded_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-uploaded_at']

    def __str__(self):
        return self.original_name

    def save(self, *args, **kwargs):
        """Record size and page count of a freshly uploaded file."""
        if self.file and not self.pk:
            self.size = self.file.size or 0
            try:
                reader = PdfReader(self.file)
                self.page_count = len(reader.pages)
            except PdfReadError as e:
                logger.warning("Could not read page count of %s: %s", self.original_name, e)
                self.page_count = 1
            self.file.seek(0)
        super().save(*args, **kwargs)

    @property
    def filename(self):
        """Storage filename (basename of the stored path)."""
        return os.path.basename(self.file.name) if self.file else ''

    def belongs_to(self, user):
        return user is not None and self.owner_id == getattr(user, 'pk', user)


class SignatureField(models.Model):
    """
    A field stamped onto a document by its owner.
    Kept as signing history; the PDF itself is the source of truth.
    """
    FIELD_TYPES = [
        ('SIGNATURE', 'Signature'),
        ('INITIAL', 'Initial'),
        ('TEXT', 'Text'),
        ('DATE', 'Date'),
    ]

    document = models.ForeignKey(
        Document,
        on_delete=models.CASCADE,
        related_name='fields'
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        related_name='signature_fields'
    )
    field_type = models.CharField(max_length=20, choices=FIELD_TYPES)
    content = models.TextField()
    font_style = models.CharField(max_length=255, blank=True, null=True)
    font_size = models.FloatField(default=18)
    color = models.JSONField(default=dict, blank=True)
    x = models.FloatField(validators=[MinValueValidator(0.0)])
    y = models.FloatField(validators=[MinValueValidator(0.0)])
    page = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['created_at', 'id']

    def __str__(self):
        return f"{self.field_type} on page {self.page} of {self.document}"


class ExternalSignatureRequest(models.Model):
    """
    Invitation for a non-account holder to sign one document.
    The token is the only credential the signer ever presents.
    """
    STATUS_PENDING = 'pending'
    STATUS_SENT = 'sent'
    STATUS_SIGNED = 'signed'
    STATUS_EXPIRED = 'expired'
    STATUS_REJECTED = 'rejected'

    STATUS_CHOICES = [
        (STATUS_PENDING, 'Pending'),
        (STATUS_SENT, 'Sent'),
        (STATUS_SIGNED, 'Signed'),
        (STATUS_EXPIRED, 'Expired'),
        (STATUS_REJECTED, 'Rejected'),
    ]

    ACTIVE_STATUSES = (STATUS_PENDING, STATUS_SENT)
    TERMINAL_STATUSES = (STATUS_SIGNED, STATUS_REJECTED)

    document = models.ForeignKey(
        Document,
        on_delete=models.CASCADE,
        related_name='external_requests'
    )
    requester = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='external_requests'
    )
    signer_email = models.EmailField()
    signer_name = models.CharField(max_length=255)
    token = models.CharField(max_length=64, unique=True, db_index=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING)
    rejection_reason = models.TextField(blank=True, null=True)
    fields = models.JSONField(
        default=list,
        blank=True,
        help_text="Pre-specified field placements offered to the signer"
    )
    expires_at = models.DateTimeField(db_index=True)
    signed_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['document', 'signer_email', 'status'], name='extreq_doc_email_status_idx'),
        ]

    def __str__(self):
        return f"Request {self.token[:8]}... for {self.signer_email} ({self.status})"

    @staticmethod
    def default_expiry(now=None):
        now = now or timezone.now()
        return now + timedelta(days=settings.EXTERNAL_SIGNATURE_TTL_DAYS)

    def is_expired(self, now=None):
        from .services.token_utils import is_token_expired

        return is_token_expired(self.expires_at, now)

    @property
    def is_terminal(self):
        return self.status in self.TERMINAL_STATUSES

    @property
    def effective_status(self):
        """Status as of now, without writing the lazy expiry transition."""
        if self.status in self.ACTIVE_STATUSES and self.is_expired():
            return self.STATUS_EXPIRED
        return self.status

    def generate_new_token(self):
        """Replace token and expiry and reset to pending. Caller saves."""
        from .services.token_utils import generate_unique_token

        self.token = generate_unique_token()
        self.expires_at = self.default_expiry()
        self.status = self.STATUS_PENDING
        return self


class AuditEntry(models.Model):
    """
    Append-only record of actions taken on a document.
    External signers have no user; their email is part of the action text.
    """
    document = models.ForeignKey(
        Document,
        on_delete=models.CASCADE,
        related_name='audit_entries'
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='audit_entries'
    )
    action = models.CharField(max_length=255)
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    timestamp = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['timestamp', 'id']
        verbose_name_plural = 'audit entries'

    def __str__(self):
        return f"{self.action} on {self.document} at {self.timestamp}"
