from django.contrib import admin
from .models import Document, SignatureField, ExternalSignatureRequest, AuditEntry


@admin.register(Document)
class DocumentAdmin(admin.ModelAdmin):
    list_display = ('original_name', 'owner', 'page_count', 'size', 'uploaded_at')
    search_fields = ('original_name', 'owner__username', 'owner__email')
    list_filter = ('uploaded_at',)
    readonly_fields = ('size', 'page_count', 'signed_pdf_sha256', 'uploaded_at')
    fieldsets = (
        ('Document', {
            'fields': ('owner', 'original_name', 'file', 'size', 'page_count')
        }),
        ('Signed Artifact', {
            'fields': ('signed_file', 'signed_pdf_sha256')
        }),
        ('Metadata', {
            'fields': ('uploaded_at',),
            'classes': ('collapse',)
        }),
    )


@admin.register(SignatureField)
class SignatureFieldAdmin(admin.ModelAdmin):
    list_display = ('field_type', 'document', 'user', 'page', 'x', 'y', 'created_at')
    list_filter = ('field_type', 'created_at')
    search_fields = ('content', 'document__original_name')
    fieldsets = (
        ('Field Info', {
            'fields': ('document', 'user', 'field_type', 'content')
        }),
        ('Position', {
            'fields': ('page', 'x', 'y')
        }),
        ('Appearance', {
            'fields': ('font_style', 'font_size', 'color')
        }),
    )


@admin.register(ExternalSignatureRequest)
class ExternalSignatureRequestAdmin(admin.ModelAdmin):
    list_display = ('token_short', 'document', 'signer_email', 'status', 'expires_at', 'signed_at')
    list_filter = ('status', 'created_at')
    search_fields = ('token', 'signer_email', 'signer_name', 'document__original_name')
    readonly_fields = ('token', 'signed_at', 'created_at', 'updated_at')
    fieldsets = (
        ('Request Info', {
            'fields': ('document', 'requester', 'signer_name', 'signer_email', 'token')
        }),
        ('Lifecycle', {
            'fields': ('status', 'expires_at', 'signed_at', 'rejection_reason')
        }),
        ('Fields', {
            'fields': ('fields',),
            'classes': ('collapse',)
        }),
        ('Metadata', {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )

    def token_short(self, obj):
        """Display shortened token."""
        return f"{obj.token[:16]}..."
    token_short.short_description = 'Token'


@admin.register(AuditEntry)
class AuditEntryAdmin(admin.ModelAdmin):
    list_display = ('action', 'document', 'user', 'ip_address', 'timestamp')
    list_filter = ('timestamp',)
    search_fields = ('action', 'document__original_name', 'ip_address')
    readonly_fields = ('document', 'user', 'action', 'ip_address', 'timestamp')

    def has_change_permission(self, request, obj=None):
        return False
