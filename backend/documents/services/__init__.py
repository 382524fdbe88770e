from .hashing import HashingService, get_hashing_service
from .token_utils import generate_secure_token, generate_unique_token, is_token_expired
from .fonts import FontRegistry, FontProgram, get_font_registry
from .glyph_layout import PositionedGlyph, layout, text_width
from .page_stamper import FieldPlacement, GlyphDraw, normalize_color, plan_field, stamp_document
from .storage import ArtifactStorage, get_artifact_storage, signed_artifact_name
from .audit_service import AuditService
from .notification_service import NotificationService, get_notification_service
from .document_service import DocumentService, get_document_service
from .external_signature_service import ExternalSignatureService, get_external_signature_service
from .signing_process import SigningProcessService, get_signing_process_service

__all__ = [
    'HashingService',
    'get_hashing_service',
    'generate_secure_token',
    'generate_unique_token',
    'is_token_expired',
    'FontRegistry',
    'FontProgram',
    'get_font_registry',
    'PositionedGlyph',
    'layout',
    'text_width',
    'FieldPlacement',
    'GlyphDraw',
    'normalize_color',
    'plan_field',
    'stamp_document',
    'ArtifactStorage',
    'get_artifact_storage',
    'signed_artifact_name',
    'AuditService',
    'NotificationService',
    'get_notification_service',
    'DocumentService',
    'get_document_service',
    'ExternalSignatureService',
    'get_external_signature_service',
    'SigningProcessService',
    'get_signing_process_service',
]
