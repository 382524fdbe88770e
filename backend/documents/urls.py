"""
backend/documents/urls.py

"""

# ----------------------------
# Django imports
# ----------------------------
from django.urls import path

# ----------------------------
# Local view imports
# ----------------------------
from .views import (
    DocumentViewSet,
    ExternalSignatureViewSet,
    PublicExternalSignViewSet,
)

# App namespace for reverse() lookups
app_name = 'documents'

# ----------------------------
# Owner routes (authenticated)
# ----------------------------
urlpatterns = [
    path('documents/', DocumentViewSet.as_view({
        'post': 'create'
    }), name='document-upload'),

    path('documents/<int:pk>/', DocumentViewSet.as_view({
        'get': 'retrieve'
    }), name='document-detail'),

    path('documents/<int:pk>/sign/', DocumentViewSet.as_view({
        'post': 'sign'
    }), name='document-sign'),
    # Stamp fields onto the document and write the -signed sibling.

    path('documents/<int:pk>/audit/', DocumentViewSet.as_view({
        'get': 'audit'
    }), name='document-audit'),

    # External signature management
    path('external-signatures/', ExternalSignatureViewSet.as_view({
        'get': 'list',
        'post': 'create'
    }), name='external-signature-list'),

    path('external-signatures/<int:pk>/resend/', ExternalSignatureViewSet.as_view({
        'post': 'resend'
    }), name='external-signature-resend'),
    # New token, new expiry, new email.
]

# ----------------------------
# Public signing routes (token is the credential)
# ----------------------------
public_urls = [
    path('public/external-sign/<str:token>/', PublicExternalSignViewSet.as_view({
        'get': 'retrieve'
    }), name='public-external-sign'),

    path('public/external-sign/<str:token>/sign/', PublicExternalSignViewSet.as_view({
        'post': 'sign'
    }), name='public-external-sign-submit'),

    path('public/external-sign/<str:token>/reject/', PublicExternalSignViewSet.as_view({
        'post': 'reject'
    }), name='public-external-sign-reject'),
]

urlpatterns += public_urls
