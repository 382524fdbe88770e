import shutil

import pytest
from django.contrib.auth import get_user_model
from django.core.files.uploadedfile import SimpleUploadedFile
from rest_framework.test import APIClient

from documents.models import Document
from documents.services import fonts
from documents.services.fonts import FontRegistry, SCRIPT_FONT_FILES
from documents.tests.utils import VERA_TTF, make_pdf


@pytest.fixture
def pdf_bytes():
    return make_pdf(pages=2)


@pytest.fixture(autouse=True)
def media_root(settings, tmp_path):
    settings.MEDIA_ROOT = str(tmp_path / 'media')
    settings.EMAIL_BACKEND = 'django.core.mail.backends.locmem.EmailBackend'
    settings.FRONTEND_BASE_URL = 'http://signer.test'
    return settings.MEDIA_ROOT


@pytest.fixture
def font_dir(tmp_path):
    """A font directory where every script font is a copy of Vera."""
    directory = tmp_path / 'fonts'
    directory.mkdir()
    for filename in SCRIPT_FONT_FILES.values():
        shutil.copy(VERA_TTF, directory / filename)
    return directory


@pytest.fixture
def font_registry(font_dir, monkeypatch):
    registry = FontRegistry(font_dir=font_dir)
    monkeypatch.setattr(fonts, '_font_registry', registry)
    return registry


@pytest.fixture
def empty_font_registry(tmp_path, monkeypatch):
    registry = FontRegistry(font_dir=tmp_path / 'no-fonts')
    monkeypatch.setattr(fonts, '_font_registry', registry)
    return registry


@pytest.fixture
def owner(db):
    return get_user_model().objects.create_user(
        username='owner', email='owner@example.com', password='secret-pass',
        first_name='Olive', last_name='Owner'
    )


@pytest.fixture
def other_user(db):
    return get_user_model().objects.create_user(
        username='intruder', email='intruder@example.com', password='secret-pass'
    )


@pytest.fixture
def document(owner, pdf_bytes):
    upload = SimpleUploadedFile('contract.pdf', pdf_bytes, content_type='application/pdf')
    document = Document(owner=owner, file=upload, original_name='contract.pdf')
    document.save()
    return document


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def owner_client(api_client, owner):
    api_client.force_authenticate(user=owner)
    return api_client
