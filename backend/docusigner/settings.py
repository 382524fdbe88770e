"""
Django settings for docusigner project.

Every deployment-specific value is read from the environment so the same
module serves development, tests and production.
"""

import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent


def env_bool(name, default=False):
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


def env_list(name, default=''):
    return [item.strip() for item in os.environ.get(name, default).split(',') if item.strip()]


SECRET_KEY = os.environ.get('DOCSIGNER_SECRET_KEY', 'django-insecure-docusigner-dev-key')

DEBUG = env_bool('DOCSIGNER_DEBUG', True)

ALLOWED_HOSTS = env_list('DOCSIGNER_ALLOWED_HOSTS', 'localhost,127.0.0.1')


INSTALLED_APPS = [
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',
    'rest_framework',
    'documents',
]

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
]

ROOT_URLCONF = 'docusigner.urls'

TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [],
        'APP_DIRS': True,
        'OPTIONS': {
            'context_processors': [
                'django.template.context_processors.request',
                'django.contrib.auth.context_processors.auth',
                'django.contrib.messages.context_processors.messages',
            ],
        },
    },
]

WSGI_APPLICATION = 'docusigner.wsgi.application'


DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': os.environ.get('DOCSIGNER_DB_PATH', str(BASE_DIR / 'db.sqlite3')),
    }
}

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

AUTH_PASSWORD_VALIDATORS = [
    {'NAME': 'django.contrib.auth.password_validation.UserAttributeSimilarityValidator'},
    {'NAME': 'django.contrib.auth.password_validation.MinimumLengthValidator'},
]

LANGUAGE_CODE = 'en-us'
TIME_ZONE = 'UTC'
USE_I18N = True
USE_TZ = True

STATIC_URL = 'static/'

MEDIA_URL = '/uploads/'
MEDIA_ROOT = os.environ.get('DOCSIGNER_MEDIA_ROOT', str(BASE_DIR / 'uploads'))

# Maximum accepted upload size for source PDFs (bytes)
DATA_UPLOAD_MAX_MEMORY_SIZE = 10 * 1024 * 1024


REST_FRAMEWORK = {
    'DEFAULT_AUTHENTICATION_CLASSES': [
        'rest_framework.authentication.SessionAuthentication',
        'rest_framework.authentication.BasicAuthentication',
    ],
    'DEFAULT_PERMISSION_CLASSES': [
        'rest_framework.permissions.IsAuthenticated',
    ],
    'EXCEPTION_HANDLER': 'documents.exceptions.signing_exception_handler',
}


# ----------------------------
# Signing
# ----------------------------

# Link base used in invitation emails: {FRONTEND_BASE_URL}/external-sign/{token}
FRONTEND_BASE_URL = os.environ.get('DOCSIGNER_FRONTEND_URL', 'http://localhost:3000')

# Directory holding the script TrueType fonts (DancingScript, Pacifico, ...)
SIGNATURE_FONT_DIR = os.environ.get(
    'DOCSIGNER_FONT_DIR', str(BASE_DIR / 'static' / 'fonts')
)

EXTERNAL_SIGNATURE_TTL_DAYS = int(os.environ.get('DOCSIGNER_INVITE_TTL_DAYS', '7'))

DEFAULT_FIELD_FONT_SIZE = 18


# ----------------------------
# Email
# ----------------------------

EMAIL_BACKEND = os.environ.get(
    'DOCSIGNER_EMAIL_BACKEND', 'django.core.mail.backends.console.EmailBackend'
)
EMAIL_HOST = os.environ.get('DOCSIGNER_EMAIL_HOST', 'smtp.gmail.com')
EMAIL_PORT = int(os.environ.get('DOCSIGNER_EMAIL_PORT', '587'))
EMAIL_HOST_USER = os.environ.get('DOCSIGNER_EMAIL_USER', '')
EMAIL_HOST_PASSWORD = os.environ.get('DOCSIGNER_EMAIL_PASSWORD', '')
EMAIL_USE_TLS = env_bool('DOCSIGNER_EMAIL_USE_TLS', True)
EMAIL_TIMEOUT = 10
DEFAULT_FROM_EMAIL = os.environ.get(
    'DOCSIGNER_FROM_EMAIL', f'Docu-Signer <{EMAIL_HOST_USER or "no-reply@localhost"}>'
)


# ----------------------------
# Logging
# ----------------------------

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'verbose': {
            'format': '{asctime} {levelname} {name}: {message}',
            'style': '{',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'verbose',
        },
    },
    'root': {
        'handlers': ['console'],
        'level': 'WARNING',
    },
    'loggers': {
        'documents': {
            'handlers': ['console'],
            'level': os.environ.get('DOCSIGNER_LOG_LEVEL', 'INFO'),
            'propagate': False,
        },
    },
}
