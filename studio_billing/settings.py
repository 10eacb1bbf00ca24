"""
Django settings for studio_billing project.

Values are read from the environment with development defaults.
"""

import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent

SECRET_KEY = os.environ.get('DJANGO_SECRET_KEY') or 'dev-secret-key-change-in-production'

DEBUG = os.environ.get('DJANGO_DEBUG', 'true').lower() == 'true'

ALLOWED_HOSTS = os.environ.get('DJANGO_ALLOWED_HOSTS', 'localhost,127.0.0.1').split(',')


INSTALLED_APPS = [
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',
    'rest_framework',
    'scheduling',
    'invoicing',
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

ROOT_URLCONF = 'studio_billing.urls'

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

WSGI_APPLICATION = 'studio_billing.wsgi.application'


DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': os.environ.get('DATABASE_PATH') or str(BASE_DIR / 'studio_billing.sqlite3'),
        # Transactions take the write lock at BEGIN, so concurrent writers
        # queue up instead of failing with "database is locked".
        'OPTIONS': {
            'transaction_mode': 'IMMEDIATE',
            'timeout': int(os.environ.get('DATABASE_TIMEOUT', 20)),
        },
        'TEST': {
            'NAME': os.environ.get('DATABASE_TEST_PATH') or str(BASE_DIR / 'test_studio_billing.sqlite3'),
        },
    }
}

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'


# All session times are naive local wall-clock times.
LANGUAGE_CODE = 'en-us'
TIME_ZONE = os.environ.get('TIME_ZONE', 'Europe/Berlin')
USE_I18N = True
USE_TZ = False

STATIC_URL = 'static/'


REST_FRAMEWORK = {
    'EXCEPTION_HANDLER': 'scheduling.handlers.domain_exception_handler',
    'UNAUTHENTICATED_USER': None,
    'DEFAULT_AUTHENTICATION_CLASSES': [],
    'DEFAULT_PERMISSION_CLASSES': [
        'rest_framework.permissions.AllowAny',
    ],
}


# Scheduling & invoicing
SCHEDULE_ADVANCE_DAYS = int(os.environ.get('SCHEDULE_ADVANCE_DAYS', 7))

# 'counter': persisted per-year counter, never reuses a number.
# 'count': number = invoices already issued in the year + 1.
INVOICE_NUMBERING = os.environ.get('INVOICE_NUMBERING', 'counter')

INVOICE_PAYMENT_TERM_DAYS = int(os.environ.get('INVOICE_PAYMENT_TERM_DAYS', 30))


LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO').upper()

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'standard': {
            'format': '%(asctime)s %(levelname)s %(name)s: %(message)s',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'standard',
        },
    },
    'root': {
        'handlers': ['console'],
        'level': 'WARNING',
    },
    'loggers': {
        'scheduling': {
            'handlers': ['console'],
            'level': LOG_LEVEL,
            'propagate': False,
        },
        'invoicing': {
            'handlers': ['console'],
            'level': LOG_LEVEL,
            'propagate': False,
        },
    },
}
