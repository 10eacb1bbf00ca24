"""
WSGI entry point for the studio billing service.

Exposes ``application`` for WSGI servers such as gunicorn.
"""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'studio_billing.settings')

application = get_wsgi_application()
