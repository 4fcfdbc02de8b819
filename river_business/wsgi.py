"""
WSGI config for the river_business project.

It exposes the WSGI callable as a module-level variable named ``application``.

For more information on this file, see
https://docs.djangoproject.com/en/5.0/howto/deployment/wsgi/
"""

import logging
import os

from django.conf import settings
from django.core.wsgi import get_wsgi_application
from whitenoise import WhiteNoise

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'river_business.settings')

logger = logging.getLogger(__name__)

django_application = get_wsgi_application()

# Statements cannot be e-mailed without the SMTP relay key.
logger.info("BREVO_API_KEY configured=%s", bool(getattr(settings, "EMAIL_HOST_PASSWORD", "")))

# Wrap the default Django WSGI application with WhiteNoise so static assets are
# always served by the process itself.
application = WhiteNoise(django_application)

static_root = getattr(settings, 'STATIC_ROOT', None)
if static_root:
    application.add_files(static_root, prefix='static/')
