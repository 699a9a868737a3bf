"""
WSGI config for the course portal.

WSGI serves plain HTTP only (admin, health, the Paystack webhook). The
realtime event stream at ws/events/ needs the ASGI entry point in
config.asgi.

For more information on this file, see:
https://docs.djangoproject.com/en/5.2/howto/deployment/wsgi/
"""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

application = get_wsgi_application()
