"""
WSGI config for the hms project.

It exposes the WSGI callable as a module-level variable named ``application``.
Realtime queue updates need the ASGI entrypoint in :mod:`hms.asgi`; this
callable serves plain HTTP only.
"""
import os

from django.core.wsgi import get_wsgi_application  # type: ignore

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'hms.settings')

application = get_wsgi_application()
