"""
WSGI config for the D'Flor project.
"""
import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'dflor.settings')

application = get_wsgi_application()
