"""
WSGI config for the retailhub project.
"""
import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'retailhub.config.settings')

application = get_wsgi_application()
