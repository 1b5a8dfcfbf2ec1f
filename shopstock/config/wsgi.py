"""
WSGI config for the shopstock project.
"""
import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'shopstock.config.settings')

application = get_wsgi_application()
