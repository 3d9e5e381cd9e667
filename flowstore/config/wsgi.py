"""
WSGI config for the flowstore project.
"""
import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'flowstore.config.settings')

application = get_wsgi_application()
