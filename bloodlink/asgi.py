"""
ASGI config for the bloodlink project.

It exposes the ASGI callable as a module-level variable named ``application``.
"""

import os

from dotenv import load_dotenv
from django.core.asgi import get_asgi_application

load_dotenv(override=False)

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'bloodlink.settings')

application = get_asgi_application()
