"""
WSGI entry point.

    gunicorn --bind 0.0.0.0:8000 --workers 4 'worktrack.wsgi:application'
"""

import os

from .app import create_app

application = create_app(os.environ.get('FLASK_CONFIG', 'production'))
