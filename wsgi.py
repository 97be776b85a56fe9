"""
WSGI / Flask-Migrate entry point.

Usage:
    flask --app wsgi db upgrade
    flask --app wsgi clear-reference-cache
    gunicorn wsgi:app
"""

from intern_tracker import create_app

app = create_app()
