"""
WSGI entry point; also used by Flask-Migrate / Alembic.

Usage:
    gunicorn wsgi:app
    flask --app wsgi db upgrade
"""

from flowform import create_app

app = create_app()
