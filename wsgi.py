"""
Flask-Migrate / Alembic entry point.

Usage:
    flask db upgrade
    flask seed-ceo
    gunicorn wsgi:app
"""

from portal import create_app

app = create_app()
