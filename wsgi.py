"""
WSGI entry point for the Renovation Back Office API.

Usage:
    flask --app wsgi run
    flask --app wsgi db upgrade    # Flask-Migrate / Alembic
"""

from app import create_app

app = create_app()
