"""
wsgi.py — Entry point for gunicorn and the Flask CLI.

    gunicorn "rosary.wsgi:app"
    flask --app rosary.wsgi run-scheduler
"""

import os

from rosary.app import create_app

app = create_app(os.getenv("FLASK_ENV", "development"))
