"""Tickoff — todo lists behind a cookie-authenticated REST API.

The backend (FastAPI + async SQLAlchemy) and a terminal client that
talks to it.
"""

__version__ = "0.1.0"
