"""
Health Connect

A FastAPI-based telehealth community backend: user accounts with
role-based access control, appointment booking between patients and
health professionals, and a moderated community stories feed.
"""

__version__ = "1.0.0"
