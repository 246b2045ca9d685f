"""
FastAPI REST API for the Reading Tracker.

This module provides:
- Registration, login and bearer token sessions
- Owner-scoped book, progress and note endpoints
- External book lookup by title or ISBN
"""
