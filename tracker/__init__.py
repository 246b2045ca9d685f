"""
Reading tracker domain.

This package contains:
- Book, note and progress history records
- Owner-scoped MongoDB repositories
- Identity, book catalog, progress, notes and statistics services
- The error taxonomy rendered by the API
"""

__version__ = "1.0.0"
