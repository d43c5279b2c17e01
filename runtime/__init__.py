"""
Runtime package for the upload history store.

This package contains:
- Models (Pydantic HistoryItem record + validation gate)
- Stores (XML history log, backup policy)
"""
