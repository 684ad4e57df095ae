"""Office Library - Core Application Package

This package contains the lending backend modules:
- HTTP API endpoints (api.py)
- Library facade wiring the components together (library.py)
- Author directory, catalog and lending services (authors.py, catalog.py, lending.py)
- CLI interface (main.py)
- Data models and request schemas (models.py, schemas.py)
- Database layer (database.py, store.py)
"""

__version__ = "1.0.0"
