"""Wine Tracker - personal cellar catalog

Regions, producers and the wines tasted from them, served from the same
storage, error handling and HTTP stack as the office library:
- Data models and request schemas (models.py, schemas.py)
- Database layer (store.py)
- Service (tracker.py)
- HTTP routes (routes.py)
"""
