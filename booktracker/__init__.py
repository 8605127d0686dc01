"""Personal Book Library - core package

Modules:
- Data models (book.py)
- Key-value store backends (database.py)
- Persistence adapter (storage.py)
- Library store (library.py)
- Search and pagination views (views.py)
- CLI interface (main.py) and HTTP API (api.py)
"""
