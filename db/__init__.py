"""Database package for the lead synchronization core.

The engine and session factory live in db.connection and are created on
import, so import that module only where a live database is wanted:

    from db.connection import get_db
"""
