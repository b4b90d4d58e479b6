"""Repositories for users, 2FA challenges and the refresh-token ledger.

Two backends implement the protocols in warden.storage.base:
- sql → SQLAlchemy async (PostgreSQL in production, SQLite in tests)
- memory → dicts in the current process, for tests and local tinkering
"""
