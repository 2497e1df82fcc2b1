"""Persistence: SQLAlchemy models and repositories, in-memory backend, providers."""
