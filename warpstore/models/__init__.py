"""SQLAlchemy table definitions and enums."""
