"""Database models, session and repository."""
