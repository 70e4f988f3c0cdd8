"""Database layer: Redis draft sessions and PostgreSQL saved applications."""
