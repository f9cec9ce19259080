"""Core infrastructure: auth, permissions, errors, logging, database."""
