"""Core infrastructure: configuration, logging, database and cache."""
