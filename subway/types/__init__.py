"""Shared value records and collaborator contracts."""
