"""Subway network backend: line topology management and shortest-path queries."""

__version__ = "0.1.0"
