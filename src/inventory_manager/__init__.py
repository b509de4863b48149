"""
AI Inventory Manager.

A small inventory CRUD service (SQLite + Starlette) with an optional
OpenAI-backed endpoint that summarizes free-text stock notes.
"""

__version__ = "0.1.0"

__all__ = [
    "ai",
    "api",
    "config",
    "errors",
    "logging",
    "paths",
    "store",
]
