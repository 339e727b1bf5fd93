"""
Document ingestion and retrieval core.

Turns uploaded documents into embedded, query-able chunks:
extract -> chunk -> embed -> store, tracked by a durable job state machine.
"""

__version__ = "0.1.0"
