"""Offline-first task store with a durable operation queue and batched sync."""

__version__ = "0.1.0"
