"""Core package for shared types and constants."""

from .types import FirestoreDocument

__all__ = ["FirestoreDocument"]
