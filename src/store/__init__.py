"""
Store module: entity-keyed repository for all per-entity state.
"""

from .repository import EntityRecord, EntityStore

__all__ = ["EntityRecord", "EntityStore"]
