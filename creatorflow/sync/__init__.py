"""
Data synchronization layer.

The fetch adapter is the read path (owner-scoped snapshots); the local store
holds the session's in-memory state and writes through optimistically.
"""

from .fetch import FetchSnapshot, RemoteFetchAdapter
from .mutations import Mutation, MutationAction, MutationStatus, RollbackPolicy
from .store import LocalStore, StoreState

__all__ = [
    "FetchSnapshot",
    "RemoteFetchAdapter",
    "Mutation",
    "MutationAction",
    "MutationStatus",
    "RollbackPolicy",
    "LocalStore",
    "StoreState",
]
