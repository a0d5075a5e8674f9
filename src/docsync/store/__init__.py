"""SQLite document store used as one endpoint of a sync.

Public exports
--------------
``DocumentStore``, ``DocumentEntry``, ``WriteResult``, ``WriteStatus``,
``sign_document``, ``sync_stores``, ``ReplicationResult``.
"""

from .models import DocumentEntry, WriteResult, WriteStatus, sign_document
from .replicate import ReplicationResult, sync_stores
from .storage import DocumentStore

__all__ = [
    "DocumentEntry",
    "DocumentStore",
    "ReplicationResult",
    "WriteResult",
    "WriteStatus",
    "sign_document",
    "sync_stores",
]
