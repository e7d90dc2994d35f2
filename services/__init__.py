"""
Services layer for PrintQueueWeb.

This module contains the business logic services:
- PrintJobQueue / LockedPrintJobQueue: queue state and its cross-thread proxy
- UploadSession: one concurrent upload of a fixed set of units
- UploadService: background upload sessions and their status store
- ShareInbox: producer that stores shared documents and queues them

Thread Model:
    Request threads (Flask)
    └── UploadService session threads (one per submission)
        └── UploadSession worker threads (one per document copy)
"""

from .print_queue import PrintJobQueue, LockedPrintJobQueue
from .upload_orchestrator import UploadSession
from .upload_service import UploadService, UploadStatusStore
from .share_inbox import ShareInbox

__all__ = [
    "PrintJobQueue",
    "LockedPrintJobQueue",
    "UploadSession",
    "UploadService",
    "UploadStatusStore",
    "ShareInbox",
]
