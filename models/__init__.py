"""
Data models for PrintQueueWeb.

This module contains dataclasses for:
- DocumentSettings / JobDescriptor: the print queue and its per-document options
- UploadUnit / UploadPlan: the atomic units of one upload session
- UploadProgress / UploadStatus: progress snapshots and session status

Snapshots handed between threads (units, plans, progress) are frozen.
"""

from .print_job import DocumentSettings, JobDescriptor, DEFAULT_SETTINGS, normalize_settings
from .upload import SessionState, UploadUnit, UploadPlan, UploadProgress, UploadStatus

__all__ = [
    # Queue models
    "DocumentSettings",
    "JobDescriptor",
    "DEFAULT_SETTINGS",
    "normalize_settings",
    # Upload models
    "SessionState",
    "UploadUnit",
    "UploadPlan",
    "UploadProgress",
    "UploadStatus",
]
