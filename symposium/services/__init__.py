"""
Adapters for the blob store and the notifier.
"""

from symposium.services.notifier import (
    LoggingNotifier,
    NotificationKind,
    Notifier,
    SmtpNotifier,
    build_notifier,
)
from symposium.services.storage import (
    BlobStore,
    LocalBlobStore,
    S3BlobStore,
    StoredArtifact,
    build_blob_store,
)

__all__ = [
    "BlobStore",
    "LocalBlobStore",
    "S3BlobStore",
    "StoredArtifact",
    "build_blob_store",
    "Notifier",
    "NotificationKind",
    "SmtpNotifier",
    "LoggingNotifier",
    "build_notifier",
]
