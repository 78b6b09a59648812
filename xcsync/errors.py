"""
Exception hierarchy for xcsync
"""
from typing import Optional


class XcSyncError(Exception):
    """
    Base exception for xcsync.

    Attributes:
        cause: Optional underlying exception (paramiko, socket, OS) behind this one.
    """

    def __init__(self, message: str, *, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause


class ConnectError(XcSyncError):
    """Connecting or authenticating to the device failed (timeout, refused, rejected)."""


class TransferError(XcSyncError):
    """A remote operation failed mid-run (stream error, remote rejected a write)."""


class Cancelled(XcSyncError):
    """A cancellation request was observed at a checkpoint. Not a failure."""

    def __init__(self, message: str = "cancelled"):
        super().__init__(message)
