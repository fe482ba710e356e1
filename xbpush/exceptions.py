# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
xbpush Exceptions - Custom exceptions for the xbpush package.

Every stage of a backup run raises its own subclass so callers can tell
which step failed from the exception type alone.
"""


class SidecarError(Exception):
    """Base exception for all xbpush errors."""

    def __init__(self, message: str, details: dict | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ConfigurationError(SidecarError):
    """Raised when configuration is invalid."""

    pass


class BackupRequestError(SidecarError):
    """Raised when the backup stream cannot be requested or read."""

    pass


class StreamNotExhaustedError(SidecarError):
    """Raised when trailers are read before the backup stream is drained."""

    pass


class PipelineError(SidecarError):
    """Raised when one of the two concurrent pipeline stages fails."""

    pass


class CompressionError(PipelineError):
    """Raised when the compression process fails."""

    pass


class TransferError(PipelineError):
    """Raised when the staging transfer process fails."""

    pass


class IntegrityError(SidecarError):
    """Raised when the source reports the backup as incomplete."""

    pass


class PromotionError(SidecarError):
    """Raised when placing the staged backup in remote storage fails."""

    pass


class UploadError(PromotionError):
    """Raised when uploading the staged backup to the temp object fails."""

    pass


class CloneError(PromotionError):
    """Raised when cloning the temp object to the latest alias fails."""

    pass


class FinalizeError(PromotionError):
    """Raised when renaming the temp object to its final name fails."""

    pass
