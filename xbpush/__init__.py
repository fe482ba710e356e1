# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
xbpush - Push live database backups from a sidecar to object storage.

Streams a backup over HTTP, gzips it into a local staging file, checks
the completion trailers and promotes the file to remote storage through
rclone (temp upload, latest alias, final rename). Package name: xbpush.
"""

__version__ = "0.1.0"

# Configuration creation (user-facing API)
from xbpush.builder import create_config
from xbpush.config import SidecarConfig
from xbpush.env import create_config_from_env

# Core functions
from xbpush.core import BackupResult, push_backup, take_backup
from xbpush.uri import DestinationSet, derive_destinations, normalize_bucket_uri

__all__ = [
    # Version
    "__version__",
    # Configuration
    "SidecarConfig",
    "create_config",
    "create_config_from_env",
    # Orchestration
    "take_backup",
    "push_backup",
    "BackupResult",
    # Destinations
    "DestinationSet",
    "derive_destinations",
    "normalize_bucket_uri",
]
