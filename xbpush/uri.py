# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
xbpush Destinations - Remote naming for a pushed backup.

A destination is given as a URI (s3://bucket/path) and turned into the
rclone "remote:path" form. From that canonical name three remote objects
are derived: the temp upload, the latest alias and the final object.
"""

import posixpath
from dataclasses import dataclass

# Name of the alias object written next to every final backup
LATEST_BACKUP_NAME = "latest.xbackup.gz"

TEMP_SUFFIX = ".tmp"


def normalize_bucket_uri(uri: str) -> str:
    """
    Collapse the first "://" of a destination URI to ":".

    "s3://bucket/db.gz" becomes "s3:bucket/db.gz", the form rclone expects.
    Strings without the delimiter are returned unchanged.
    """
    return uri.replace("://", ":", 1)


@dataclass(frozen=True)
class DestinationSet:
    """The three remote objects touched while promoting one backup."""

    final: str
    temp: str
    latest: str


def _split_remote(location: str) -> tuple[str, str]:
    """Split "remote:path" into ("remote:", "path"); local paths get no prefix."""
    head, sep, tail = location.partition(":")
    if sep and "/" not in head:
        return head + sep, tail
    return "", location


def derive_destinations(destination: str) -> DestinationSet:
    """
    Derive temp and latest names from a canonical destination.

    Args:
        destination: Normalized destination, e.g. "s3:bucket/backups/db.gz"

    Returns:
        DestinationSet with final=destination, temp=destination + ".tmp"
        and latest placed in the parent directory of destination
    """
    remote, path = _split_remote(destination)
    latest_path = posixpath.normpath(posixpath.join(path, "..", LATEST_BACKUP_NAME))
    if latest_path.startswith("../") or latest_path == "..":
        # destination sits at the root of the remote
        latest_path = LATEST_BACKUP_NAME
    return DestinationSet(
        final=destination,
        temp=destination + TEMP_SUFFIX,
        latest=remote + latest_path,
    )
