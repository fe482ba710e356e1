# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
xbpush Verify - Decide from the trailers whether the backup is complete.
"""

from typing import List, Mapping

from xbpush.exceptions import IntegrityError
from xbpush.request import BackupStream

# Trailer the sidecar sets once the backup tool has finished
BACKUP_STATUS_TRAILER = "X-Backup-Status"

BACKUP_SUCCESSFUL = "Success"


def is_backup_complete(trailers: Mapping[str, List[str]]) -> bool:
    """
    True only if the status trailer carries the success value.

    Trailer names compare case-insensitively. A missing trailer, or no
    trailers at all, counts as incomplete.
    """
    wanted = BACKUP_STATUS_TRAILER.lower()
    for name, values in trailers.items():
        if name.lower() == wanted and BACKUP_SUCCESSFUL in values:
            return True
    return False


def check_backup_trailers(stream: BackupStream) -> None:
    """
    Fail unless the drained stream reports a complete backup.

    Raises:
        StreamNotExhaustedError: If the stream was not read to the end
        IntegrityError: If the trailers do not report success
    """
    trailers = stream.trailers
    if not is_backup_complete(trailers):
        raise IntegrityError(
            "backup was partially taken",
            details={"trailers": dict(trailers)},
        )
