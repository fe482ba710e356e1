# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
xbpush Promote - Place the staged backup in remote storage.

Object stores have no "write unless partial" primitive, so the staged
file is promoted in three steps, each waiting for the previous one:

1. upload the staging artifact to <final>.tmp
2. copy <final>.tmp to the latest alias
3. move <final>.tmp to <final>

A failure stops the sequence. Nothing is cleaned up: a failed step 2 or
3 leaves the .tmp object behind, and a failed step 3 leaves the latest
alias newer than the final object.
"""

import asyncio
from pathlib import Path
from typing import List

import structlog

from xbpush.config import SidecarConfig
from xbpush.exceptions import (
    CloneError,
    FinalizeError,
    PromotionError,
    UploadError,
)
from xbpush.uri import DestinationSet

logger = structlog.get_logger()


async def run_rclone(config: SidecarConfig, verb: str, *operands: str) -> int:
    """
    Run one rclone command to completion.

    stdout and stderr are inherited from this process.

    Returns:
        The process exit status

    Raises:
        OSError: If rclone cannot be started
    """
    argv: List[str] = [config.rclone_binary, *config.rclone_args(), verb, *operands]
    process = await asyncio.create_subprocess_exec(*argv)
    return await process.wait()


async def _promotion_step(
    config: SidecarConfig,
    error_cls: type[PromotionError],
    label: str,
    verb: str,
    source: str,
    destination: str,
) -> None:
    try:
        returncode = await run_rclone(config, verb, source, destination)
    except OSError as exc:
        raise error_cls(
            f"{label}: {exc}",
            details={"verb": verb, "source": source, "destination": destination},
        ) from exc

    if returncode != 0:
        raise error_cls(
            f"{label}: exit status {returncode}",
            details={
                "verb": verb,
                "source": source,
                "destination": destination,
                "returncode": returncode,
            },
        )


async def promote_backup(
    config: SidecarConfig,
    staging_path: Path,
    destinations: DestinationSet,
) -> None:
    """
    Upload, clone as latest, then rename to the final name.

    Args:
        config: xbpush configuration
        staging_path: Fully written local backup
        destinations: Remote names derived from the canonical destination

    Raises:
        UploadError: Step 1 failed; clone and rename were not attempted
        CloneError: Step 2 failed; rename was not attempted
        FinalizeError: Step 3 failed; the latest alias is already updated
    """
    await _promotion_step(
        config, UploadError, "upload failed", "copyto", str(staging_path), destinations.temp
    )
    logger.info("backup_uploaded", destination=destinations.temp)

    # remote-to-remote: the local artifact is not read again
    await _promotion_step(
        config, CloneError, "cloning failed", "copyto", destinations.temp, destinations.latest
    )
    logger.info("backup_cloned_as_latest", destination=destinations.latest)

    await _promotion_step(
        config, FinalizeError, "renaming failed", "moveto", destinations.temp, destinations.final
    )
    logger.info("backup_finalized", destination=destinations.final)
