# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
xbpush Core - Take one backup from a sidecar and push it to storage.

This module ties the components together in order: request the stream,
compress it into the staging artifact, check the trailers, and promote
the artifact to the remote destination.
"""

from dataclasses import dataclass
from datetime import datetime, UTC

import aiofiles.os
import structlog

from xbpush.config import SidecarConfig
from xbpush.exceptions import IntegrityError, SidecarError, TransferError
from xbpush.pipeline import run_pipeline
from xbpush.promote import promote_backup
from xbpush.request import request_backup
from xbpush.uri import DestinationSet, derive_destinations, normalize_bucket_uri
from xbpush.verify import check_backup_trailers

logger = structlog.get_logger()


@dataclass
class BackupResult:
    """Result of a successful backup push."""

    source_host: str
    destinations: DestinationSet
    staged_bytes: int
    duration_seconds: float


async def take_backup(
    config: SidecarConfig,
    source_host: str,
    destination: str,
) -> BackupResult:
    """
    Take a backup of source_host and store it at destination.

    Args:
        config: xbpush configuration
        source_host: "host" or "host:port" of the sidecar serving the backup
        destination: Destination URI, e.g. "s3://bucket/backups/db.xbackup.gz"

    Returns:
        BackupResult describing the promoted backup

    Raises:
        SidecarError: The first failure of the run; the subclass names the stage
    """
    logger.info("take_backup", host=source_host, bucket=destination)
    return await push_backup(config, source_host, normalize_bucket_uri(destination))


async def push_backup(
    config: SidecarConfig,
    source_host: str,
    destination: str,
) -> BackupResult:
    """
    Push a backup to an already normalized destination.

    Runs are not safe to overlap on one host: they share the staging path.
    """
    destinations = derive_destinations(destination)
    start_time = datetime.now(UTC)

    try:
        stream = await request_backup(config, source_host)
        try:
            await run_pipeline(config, stream)
        finally:
            await stream.aclose()

        try:
            check_backup_trailers(stream)
        except IntegrityError:
            logger.info("backup_partially_taken", trailers=stream.trailers)
            raise

        try:
            staged = await aiofiles.os.stat(config.staging_path)
        except FileNotFoundError as exc:
            raise TransferError(
                f"staging artifact {config.staging_path} was not written",
                details={"staging_path": str(config.staging_path)},
            ) from exc
        logger.info(
            "backup_taken",
            staged_bytes=staged.st_size,
            destination=destinations.final,
        )

        await promote_backup(config, config.staging_path, destinations)

    except SidecarError as e:
        logger.error(
            "backup_failed",
            host=source_host,
            destination=destination,
            error_type=type(e).__name__,
            error=str(e),
        )
        raise

    duration = (datetime.now(UTC) - start_time).total_seconds()
    logger.info(
        "backup_completed",
        host=source_host,
        destination=destinations.final,
        duration=duration,
    )

    return BackupResult(
        source_host=source_host,
        destinations=destinations,
        staged_bytes=staged.st_size,
        duration_seconds=duration,
    )
