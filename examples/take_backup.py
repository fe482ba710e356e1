# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Example: take one backup from a sidecar and push it to object storage.

Run with:
    python examples/take_backup.py db-0.mysql s3://my-bucket/cluster/db-0.xbackup.gz

Environment variables:
    BACKUP_USER / BACKUP_PASSWORD: Credentials for the sidecar backup endpoint
    RCLONE_CONFIG: rclone configuration file (default: /tmp/rclone.conf)
    XBPUSH_*: See xbpush.env.create_config_from_env()
"""

import asyncio
import sys

import structlog

from xbpush import create_config_from_env, take_backup
from xbpush.exceptions import SidecarError

logger = structlog.get_logger()


def main() -> int:
    if len(sys.argv) != 3:
        print(f"usage: {sys.argv[0]} SOURCE_HOST DESTINATION_URI", file=sys.stderr)
        return 2

    source_host, destination = sys.argv[1], sys.argv[2]

    try:
        config = create_config_from_env()
        result = asyncio.run(take_backup(config, source_host, destination))
    except SidecarError as e:
        logger.error("backup_command_failed", error=str(e))
        return 1

    logger.info(
        "backup_command_succeeded",
        final=result.destinations.final,
        latest=result.destinations.latest,
        staged_bytes=result.staged_bytes,
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
