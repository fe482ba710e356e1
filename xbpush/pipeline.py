# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
xbpush Pipeline - Compress the backup stream into the staging artifact.

Two processes run concurrently, joined by an OS pipe:

    backup stream -> gzip -c -> (pipe) -> rclone rcat <staging_path>

The coordinator waits for both of them, even after one has failed, and
then reports the first failure it saw.
"""

import asyncio
import os
from typing import List

import structlog

from xbpush.config import SidecarConfig
from xbpush.exceptions import (
    CompressionError,
    PipelineError,
    TransferError,
)
from xbpush.request import BackupStream

logger = structlog.get_logger()


async def _spawn(error_cls: type[PipelineError], argv: List[str], **kwargs) -> asyncio.subprocess.Process:
    """Start a stage process; stderr is inherited for diagnostics."""
    try:
        return await asyncio.create_subprocess_exec(*argv, **kwargs)
    except OSError as exc:
        raise error_cls(
            f"{argv[0]}: failed to start: {exc}",
            details={"command": argv},
        ) from exc


async def compression_stage(
    process: asyncio.subprocess.Process,
    stream: BackupStream,
    command: str,
) -> None:
    """
    Feed the backup stream into the compression process and wait for it.

    This stage is the stream's only reader, so once it succeeds the
    stream is exhausted and its trailers can be inspected.

    Raises:
        CompressionError: If the process stops reading or exits non-zero
        BackupRequestError: If reading the backup stream fails
    """
    feed_error: CompressionError | None = None
    try:
        async for chunk in stream.iter_bytes():
            process.stdin.write(chunk)
            await process.stdin.drain()
    except (BrokenPipeError, ConnectionResetError) as exc:
        feed_error = CompressionError(
            f"{command}: stopped reading its input: {exc}",
            details={"command": command},
        )
    finally:
        process.stdin.close()
        logger.debug("pipeline_stage_waiting", stage="compression")
        returncode = await process.wait()

    if returncode != 0:
        raise CompressionError(
            f"{command}: exit status {returncode}",
            details={"command": command, "returncode": returncode},
        )
    if feed_error is not None:
        raise feed_error


async def transfer_stage(process: asyncio.subprocess.Process, command: str) -> None:
    """
    Wait for the transfer process to write the staging artifact.

    Raises:
        TransferError: If the process exits non-zero
    """
    logger.debug("pipeline_stage_waiting", stage="transfer")
    returncode = await process.wait()
    if returncode != 0:
        raise TransferError(
            f"{command}: exit status {returncode}",
            details={"command": command, "returncode": returncode},
        )


async def run_pipeline(config: SidecarConfig, stream: BackupStream) -> None:
    """
    Compress stream into config.staging_path.

    Both processes are wired to the pipe before either is started on the
    data. Their outcomes are collected in completion order; the second
    stage is always awaited, and the first failure is raised afterwards.

    Args:
        config: xbpush configuration
        stream: Unread backup stream

    Raises:
        PipelineError: CompressionError or TransferError
        BackupRequestError: If the backup stream broke while being read
    """
    gzip_argv = [config.gzip_binary, "-c"]
    rclone_argv = [
        config.rclone_binary,
        *config.rclone_args(),
        "rcat",
        str(config.staging_path),
    ]

    read_fd, write_fd = os.pipe()
    try:
        compressor = await _spawn(
            CompressionError,
            gzip_argv,
            stdin=asyncio.subprocess.PIPE,
            stdout=write_fd,
        )
        try:
            uploader = await _spawn(TransferError, rclone_argv, stdin=read_fd)
        except TransferError:
            # compressor never saw any input; let it exit before reporting
            compressor.stdin.close()
            await compressor.wait()
            raise
    finally:
        # The children hold their own copies; the transfer process only
        # sees EOF once every write end is closed.
        os.close(read_fd)
        os.close(write_fd)

    logger.info(
        "pipeline_started",
        compressor=config.gzip_binary,
        staging_path=str(config.staging_path),
    )

    stages = [
        asyncio.create_task(compression_stage(compressor, stream, config.gzip_binary)),
        asyncio.create_task(transfer_stage(uploader, config.rclone_binary)),
    ]

    first_error: Exception | None = None
    for finished in asyncio.as_completed(stages):
        try:
            await finished
        except Exception as e:
            # keep draining: the sibling stage must still be awaited
            logger.error("pipeline_stage_failed", error=str(e), error_type=type(e).__name__)
            if first_error is None:
                first_error = e

    if first_error is not None:
        raise first_error

    logger.info("pipeline_completed", staging_path=str(config.staging_path))
