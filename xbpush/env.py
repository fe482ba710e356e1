# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Environment-based configuration helpers.

The sidecar container receives its settings through environment
variables; create_config_from_env() turns them into a SidecarConfig.
"""

from __future__ import annotations

import os
import shlex
from typing import List

from xbpush.builder import (
    build_config,
    create_empty_config,
    with_backup_credentials,
    with_gzip_binary,
    with_rclone,
    with_server_port,
    with_staging_path,
    without_rclone_config,
)
from xbpush.config import SidecarConfig
from xbpush.errors import (
    explain_invalid_connect_timeout_env,
    explain_invalid_rclone_args_env,
    explain_invalid_server_port_env,
)
from xbpush.exceptions import ConfigurationError


def _parse_server_port(value: str | None) -> int | None:
    if not value:
        return None
    try:
        port = int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(explain_invalid_server_port_env(value)) from exc
    if not 1 <= port <= 65535:
        raise ConfigurationError(explain_invalid_server_port_env(value))
    return port


def _parse_connect_timeout(value: str | None) -> float | None:
    if not value:
        return None
    try:
        timeout = float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(explain_invalid_connect_timeout_env(value)) from exc
    if timeout <= 0:
        raise ConfigurationError(explain_invalid_connect_timeout_env(value))
    return timeout


def _parse_rclone_args(value: str | None) -> List[str]:
    if not value:
        return []
    try:
        return shlex.split(value)
    except ValueError as exc:
        raise ConfigurationError(explain_invalid_rclone_args_env(value)) from exc


def create_config_from_env() -> SidecarConfig:
    """
    Create a SidecarConfig from environment variables.

    Optional environment variables:
        - BACKUP_USER / BACKUP_PASSWORD: Basic auth for the backup endpoint
        - XBPUSH_SERVER_PORT: Port used when the source host has none (default: 8080)
        - XBPUSH_BACKUP_ENDPOINT: HTTP path of the backup stream (default: /xbackup)
        - XBPUSH_GZIP_BINARY: Compression executable (default: gzip)
        - XBPUSH_RCLONE_BINARY: rclone executable (default: rclone)
        - RCLONE_CONFIG: rclone config file (default: /tmp/rclone.conf;
          set it empty to let rclone use its own default)
        - XBPUSH_RCLONE_ARGS: Extra rclone arguments, shell-quoted
        - XBPUSH_STAGING_PATH: Local staging file (default: /tmp/backup.gz)
        - XBPUSH_CONNECT_TIMEOUT: Seconds allowed for the TCP connect (default: 30)
    """

    config = create_empty_config()

    user = os.getenv("BACKUP_USER", "")
    password = os.getenv("BACKUP_PASSWORD", "")
    if user or password:
        config = with_backup_credentials(config, user, password)

    port = _parse_server_port(os.getenv("XBPUSH_SERVER_PORT"))
    if port is not None:
        config = with_server_port(config, port)

    endpoint = os.getenv("XBPUSH_BACKUP_ENDPOINT")
    if endpoint:
        config = {**config, "backup_endpoint": endpoint}

    gzip_binary = os.getenv("XBPUSH_GZIP_BINARY")
    if gzip_binary:
        config = with_gzip_binary(config, gzip_binary)

    rclone_config = os.getenv("RCLONE_CONFIG")
    config = with_rclone(
        config,
        binary=os.getenv("XBPUSH_RCLONE_BINARY"),
        config_path=rclone_config or None,
        extra_args=_parse_rclone_args(os.getenv("XBPUSH_RCLONE_ARGS")),
    )
    if rclone_config == "":
        config = without_rclone_config(config)

    staging_path = os.getenv("XBPUSH_STAGING_PATH")
    if staging_path:
        config = with_staging_path(config, staging_path)

    timeout = _parse_connect_timeout(os.getenv("XBPUSH_CONNECT_TIMEOUT"))
    if timeout is not None:
        config = {**config, "connect_timeout": timeout}

    return build_config(config)
