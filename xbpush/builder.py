# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
xbpush Builder - Functional builder pattern for configuration.

This module provides pure functions for building SidecarConfig objects.
Each function takes a config dict and returns a new dict with the
modification applied (immutable updates).
"""

from pathlib import Path
from typing import Any, Callable, Dict, List

from xbpush.config import (
    DEFAULT_BACKUP_ENDPOINT,
    DEFAULT_RCLONE_CONFIG,
    DEFAULT_SERVER_PORT,
    DEFAULT_STAGING_PATH,
    SidecarConfig,
)


# Type alias for builder functions
ConfigDict = Dict[str, Any]
BuilderFunc = Callable[[ConfigDict], ConfigDict]


def create_empty_config() -> ConfigDict:
    """
    Create an initial configuration dictionary.

    Returns:
        Dict with default values for all configuration fields
    """
    return {
        "backup_user": "",
        "backup_password": "",
        "server_port": DEFAULT_SERVER_PORT,
        "backup_endpoint": DEFAULT_BACKUP_ENDPOINT,
        "gzip_binary": "gzip",
        "rclone_binary": "rclone",
        "rclone_config_path": DEFAULT_RCLONE_CONFIG,
        "extra_rclone_args": [],
        "staging_path": DEFAULT_STAGING_PATH,
        "connect_timeout": 30.0,
        "read_chunk_size": 64 * 1024,
    }


def with_backup_credentials(config: ConfigDict, user: str, password: str) -> ConfigDict:
    """
    Set the credentials used against the sidecar's backup endpoint.

    Args:
        config: Current configuration dictionary
        user: Basic auth user
        password: Basic auth password

    Returns:
        New configuration dictionary with credentials set
    """
    return {**config, "backup_user": user, "backup_password": password}


def with_server_port(config: ConfigDict, port: int) -> ConfigDict:
    """Set the port appended to source hosts given without one."""
    return {**config, "server_port": port}


def with_rclone(
    config: ConfigDict,
    binary: str | None = None,
    config_path: Path | str | None = None,
    extra_args: List[str] | None = None,
) -> ConfigDict:
    """
    Configure the rclone invocation.

    Args:
        config: Current configuration dictionary
        binary: rclone executable (unchanged if None)
        config_path: rclone config file passed as --config (unchanged if None)
        extra_args: Extra backend arguments, appended to the existing ones

    Returns:
        New configuration dictionary with rclone settings applied
    """
    updated = dict(config)
    if binary:
        updated["rclone_binary"] = binary
    if config_path is not None:
        updated["rclone_config_path"] = Path(config_path)
    if extra_args:
        updated["extra_rclone_args"] = list(config["extra_rclone_args"]) + list(extra_args)
    return updated


def without_rclone_config(config: ConfigDict) -> ConfigDict:
    """Let rclone locate its configuration file itself."""
    return {**config, "rclone_config_path": None}


def with_gzip_binary(config: ConfigDict, binary: str) -> ConfigDict:
    """Set the compression executable."""
    return {**config, "gzip_binary": binary}


def with_staging_path(config: ConfigDict, path: Path | str) -> ConfigDict:
    """
    Set the local staging artifact path.

    Two runs sharing a staging path must never overlap.
    """
    return {**config, "staging_path": Path(path)}


def build_config(config_dict: ConfigDict) -> SidecarConfig:
    """
    Build and validate the final configuration.

    Args:
        config_dict: Configuration dictionary

    Returns:
        Validated, immutable SidecarConfig

    Raises:
        ConfigurationError: If configuration is invalid
    """
    return SidecarConfig(**config_dict)


def pipe(*funcs: BuilderFunc) -> BuilderFunc:
    """
    Compose builder functions left to right.

    Example:
        configure = pipe(
            lambda c: with_server_port(c, 8082),
            lambda c: with_staging_path(c, "/var/tmp/backup.gz"),
        )
        config = build_config(configure(create_empty_config()))
    """

    def composed(config: ConfigDict) -> ConfigDict:
        for func in funcs:
            config = func(config)
        return config

    return composed


def create_config(
    backup_user: str = "",
    backup_password: str = "",
    server_port: int | None = None,
    rclone_config_path: Path | str | None = None,
    staging_path: Path | str | None = None,
    **kwargs: Any,
) -> SidecarConfig:
    """
    Create a SidecarConfig from keyword arguments.

    Unknown keyword arguments are ignored; any other SidecarConfig field
    may be passed through kwargs.

    Example:
        config = create_config(
            backup_user="backup",
            backup_password="secret",
            rclone_config_path="/etc/rclone/rclone.conf",
            extra_rclone_args=["--s3-no-check-bucket"],
        )
    """
    config_dict = create_empty_config()

    if backup_user or backup_password:
        config_dict = with_backup_credentials(config_dict, backup_user, backup_password)

    if server_port is not None:
        config_dict = with_server_port(config_dict, server_port)

    if rclone_config_path is not None:
        config_dict = with_rclone(config_dict, config_path=rclone_config_path)

    if staging_path is not None:
        config_dict = with_staging_path(config_dict, staging_path)

    # Apply any additional kwargs
    for key, value in kwargs.items():
        if key in config_dict:
            config_dict[key] = value

    # Build and return validated config
    return build_config(config_dict)
