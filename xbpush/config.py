# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
xbpush Configuration - Immutable configuration data structures.

All configuration is frozen (immutable) after creation to prevent
accidental modification while a backup is being pushed.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import List


# Port the database sidecar serves backups on
DEFAULT_SERVER_PORT = 8080

# HTTP path of the backup stream on the sidecar
DEFAULT_BACKUP_ENDPOINT = "/xbackup"

# Well-known local file the compressed backup is staged in
DEFAULT_STAGING_PATH = Path("/tmp/backup.gz")

DEFAULT_RCLONE_CONFIG = Path("/tmp/rclone.conf")


@dataclass(frozen=True)
class SidecarConfig:
    """
    Immutable configuration for pushing a backup to remote storage.

    This configuration is frozen after creation so that the pipeline
    and the promotion steps of one run always see the same settings.
    """

    # Credentials for the sidecar's backup endpoint (HTTP basic auth)
    backup_user: str = ""
    backup_password: str = ""

    # Port appended to source hosts that carry none
    server_port: int = DEFAULT_SERVER_PORT

    backup_endpoint: str = DEFAULT_BACKUP_ENDPOINT

    # Compression executable, invoked as "<gzip_binary> -c"
    gzip_binary: str = "gzip"

    # Remote-copy executable
    rclone_binary: str = "rclone"

    # rclone config file passed as --config (None: rclone's own default)
    rclone_config_path: Path | None = field(default_factory=lambda: DEFAULT_RCLONE_CONFIG)

    # Backend-specific arguments placed before every rclone verb
    extra_rclone_args: List[str] = field(default_factory=list)

    # Local staging artifact, overwritten on each run
    staging_path: Path = field(default_factory=lambda: DEFAULT_STAGING_PATH)

    # TCP connect timeout in seconds (the stream itself has no deadline)
    connect_timeout: float = 30.0

    # Bytes read from the socket per call
    read_chunk_size: int = 64 * 1024

    def __post_init__(self) -> None:
        """Validate configuration after creation."""
        errors: List[str] = []

        if not 1 <= self.server_port <= 65535:
            errors.append(f"server_port must be in 1..65535, got {self.server_port}")

        if not self.backup_endpoint.startswith("/"):
            errors.append(f"backup_endpoint must start with '/', got {self.backup_endpoint!r}")
        elif any(c.isspace() or not c.isprintable() for c in self.backup_endpoint):
            errors.append(f"backup_endpoint must not contain whitespace or control characters, got {self.backup_endpoint!r}")

        if not self.gzip_binary:
            errors.append("gzip_binary must not be empty")

        if not self.rclone_binary:
            errors.append("rclone_binary must not be empty")

        if not str(self.staging_path):
            errors.append("staging_path must not be empty")

        if self.connect_timeout <= 0:
            errors.append(f"connect_timeout must be > 0, got {self.connect_timeout}")

        if self.read_chunk_size < 1:
            errors.append(f"read_chunk_size must be >= 1, got {self.read_chunk_size}")

        # Raise all errors at once
        if errors:
            from xbpush.exceptions import ConfigurationError

            raise ConfigurationError(
                "Configuration validation failed",
                details={"errors": errors},
            )

    def rclone_args(self) -> List[str]:
        """Arguments placed between the rclone binary and its verb."""
        args: List[str] = []
        if self.rclone_config_path is not None:
            args += ["--config", str(self.rclone_config_path)]
        args += self.extra_rclone_args
        return args

    def with_updates(self, **kwargs) -> "SidecarConfig":
        """
        Create a new config with updated values.

        Since the config is frozen, this creates a new instance.
        """
        from dataclasses import asdict

        current = asdict(self)
        current.update(kwargs)
        return SidecarConfig(**current)
