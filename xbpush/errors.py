# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Human-friendly error message helpers for xbpush.

These helpers centralize wording for common configuration errors so that
all modules present consistent, actionable messages.
"""


def explain_invalid_server_port_env(value: str | None) -> str:
    """
    Explain that XBPUSH_SERVER_PORT is invalid.
    """

    return (
        f"Invalid XBPUSH_SERVER_PORT value: {value!r}. "
        "It must be an integer TCP port between 1 and 65535."
    )


def explain_invalid_connect_timeout_env(value: str | None) -> str:
    """
    Explain that XBPUSH_CONNECT_TIMEOUT is invalid.
    """

    return (
        f"Invalid XBPUSH_CONNECT_TIMEOUT value: {value!r}. "
        "It must be a positive number of seconds."
    )


def explain_invalid_rclone_args_env(value: str | None) -> str:
    """
    Explain that XBPUSH_RCLONE_ARGS cannot be split into arguments.
    """

    return (
        f"Invalid XBPUSH_RCLONE_ARGS value: {value!r}. "
        "It must be a shell-style argument list, e.g. \"--s3-no-check-bucket --retries 1\"."
    )
