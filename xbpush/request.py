# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
xbpush Backup Request - Fetch the live backup stream from the sidecar.

The sidecar answers GET /xbackup with a chunked body and reports whether
the backup completed in HTTP trailers sent after the last chunk. The
request is driven with h11 directly over an asyncio connection because
the trailers have to be kept, and they are only meaningful once the body
has been read to the end.
"""

import asyncio
import base64
from typing import AsyncIterator, Dict, List, Tuple

import h11
import structlog

from xbpush import __version__
from xbpush.config import SidecarConfig
from xbpush.exceptions import BackupRequestError, StreamNotExhaustedError

logger = structlog.get_logger()

USER_AGENT = f"xbpush/{__version__}"

TrailerMap = Dict[str, List[str]]


def split_host_port(source_host: str, default_port: int) -> Tuple[str, int]:
    """
    Split "host[:port]" into its parts, applying default_port when absent.

    Bracketed IPv6 literals ("[::1]:8080") are accepted.

    Raises:
        BackupRequestError: If the port part is not a number
    """
    host, port = source_host, ""
    if source_host.startswith("["):
        literal, _, rest = source_host[1:].partition("]")
        host = literal
        if rest.startswith(":"):
            port = rest[1:]
    elif source_host.count(":") == 1:
        host, _, port = source_host.partition(":")

    if not port:
        return host, default_port
    try:
        return host, int(port)
    except ValueError as exc:
        raise BackupRequestError(
            f"getting backup: invalid port in source host {source_host!r}",
            details={"host": source_host},
        ) from exc


def _header_map(headers) -> TrailerMap:
    """Group h11 (name, value) byte pairs by lower-cased name."""
    result: TrailerMap = {}
    for name, value in headers:
        key = name.decode("latin-1").lower()
        result.setdefault(key, []).append(value.decode("latin-1"))
    return result


class BackupStream:
    """
    Single-pass backup body plus the trailers that follow it.

    Trailers are undefined until iter_bytes() has run to completion;
    reading them earlier raises StreamNotExhaustedError.
    """

    def __init__(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
        connection: h11.Connection,
        chunk_size: int,
    ):
        self._reader = reader
        self._writer = writer
        self._connection = connection
        self._chunk_size = chunk_size
        self._consumed = False
        self._trailers: TrailerMap | None = None
        self.status_code = 0
        self.headers: TrailerMap = {}

    @property
    def exhausted(self) -> bool:
        """True once the whole body and its trailers were received."""
        return self._trailers is not None

    @property
    def trailers(self) -> TrailerMap:
        if self._trailers is None:
            raise StreamNotExhaustedError(
                "trailers are only available after the backup stream is fully read"
            )
        return self._trailers

    async def _next_event(self):
        while True:
            try:
                event = self._connection.next_event()
            except h11.RemoteProtocolError as exc:
                raise BackupRequestError(f"getting backup: {exc}") from exc
            if event is not h11.NEED_DATA:
                return event
            try:
                data = await self._reader.read(self._chunk_size)
            except OSError as exc:
                raise BackupRequestError(f"getting backup: {exc}") from exc
            # b"" tells h11 the peer closed the connection
            self._connection.receive_data(data)

    async def receive_head(self) -> None:
        """Wait for the response status line and headers."""
        while True:
            event = await self._next_event()
            if isinstance(event, h11.Response):
                self.status_code = event.status_code
                self.headers = _header_map(event.headers)
                return
            if isinstance(event, h11.ConnectionClosed):
                raise BackupRequestError(
                    "getting backup: connection closed before a response was received"
                )
            # informational (1xx) responses are skipped

    async def iter_bytes(self) -> AsyncIterator[bytes]:
        """
        Yield the body chunk by chunk.

        The trailers are recorded when the end of the message is reached.
        """
        if self._consumed:
            raise BackupRequestError("getting backup: the backup stream was already consumed")
        self._consumed = True

        while True:
            event = await self._next_event()
            if isinstance(event, h11.Data):
                yield bytes(event.data)
            elif isinstance(event, h11.EndOfMessage):
                self._trailers = _header_map(event.headers)
                return
            elif isinstance(event, h11.ConnectionClosed):
                raise BackupRequestError(
                    "getting backup: connection closed before the backup stream completed"
                )

    async def aclose(self) -> None:
        """Close the connection to the sidecar."""
        self._writer.close()
        try:
            await self._writer.wait_closed()
        except OSError as e:
            logger.warning("backup_connection_close_failed", error=str(e))


async def request_backup(
    config: SidecarConfig,
    source_host: str,
    endpoint: str | None = None,
) -> BackupStream:
    """
    Ask the sidecar on source_host for a backup stream.

    Args:
        config: xbpush configuration
        source_host: "host" or "host:port" of the sidecar
        endpoint: HTTP path, defaults to config.backup_endpoint

    Returns:
        BackupStream positioned at the start of the body

    Raises:
        BackupRequestError: On connect, protocol or non-200 failures. Nothing
            of the body has been read when this is raised.
    """
    endpoint = endpoint or config.backup_endpoint
    host, port = split_host_port(source_host, config.server_port)
    authority = f"[{host}]:{port}" if ":" in host else f"{host}:{port}"
    logger.info("backup_requested", host=host, port=port, endpoint=endpoint)

    try:
        reader, writer = await asyncio.wait_for(
            asyncio.open_connection(host, port),
            timeout=config.connect_timeout,
        )
    except (OSError, asyncio.TimeoutError) as exc:
        raise BackupRequestError(
            f"getting backup: fail to connect to {authority}: {exc!r}",
            details={"host": host, "port": port},
        ) from exc

    connection = h11.Connection(our_role=h11.CLIENT)
    headers = [
        ("Host", authority),
        ("User-Agent", USER_AGENT),
        ("TE", "trailers"),
        ("Connection", "close"),
    ]
    if config.backup_user or config.backup_password:
        token = base64.b64encode(
            f"{config.backup_user}:{config.backup_password}".encode()
        ).decode("ascii")
        headers.append(("Authorization", f"Basic {token}"))

    stream = BackupStream(reader, writer, connection, config.read_chunk_size)
    try:
        writer.write(connection.send(h11.Request(method="GET", target=endpoint, headers=headers)))
        writer.write(connection.send(h11.EndOfMessage()))
        await writer.drain()
        await stream.receive_head()
    except (OSError, h11.LocalProtocolError) as exc:
        await stream.aclose()
        raise BackupRequestError(
            f"getting backup: {exc}",
            details={"host": host, "port": port, "endpoint": endpoint},
        ) from exc
    except BackupRequestError:
        await stream.aclose()
        raise

    if stream.status_code != 200:
        await stream.aclose()
        raise BackupRequestError(
            f"getting backup: fail to get backup, code: {stream.status_code}",
            details={"host": host, "port": port, "endpoint": endpoint},
        )

    return stream
