# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Test fixtures for xbpush tests.

Provides a fake rclone executable, an in-process backup server that
streams a chunked body followed by trailers, and configuration helpers.
"""

import asyncio
import json
import stat
import sys
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Generator, List, Tuple

import pytest
import pytest_asyncio


# ============================================================================
# Fake rclone
# ============================================================================

FAKE_RCLONE_SCRIPT = '''#!{python}
import json
import shutil
import sys
from pathlib import Path

JOURNAL = Path({journal!r})
ROOT = Path({root!r})
FAIL_ON = {fail_on!r}


def resolve(location):
    head, sep, tail = location.partition(":")
    if sep and "/" not in head:
        return ROOT / head / tail.lstrip("/")
    return Path(location)


argv = sys.argv[1:]
with JOURNAL.open("a") as journal:
    journal.write(json.dumps(argv) + "\\n")

args = list(argv)
while args and args[0].startswith("--"):
    args = args[2:] if args[0] == "--config" else args[1:]
verb, operands = args[0], args[1:]

# drain stdin first so the writer never sees a broken pipe
data = sys.stdin.buffer.read() if verb == "rcat" else b""

if FAIL_ON and operands[-1].endswith(FAIL_ON):
    sys.stderr.write("fake rclone: simulated failure for %s\\n" % operands[-1])
    sys.exit(1)

if verb == "rcat":
    target = resolve(operands[0])
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_bytes(data)
elif verb in ("copyto", "moveto"):
    source, target = resolve(operands[0]), resolve(operands[1])
    if not source.exists():
        sys.stderr.write("fake rclone: %s not found\\n" % operands[0])
        sys.exit(3)
    target.parent.mkdir(parents=True, exist_ok=True)
    if verb == "copyto":
        shutil.copyfile(source, target)
    else:
        shutil.move(str(source), str(target))
else:
    sys.stderr.write("fake rclone: unsupported verb %s\\n" % verb)
    sys.exit(2)
'''


@dataclass
class FakeRclone:
    """A fake rclone binary whose invocations are journaled."""

    binary: Path
    journal: Path
    root: Path

    def raw_calls(self) -> List[List[str]]:
        """Every invocation's full argument list."""
        if not self.journal.exists():
            return []
        return [json.loads(line) for line in self.journal.read_text().splitlines()]

    def calls(self) -> List[List[str]]:
        """Invocations without the leading --config/backend flags."""
        result = []
        for argv in self.raw_calls():
            while argv and argv[0].startswith("--"):
                argv = argv[2:] if argv[0] == "--config" else argv[1:]
            result.append(argv)
        return result

    def remote_path(self, location: str) -> Path:
        """Local file backing a "remote:path" location."""
        remote, _, path = location.partition(":")
        return self.root / remote / path.lstrip("/")


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def make_fake_rclone(temp_dir: Path):
    """
    Factory for fake rclone binaries.

    fail_on makes every invocation whose last operand ends with that
    string exit 1 without doing anything.
    """

    def _make(fail_on: str | None = None, name: str = "rclone") -> FakeRclone:
        binary = temp_dir / "bin" / name
        binary.parent.mkdir(parents=True, exist_ok=True)
        journal = temp_dir / f"{name}.journal"
        root = temp_dir / "remotes"
        binary.write_text(
            FAKE_RCLONE_SCRIPT.format(
                python=sys.executable,
                journal=str(journal),
                root=str(root),
                fail_on=fail_on,
            )
        )
        binary.chmod(binary.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return FakeRclone(binary=binary, journal=journal, root=root)

    return _make


@pytest.fixture
def fake_rclone(make_fake_rclone) -> FakeRclone:
    """A fake rclone that succeeds on every call."""
    return make_fake_rclone()


@pytest.fixture
def make_test_config(temp_dir: Path):
    """Factory for a configuration wired to a fake rclone and real gzip."""
    from xbpush.config import SidecarConfig

    def _make(rclone: FakeRclone, **overrides) -> "SidecarConfig":
        settings = dict(
            backup_user="backup",
            backup_password="s3cret",
            rclone_binary=str(rclone.binary),
            rclone_config_path=temp_dir / "rclone.conf",
            staging_path=temp_dir / "staging" / "backup.gz",
            connect_timeout=5.0,
        )
        settings.update(overrides)
        return SidecarConfig(**settings)

    return _make


# ============================================================================
# Backup server
# ============================================================================

@dataclass
class BackupServer:
    """In-process HTTP server standing in for the database sidecar."""

    address: str = ""
    payload: bytes = b""
    trailers: List[Tuple[str, str]] = field(default_factory=list)
    status: str = "200 OK"
    # stop after this many body bytes without ending the chunked body
    truncate_after: int | None = None
    requests: List[bytes] = field(default_factory=list)

    def request_headers(self, index: int = 0) -> dict:
        """Headers of a received request, names lower-cased."""
        lines = self.requests[index].decode("latin-1").split("\r\n")[1:]
        headers = {}
        for line in lines:
            if ": " in line:
                name, value = line.split(": ", 1)
                headers[name.lower()] = value
        return headers

    def request_line(self, index: int = 0) -> str:
        return self.requests[index].decode("latin-1").split("\r\n", 1)[0]

    def response(self) -> bytes:
        if not self.status.startswith("200"):
            return (
                f"HTTP/1.1 {self.status}\r\n"
                "Content-Length: 0\r\n"
                "Connection: close\r\n\r\n"
            ).encode("latin-1")

        out = [b"HTTP/1.1 200 OK\r\nTransfer-Encoding: chunked\r\nConnection: close\r\n"]
        if self.trailers:
            names = ", ".join(name for name, _ in self.trailers)
            out.append(f"Trailer: {names}\r\n".encode("latin-1"))
        out.append(b"\r\n")

        body = self.payload
        if self.truncate_after is not None:
            # announce the whole payload, then hang up early
            out.append(b"%x\r\n" % len(body) + body[: self.truncate_after])
            return b"".join(out)

        for offset in range(0, len(body), 4096):
            chunk = body[offset : offset + 4096]
            out.append(b"%x\r\n" % len(chunk) + chunk + b"\r\n")
        out.append(b"0\r\n")
        for name, value in self.trailers:
            out.append(f"{name}: {value}\r\n".encode("latin-1"))
        out.append(b"\r\n")
        return b"".join(out)


@pytest_asyncio.fixture
async def make_backup_server():
    """Factory starting backup servers on an ephemeral port of a given host."""
    servers = []

    async def _make(host: str = "127.0.0.1") -> BackupServer:
        state = BackupServer()

        async def handle(reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
            head = await reader.readuntil(b"\r\n\r\n")
            state.requests.append(head)
            writer.write(state.response())
            await writer.drain()
            writer.close()

        server = await asyncio.start_server(handle, host, 0)
        servers.append(server)
        port = server.sockets[0].getsockname()[1]
        state.address = f"[{host}]:{port}" if ":" in host else f"{host}:{port}"
        return state

    yield _make

    for server in servers:
        server.close()
        await server.wait_closed()


@pytest_asyncio.fixture
async def backup_server(make_backup_server) -> BackupServer:
    """Start a backup server on an ephemeral localhost port."""
    return await make_backup_server()
