"""
Shared test fixtures: a fake host for subprocess calls and a fake HTTP session.
"""

from __future__ import annotations

import io
import json
import subprocess
import tarfile
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

import pytest

Response = Tuple[int, str, str]
Handler = Union[Response, Callable[[List[str], Optional[str]], Response]]


class FakeHost:
    """Stands in for subprocess.run; answers by longest matching argv prefix."""

    def __init__(self) -> None:
        self.calls: List[List[str]] = []
        self.rules: Dict[Tuple[str, ...], Handler] = {}

    def on(self, *prefix: str, rc: int = 0, stdout: str = "", stderr: str = "") -> None:
        self.rules[tuple(prefix)] = (rc, stdout, stderr)

    def handle(self, *prefix: str, fn: Callable[[List[str], Optional[str]], Response]) -> None:
        self.rules[tuple(prefix)] = fn

    def ran(self, *prefix: str) -> bool:
        return any(tuple(c[: len(prefix)]) == prefix for c in self.calls)

    def __call__(self, argv, input=None, text=True, stdout=None, stderr=None, cwd=None, env=None, timeout=None):
        argv = list(argv)
        self.calls.append(argv)
        best: Optional[Handler] = None
        best_len = -1
        for prefix, handler in self.rules.items():
            if tuple(argv[: len(prefix)]) == prefix and len(prefix) > best_len:
                best, best_len = handler, len(prefix)
        if best is None:
            rc, out, err = 0, "", ""
        elif callable(best):
            rc, out, err = best(argv, cwd)
        else:
            rc, out, err = best
        return subprocess.CompletedProcess(argv, rc, out, err)


class FakeResponse:
    def __init__(self, status_code: int = 200, body: bytes = b"") -> None:
        self.status_code = status_code
        self.body = body

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 400

    def json(self) -> Any:
        return json.loads(self.body.decode("utf-8"))

    def iter_content(self, chunk_size: int = 1024):
        for i in range(0, len(self.body), chunk_size):
            yield self.body[i : i + chunk_size]

    def __enter__(self) -> "FakeResponse":
        return self

    def __exit__(self, *exc: Any) -> None:
        return None


class FakeSession:
    def __init__(self) -> None:
        self.routes: Dict[str, FakeResponse] = {}
        self.requested: List[str] = []

    def route(self, url: str, *, status: int = 200, body: Union[bytes, str, dict] = b"") -> None:
        if isinstance(body, dict):
            body = json.dumps(body)
        if isinstance(body, str):
            body = body.encode("utf-8")
        self.routes[url] = FakeResponse(status, body)

    def get(self, url: str, **kwargs: Any) -> FakeResponse:
        self.requested.append(url)
        return self.routes.get(url, FakeResponse(404, b"not found"))

    def close(self) -> None:
        return None


def make_release_tarball(name: str, version: str, arch: str, payload: bytes = b"#!/bin/sh\necho fake\n") -> bytes:
    buf = io.BytesIO()
    with tarfile.open(fileobj=buf, mode="w:gz") as tf:
        for member, data in (
            (f"{name}-{version}.linux-{arch}/LICENSE", b"Apache-2.0\n"),
            (f"{name}-{version}.linux-{arch}/{name}", payload),
        ):
            info = tarfile.TarInfo(member)
            info.size = len(data)
            info.mode = 0o755
            tf.addfile(info, io.BytesIO(data))
    return buf.getvalue()


@pytest.fixture
def fake_host(monkeypatch: pytest.MonkeyPatch) -> FakeHost:
    host = FakeHost()
    monkeypatch.setattr("host_provisioner.lib.command.subprocess.run", host)
    return host


@pytest.fixture
def fake_session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def no_sleep() -> Callable[[float], None]:
    return lambda _s: None


@pytest.fixture
def write_json() -> Callable[[Path, dict], Path]:
    def _write(path: Path, doc: dict) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(doc, indent="\t") + "\n", encoding="utf-8")
        return path

    return _write


@pytest.fixture
def release_tarball() -> Callable[..., bytes]:
    return make_release_tarball
