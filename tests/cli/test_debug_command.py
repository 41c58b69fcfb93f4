from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path

import httpx
import pytest
from typer.testing import CliRunner

from promdebug.cli.app import app
from promdebug.integrations.prometheus import fetcher as fetcher_mod
from tests.helpers import PROFILE_BYTES, archive_members, mock_client

runner = CliRunner()
SERVER = "http://prom:9090"


def _patch_client(
    monkeypatch: pytest.MonkeyPatch,
    bodies: Mapping[str, bytes | int | Exception],
    calls: list[str] | None = None,
) -> None:
    def _factory(**_: object) -> httpx.AsyncClient:
        return mock_client(bodies, calls=calls)

    monkeypatch.setattr(fetcher_mod, "create_client", _factory)


def test_debug_metrics_writes_archive(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    _patch_client(monkeypatch, {"/metrics": b"up 1\n"})
    monkeypatch.chdir(tmp_path)

    result = runner.invoke(app, ["debug", "metrics", SERVER])

    assert result.exit_code == 0, result.output
    assert "Debug bundle written to debug.tar.gz" in result.output
    assert archive_members(tmp_path / "debug.tar.gz") == [("metrics.txt", b"up 1\n")]


def test_debug_pprof_honours_output_option(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    calls: list[str] = []
    _patch_client(
        monkeypatch,
        {f"/debug/pprof/{name}": PROFILE_BYTES for name in ("block", "goroutine", "heap", "mutex", "threadcreate")},
        calls,
    )
    target = tmp_path / "profiles.tar.gz"

    result = runner.invoke(app, ["debug", "pprof", SERVER, "--output", str(target)])

    assert result.exit_code == 0, result.output
    assert sorted(calls) == sorted(
        f"/debug/pprof/{name}" for name in ("block", "goroutine", "heap", "mutex", "threadcreate")
    )
    assert [name for name, _ in archive_members(target)] == [
        "block.pb",
        "goroutine.pb",
        "heap.pb",
        "mutex.pb",
        "threadcreate.pb",
    ]


def test_debug_all_partial_failure_exit_code(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    bodies: dict[str, bytes | int | Exception] = {
        f"/debug/pprof/{name}": PROFILE_BYTES for name in ("block", "goroutine", "heap", "threadcreate")
    }
    bodies["/debug/pprof/mutex"] = 500
    bodies["/metrics"] = b"up 1\n"
    _patch_client(monkeypatch, bodies)
    monkeypatch.chdir(tmp_path)

    result = runner.invoke(app, ["debug", "all", SERVER])

    assert result.exit_code == 2, result.output
    assert "/debug/pprof/mutex" in result.output
    assert "Partial debug bundle written" in result.output
    names = [name for name, _ in archive_members(tmp_path / "debug.tar.gz")]
    assert "mutex.pb" not in names
    assert names[-1] == "metrics.txt"


def test_debug_output_in_missing_directory_fails(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    _patch_client(monkeypatch, {"/metrics": b"up 1\n"})
    target = tmp_path / "missing" / "debug.tar.gz"

    result = runner.invoke(app, ["debug", "metrics", SERVER, "--output", str(target)])

    assert result.exit_code == 1
    assert "error writing debug bundle" in result.output
    assert not target.parent.exists()


def test_debug_rejects_unsupported_scheme(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    calls: list[str] = []
    _patch_client(monkeypatch, {"/metrics": b"up 1\n"}, calls)
    monkeypatch.chdir(tmp_path)

    result = runner.invoke(app, ["debug", "metrics", "ftp://prom:9090"])

    assert result.exit_code == 1
    assert "error creating debug bundle" in result.output
    assert calls == []
    assert list(tmp_path.iterdir()) == []


def test_debug_rejects_invalid_log_format(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    _patch_client(monkeypatch, {"/metrics": b"up 1\n"})
    monkeypatch.chdir(tmp_path)

    result = runner.invoke(app, ["debug", "metrics", SERVER, "--log-format", "xml"])

    assert result.exit_code != 0
    assert not (tmp_path / "debug.tar.gz").exists()


def test_debug_reads_output_dir_from_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    _patch_client(monkeypatch, {"/metrics": b"up 1\n"})
    out_dir = tmp_path / "bundles"
    out_dir.mkdir()
    config = tmp_path / "promdebug.toml"
    config.write_text(
        f'[collector]\noutput_dir = "{out_dir.as_posix()}"\narchive_name = "metrics.tar.gz"\n',
        encoding="utf-8",
    )
    monkeypatch.chdir(tmp_path)

    result = runner.invoke(app, ["debug", "metrics", SERVER, "--config", str(config)])

    assert result.exit_code == 0, result.output
    assert archive_members(out_dir / "metrics.tar.gz") == [("metrics.txt", b"up 1\n")]


def test_debug_unreadable_ca_bundle_exits_cleanly(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    def _factory(**_: object) -> httpx.AsyncClient:
        raise OSError(2, "No such file or directory")

    monkeypatch.setattr(fetcher_mod, "create_client", _factory)
    ca_bundle = tmp_path / "corp.pem"
    ca_bundle.write_text("not a certificate\n", encoding="utf-8")
    monkeypatch.chdir(tmp_path)

    result = runner.invoke(app, ["debug", "metrics", SERVER, "--ca-bundle", str(ca_bundle)])

    assert result.exit_code == 1
    assert "error preparing HTTP client" in result.output
    assert result.exception is None or isinstance(result.exception, SystemExit)
    assert not (tmp_path / "debug.tar.gz").exists()


def test_debug_rejects_out_of_range_port(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    calls: list[str] = []
    _patch_client(monkeypatch, {"/metrics": b"up 1\n"}, calls)
    monkeypatch.chdir(tmp_path)

    result = runner.invoke(app, ["debug", "metrics", "http://localhost:99999"])

    assert result.exit_code == 1
    assert "invalid port" in result.output
    assert calls == []
