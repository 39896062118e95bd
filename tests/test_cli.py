"""Tests for etcd_authdump.cli - command-line interface."""

import contextlib
import io
from unittest.mock import patch

import pytest

from etcd_authdump.cli import build_parser, main
from etcd_authdump.client import EtcdClient


# ── Parser tests ─────────────────────────────────────────────────────


class TestParser:
    def test_build_parser(self):
        parser = build_parser()
        assert parser.prog == "etcd-auth-dump"

    def test_defaults(self):
        args = build_parser().parse_args([])
        assert args.etcdctl == "etcdctl"
        assert args.prev_revision == 0
        assert args.timeout is None
        assert args.verbose is False

    def test_prev_revision(self):
        args = build_parser().parse_args(["--prev-revision", "12"])
        assert args.prev_revision == 12

    def test_negative_prev_revision(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["--prev-revision", "-3"])

    def test_bare_commands(self):
        args = build_parser().parse_args(["--etcdctl", ""])
        assert args.etcdctl == ""


# ── main (against the fake gateway) ──────────────────────────────────


@pytest.fixture
def run(gateway, monkeypatch):
    monkeypatch.setenv("ETCD_ENDPOINTS", "http://a:2379")
    for var in ("ETCD_USER", "ETCD_PASSWORD", "ETCD_CACERT", "ETCD_CERT", "ETCD_KEY"):
        monkeypatch.delenv(var, raising=False)

    def from_config(config, *, transport=None):
        return EtcdClient(config.endpoint_urls(), transport=gateway.transport)

    with patch.object(EtcdClient, "from_config", side_effect=from_config):
        yield main


class TestMain:
    def test_prints_commands(self, run, gateway, capsys):
        gateway.add_role("r", ("READ", b"k", b"k"))
        gateway.users = {"u": ["r"]}

        assert run([]) == 0

        out = capsys.readouterr().out.splitlines()
        assert out == [
            "etcdctl role add r",
            "etcdctl role grant-permission r read k",
            "etcdctl user add u",
            "etcdctl user grant-role u r",
            "etcdctl auth enable",
        ]

    def test_without_prefix(self, run, gateway, capsys):
        gateway.enabled = False
        assert run(["--etcdctl", ""]) == 0
        assert capsys.readouterr().out == "auth disable\n"

    def test_unchanged(self, run, gateway, capsys):
        gateway.revision = 8
        assert run(["--prev-revision", "8"]) == 0
        assert capsys.readouterr().out == ""

    def test_inconsistent_snapshot_fails(self, run, gateway, capsys, caplog):
        original = gateway.handle

        def bump(request):
            response = original(request)
            if request.url.path == "/v3/auth/status":
                gateway.revision += 1
            return response

        gateway.handle = bump

        assert run([]) == 1
        assert capsys.readouterr().out == ""
        assert "changed during the dump" in caplog.text

    def test_unreachable(self, run, gateway, capsys, caplog):
        gateway.down.add("a")
        assert run([]) == 1
        assert capsys.readouterr().out == ""
        assert "Failed to reach etcd" in caplog.text

    def test_bad_config(self, monkeypatch, caplog):
        monkeypatch.setenv("ETCD_PASSWORD", "x")
        monkeypatch.delenv("ETCD_USER", raising=False)
        assert main([]) == 1
        assert "without a user" in caplog.text


    def test_missing_ca_file(self, monkeypatch, caplog, capsys, tmp_path):
        monkeypatch.setenv("ETCD_CACERT", str(tmp_path / "missing.pem"))
        for var in ("ETCD_USER", "ETCD_PASSWORD", "ETCD_CERT", "ETCD_KEY"):
            monkeypatch.delenv(var, raising=False)
        assert main([]) == 1
        assert capsys.readouterr().out == ""
        assert "Cannot load TLS material" in caplog.text

    def test_malformed_client_cert(self, monkeypatch, caplog, tmp_path):
        cert = tmp_path / "client.pem"
        cert.write_text("garbage\n")
        monkeypatch.setenv("ETCD_CERT", str(cert))
        monkeypatch.setenv("ETCD_KEY", str(cert))
        for var in ("ETCD_USER", "ETCD_PASSWORD", "ETCD_CACERT"):
            monkeypatch.delenv(var, raising=False)
        assert main([]) == 1
        assert "Cannot load TLS material" in caplog.text

    def test_redirected_stdout(self, run, gateway):
        gateway.add_role("r")
        buf = io.StringIO()
        with contextlib.redirect_stdout(buf):
            assert run(["--etcdctl", ""]) == 0
        assert buf.getvalue().splitlines() == ["role add r", "auth enable"]
