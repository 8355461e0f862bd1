"""
Tests for network/tor.py.

The check endpoint is served by a fake requests session and the control port
by a fake stem Controller; nothing leaves the process.
"""

import subprocess
import sys
from pathlib import Path
from unittest.mock import MagicMock

import pytest
import requests
import stem
import stem.connection
from stem import Signal

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import network.tor as tor
from network.tor import TorConfig, TorIdentityProvider, TorUnreachable


class FakeResponse:
    def __init__(self, payload=None, status=200, bad_json=False):
        self.payload = payload
        self.status = status
        self.bad_json = bad_json

    def raise_for_status(self):
        if self.status >= 400:
            raise requests.HTTPError(f"{self.status} error")

    def json(self):
        if self.bad_json:
            raise ValueError("Expecting value")
        return self.payload


class FakeSession:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []

    def get(self, url, proxies=None, timeout=None):
        self.calls.append((url, proxies, timeout))
        if self.error:
            raise self.error
        return self.response


class FakeController:
    """Stand-in for stem.control.Controller."""

    def __init__(self, auth_error=None):
        self.auth_error = auth_error
        self.passwords = []
        self.signals = []
        self.closed = False

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.closed = True
        return False

    def authenticate(self, password=None):
        self.passwords.append(password)
        if self.auth_error:
            raise self.auth_error

    def signal(self, signal):
        self.signals.append(signal)


def install_controller(monkeypatch, controller=None, error=None):
    """Route Controller.from_port to a fake (or make it raise)."""
    calls = []

    def from_port(address=None, port=None):
        calls.append((address, port))
        if error:
            raise error
        return controller

    monkeypatch.setattr(tor.Controller, "from_port", staticmethod(from_port))
    return calls


# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------

class TestTorConfig:

    def test_proxy_urls(self):
        config = TorConfig(host="10.0.0.5", socks_port=9150)
        assert config.proxy_server == "socks5://10.0.0.5:9150"
        assert config.requests_proxy == "socks5h://10.0.0.5:9150"

    def test_provider_exposes_proxy(self):
        assert TorIdentityProvider(TorConfig()).proxy_server == "socks5://127.0.0.1:9050"


# ---------------------------------------------------------------------------
# Reachability
# ---------------------------------------------------------------------------

class TestReachable:

    def test_reachable(self, monkeypatch):
        connect = MagicMock()
        monkeypatch.setattr(tor.socket, "create_connection", connect)

        assert TorIdentityProvider(TorConfig()).is_reachable()
        connect.assert_called_once_with(("127.0.0.1", 9050), timeout=2.0)

    def test_refused(self, monkeypatch):
        def refuse(address, timeout=None):
            raise ConnectionRefusedError("refused")
        monkeypatch.setattr(tor.socket, "create_connection", refuse)

        assert not TorIdentityProvider(TorConfig()).is_reachable()


# ---------------------------------------------------------------------------
# Current identity
# ---------------------------------------------------------------------------

class TestCurrentIdentity:

    def test_returns_exit_ip(self):
        session = FakeSession(FakeResponse({"IsTor": True, "IP": "185.220.101.4"}))
        provider = TorIdentityProvider(TorConfig(), session=session)

        assert provider.current_identity() == "185.220.101.4"
        url, proxies, _ = session.calls[0]
        assert url == "https://check.torproject.org/api/ip"
        assert proxies["https"] == "socks5h://127.0.0.1:9050"

    def test_not_tor(self):
        session = FakeSession(FakeResponse({"IsTor": False, "IP": "1.2.3.4"}))
        with pytest.raises(TorUnreachable, match="Not connected through Tor"):
            TorIdentityProvider(TorConfig(), session=session).current_identity()

    def test_request_failure(self):
        session = FakeSession(error=requests.ConnectionError("SOCKS refused"))
        with pytest.raises(TorUnreachable, match="Failed to get Tor IP"):
            TorIdentityProvider(TorConfig(), session=session).current_identity()

    def test_http_error(self):
        session = FakeSession(FakeResponse(status=503))
        with pytest.raises(TorUnreachable):
            TorIdentityProvider(TorConfig(), session=session).current_identity()

    def test_bad_json(self):
        session = FakeSession(FakeResponse(bad_json=True))
        with pytest.raises(TorUnreachable, match="parse"):
            TorIdentityProvider(TorConfig(), session=session).current_identity()

    def test_missing_ip(self):
        session = FakeSession(FakeResponse({"IsTor": True}))
        with pytest.raises(TorUnreachable):
            TorIdentityProvider(TorConfig(), session=session).current_identity()


# ---------------------------------------------------------------------------
# Renewal
# ---------------------------------------------------------------------------

class TestRenew:

    def test_newnym_over_control_port(self, monkeypatch):
        controller = FakeController()
        calls = install_controller(monkeypatch, controller)
        waits = []

        TorIdentityProvider(TorConfig(control_password="secret"), sleep=waits.append).renew()

        assert calls == [("127.0.0.1", 9051)]
        assert controller.passwords == ["secret"]
        assert controller.signals == [Signal.NEWNYM]
        assert controller.closed
        assert waits == [2.5]

    def test_no_password(self, monkeypatch):
        controller = FakeController()
        install_controller(monkeypatch, controller)

        TorIdentityProvider(TorConfig(), sleep=lambda s: None).renew()
        assert controller.passwords == [None]

    def test_rejected_auth_falls_back_to_hup(self, monkeypatch):
        controller = FakeController(auth_error=stem.connection.IncorrectPassword("bad password"))
        install_controller(monkeypatch, controller)
        run = MagicMock(return_value=subprocess.CompletedProcess([], 0, "", ""))
        monkeypatch.setattr(tor.subprocess, "run", run)

        TorIdentityProvider(TorConfig(), sleep=lambda s: None).renew()

        assert run.call_args[0][0] == ["pkill", "-HUP", "-x", "tor"]
        assert controller.signals == []

    def test_hup_matches_exact_process_name(self, monkeypatch):
        run = MagicMock(return_value=subprocess.CompletedProcess([], 0, "", ""))
        monkeypatch.setattr(tor.subprocess, "run", run)

        TorIdentityProvider(TorConfig())._send_hup()

        argv = run.call_args[0][0]
        assert argv[0] == "pkill"
        assert "-x" in argv
        assert argv[-1] == "tor"

    def test_refused_control_port_falls_back(self, monkeypatch):
        install_controller(monkeypatch, error=stem.SocketError("connection refused"))
        run = MagicMock(return_value=subprocess.CompletedProcess([], 1, "", ""))
        monkeypatch.setattr(tor.subprocess, "run", run)

        TorIdentityProvider(TorConfig(), sleep=lambda s: None).renew()
        run.assert_called_once()

    def test_fallback_disabled(self, monkeypatch):
        install_controller(monkeypatch, error=stem.SocketError("connection refused"))
        run = MagicMock()
        monkeypatch.setattr(tor.subprocess, "run", run)

        TorIdentityProvider(TorConfig(hup_fallback=False), sleep=lambda s: None).renew()
        run.assert_not_called()

    def test_never_raises(self, monkeypatch):
        install_controller(monkeypatch, error=OSError("no route"))

        def no_pkill(*args, **kwargs):
            raise FileNotFoundError("pkill")
        monkeypatch.setattr(tor.subprocess, "run", no_pkill)

        TorIdentityProvider(TorConfig(), sleep=lambda s: None).renew()
