"""
Tor exit identity control.

Three operations back the batch runner:
- is_reachable: SOCKS port accepts TCP connections
- current_identity: exit IP as reported by check.torproject.org
- renew: request a new circuit (control port NEWNYM, HUP to "tor" fallback)
"""

from __future__ import annotations

import socket
import subprocess
import sys
import time
from dataclasses import dataclass

import requests
import stem
import stem.connection
from stem import Signal
from stem.control import Controller


DEFAULT_CHECK_URL = "https://check.torproject.org/api/ip"

# stem.SocketError is a ControllerError; auth failures are not
CONTROL_ERRORS = (OSError, stem.ControllerError, stem.connection.AuthenticationFailure)


class TorUnreachable(Exception):
    """Raised when the Tor exit identity cannot be determined."""
    pass


@dataclass(frozen=True)
class TorConfig:
    """Connection settings for the local Tor daemon."""
    host: str = "127.0.0.1"
    socks_port: int = 9050  # 9150 for Tor Browser
    control_port: int = 9051
    control_password: str = ""
    check_url: str = DEFAULT_CHECK_URL
    connect_timeout_seconds: float = 2.0
    identity_timeout_seconds: float = 8.0
    circuit_wait_seconds: float = 2.5  # settle time after NEWNYM
    hup_fallback: bool = True  # pkill -HUP -x tor when the control port refuses

    @property
    def proxy_server(self) -> str:
        """Proxy URL for the browser."""
        return f"socks5://{self.host}:{self.socks_port}"

    @property
    def requests_proxy(self) -> str:
        """Proxy URL for requests (remote DNS)."""
        return f"socks5h://{self.host}:{self.socks_port}"


class TorIdentityProvider:
    """Network identity provider backed by a local Tor daemon."""

    def __init__(
        self,
        config: TorConfig | None = None,
        session: requests.Session | None = None,
        sleep=time.sleep,
    ) -> None:
        self.config = config or TorConfig()
        self._session = session or requests.Session()
        self._sleep = sleep

    @property
    def proxy_server(self) -> str:
        return self.config.proxy_server

    def is_reachable(self) -> bool:
        """Check whether the SOCKS port accepts connections."""
        address = (self.config.host, self.config.socks_port)
        try:
            with socket.create_connection(address, timeout=self.config.connect_timeout_seconds):
                pass
        except OSError as e:
            print(
                f"[tor] cannot connect to proxy at {self.config.host}:{self.config.socks_port} - {e}",
                file=sys.stderr,
            )
            return False
        print(f"[tor] proxy is accessible at {self.config.host}:{self.config.socks_port}")
        return True

    def current_identity(self) -> str:
        """
        Return the current exit IP.

        Raises:
            TorUnreachable: request failed, response unparseable, or not a Tor exit
        """
        proxies = {
            "http": self.config.requests_proxy,
            "https": self.config.requests_proxy,
        }
        try:
            resp = self._session.get(
                self.config.check_url,
                proxies=proxies,
                timeout=self.config.identity_timeout_seconds,
            )
            resp.raise_for_status()
            data = resp.json()
        except requests.RequestException as e:
            raise TorUnreachable(f"Failed to get Tor IP: {e}") from e
        except ValueError as e:
            raise TorUnreachable("Failed to parse Tor check response") from e

        if not isinstance(data, dict) or not data.get("IsTor"):
            raise TorUnreachable("Not connected through Tor")
        ip = data.get("IP")
        if not ip:
            raise TorUnreachable("Tor check response has no IP")
        return str(ip)

    def renew(self) -> None:
        """Request a new circuit. Best-effort: never raises."""
        try:
            self._signal_newnym()
            print("  [tor] new identity requested (NEWNYM)")
        except CONTROL_ERRORS as e:
            print(f"  [tor] control port unavailable: {e}", file=sys.stderr)
            if self.config.hup_fallback:
                self._send_hup()

        print(f"  [tor] waiting {self.config.circuit_wait_seconds:.1f}s for new circuits...")
        self._sleep(self.config.circuit_wait_seconds)

    def _signal_newnym(self) -> None:
        address, port = self.config.host, self.config.control_port
        with Controller.from_port(address=address, port=port) as controller:
            controller.authenticate(password=self.config.control_password or None)
            controller.signal(Signal.NEWNYM)

    def _send_hup(self) -> None:
        # -x: exact process name, so "motor" or "monitor" are left alone
        try:
            result = subprocess.run(
                ["pkill", "-HUP", "-x", "tor"],
                capture_output=True, text=True, timeout=5,
            )
        except (OSError, subprocess.SubprocessError) as e:
            print(f"  [tor] could not send HUP signal: {e}", file=sys.stderr)
            return
        if result.returncode == 0:
            print("  [tor] circuits cleared (HUP)")
        else:
            print("  [tor] no tor process received HUP", file=sys.stderr)
