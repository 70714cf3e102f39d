# tinyimap/config.py
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import find_dotenv, load_dotenv

from tinyimap.auth import IMAPAuth, PasswordAuth
from tinyimap.errors import ConfigError

IMAP_PORT = 143
IMAP_SSL_PORT = 993


def _env_bool(value: Optional[str], default: bool) -> bool:
    if value is None or not value.strip():
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class IMAPConfig:
    host: str
    port: Optional[int] = None
    use_ssl: bool = False
    timeout: Optional[float] = None
    auth: Optional[IMAPAuth] = None

    @property
    def effective_port(self) -> int:
        if self.port:
            return self.port
        return IMAP_SSL_PORT if self.use_ssl else IMAP_PORT

    @classmethod
    def from_env(cls, prefix: str = "IMAP_", *, dotenv: bool = True) -> "IMAPConfig":
        """
        Build a config from environment variables (a .env file is loaded first):
        <prefix>HOST, PORT, SSL, TIMEOUT, USERNAME, PASSWORD, AUTH_MECHANISM.
        """
        if dotenv:
            load_dotenv(find_dotenv(usecwd=True))

        def get(name: str) -> Optional[str]:
            return os.getenv(prefix + name)

        host = (get("HOST") or "").strip()
        if not host:
            raise ConfigError(f"{prefix}HOST is required")

        port_raw = get("PORT")
        timeout_raw = get("TIMEOUT")
        try:
            port = int(port_raw) if port_raw else None
            timeout = float(timeout_raw) if timeout_raw else None
        except ValueError as e:
            raise ConfigError(f"invalid {prefix}PORT/{prefix}TIMEOUT: {e}") from e

        auth: Optional[IMAPAuth] = None
        username = get("USERNAME")
        if username:
            auth = PasswordAuth(
                username=username,
                password=get("PASSWORD") or "",
                mechanism=(get("AUTH_MECHANISM") or "LOGIN").strip(),
            )

        return cls(
            host=host,
            port=port,
            use_ssl=_env_bool(get("SSL"), default=False),
            timeout=timeout,
            auth=auth,
        )
