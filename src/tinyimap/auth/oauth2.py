from __future__ import annotations

import base64
from dataclasses import dataclass
from typing import Callable

from tinyimap.auth.base import AuthContext, AuthMechanism
from tinyimap.errors import AuthError


def xoauth2_string(username: str, access_token: str) -> str:
    # Format: "user=<email>\x01auth=Bearer <token>\x01\x01", base64 encoded
    s = f"user={username}\x01auth=Bearer {access_token}\x01\x01"
    return base64.b64encode(s.encode("utf-8")).decode("ascii")


@dataclass(frozen=True)
class OAuth2Auth:
    """
    XOAUTH2-based auth. You provide a function that returns a fresh access token.
    - token_provider() -> access_token (string)
    """
    username: str
    token_provider: Callable[[], str]

    def apply_imap(self, client, ctx: AuthContext) -> None:
        try:
            token = self.token_provider()
        except Exception as e:
            raise AuthError(f"IMAP XOAUTH2 token provider failed for {ctx.host}: {e}") from e

        client.authenticate(AuthMechanism.XOAUTH2, self.username, token)
