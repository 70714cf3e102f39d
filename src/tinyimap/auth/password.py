from __future__ import annotations

from dataclasses import dataclass, field

from tinyimap.auth.base import AuthContext, AuthMechanism
from tinyimap.errors import UnsupportedAuthMechanismError


@dataclass(frozen=True)
class PasswordAuth:
    """
    Username/password auth.
    - mechanism="LOGIN": plain LOGIN command
    - mechanism="PLAIN": AUTHENTICATE PLAIN
    """
    username: str
    password: str = field(repr=False)
    mechanism: str = "LOGIN"

    def apply_imap(self, client, ctx: AuthContext) -> None:
        mech = self.mechanism.upper()
        if mech == "LOGIN":
            client.login(self.username, self.password)
        elif mech == AuthMechanism.PLAIN.value:
            client.authenticate(AuthMechanism.PLAIN, self.username, self.password)
        else:
            raise UnsupportedAuthMechanismError(
                f"PasswordAuth does not support mechanism {self.mechanism!r}"
            )
