from tinyimap.auth.base import AuthContext, AuthMechanism, IMAPAuth
from tinyimap.auth.password import PasswordAuth
from tinyimap.auth.oauth2 import OAuth2Auth, xoauth2_string

__all__ = [
    "AuthContext",
    "AuthMechanism",
    "IMAPAuth",
    "PasswordAuth",
    "OAuth2Auth",
    "xoauth2_string",
]
