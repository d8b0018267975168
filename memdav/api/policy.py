# memdav/api/policy.py
"""
Access policy applied to every request before it reaches the WebDAV engine.

The policy is built once at startup and never changes, so evaluating it
needs no locking. Each request gets an explicit Decision.
"""
import base64
import binascii
import secrets
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from memdav.config import Settings

# Realm sent in Basic authentication challenges
REALM = "memdav"

# Methods allowed in read-only mode
READ_ONLY_METHODS = frozenset({"OPTIONS", "GET", "HEAD", "PROPFIND"})


@dataclass(frozen=True)
class Credential:
    """Username and password pair. Both empty means "no credential"."""
    username: str = ""
    password: str = ""

    @property
    def is_empty(self) -> bool:
        return not self.username and not self.password

    def matches(self, other: "Credential") -> bool:
        # Compare both fields so timing doesn't tell which one was wrong
        user_ok = secrets.compare_digest(self.username.encode(), other.username.encode())
        password_ok = secrets.compare_digest(self.password.encode(), other.password.encode())
        return user_ok and password_ok


def parse_basic_auth(header: Optional[str]) -> Optional[Credential]:
    """
    Extract the credential from an ``Authorization: Basic`` header.

    Returns:
        The presented Credential, or None if the header is missing, uses
        another scheme or is malformed
    """
    if not header:
        return None
    scheme, _, param = header.strip().partition(" ")
    if scheme.lower() != "basic":
        return None
    try:
        decoded = base64.b64decode(param.strip(), validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError):
        return None
    username, sep, password = decoded.partition(":")
    if not sep:
        return None
    return Credential(username=username, password=password)


class Outcome(str, Enum):
    ALLOW = "allow"
    CHALLENGE = "challenge"  # answer 401 with a Basic challenge
    DENY = "deny"  # drop silently, the engine is never invoked
    SERVE_FILE = "serve_file"  # answer with the fixed file


@dataclass(frozen=True)
class Decision:
    outcome: Outcome
    reason: str = ""


@dataclass(frozen=True)
class AccessPolicy:
    """
    Immutable per-process access policy.

    Attributes:
        credential: Required credential; empty disables authentication
        no_delete: Drop DELETE requests
        read_only: Only allow READ_ONLY_METHODS
        serve_file: Answer every GET with this file from disk
    """
    credential: Credential = field(default_factory=Credential)
    no_delete: bool = False
    read_only: bool = False
    serve_file: Optional[str] = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "AccessPolicy":
        return cls(
            credential=Credential(username=settings.USERNAME, password=settings.PASSWORD),
            no_delete=settings.NO_DELETE,
            read_only=settings.READ_ONLY,
            serve_file=settings.SERVE_FILE or None,
        )

    @property
    def auth_required(self) -> bool:
        return not self.credential.is_empty

    def decide(self, method: str, presented: Optional[Credential] = None) -> Decision:
        """
        Decide what happens to a request.

        Steps, in order: authentication, DELETE suppression, the serve-file
        GET override, then the read-only whitelist.
        """
        if self.auth_required:
            if presented is None or presented.is_empty:
                return Decision(Outcome.CHALLENGE, "no credentials presented")
            if not self.credential.matches(presented):
                return Decision(Outcome.CHALLENGE, "credentials do not match")

        method = method.upper()
        if method == "DELETE" and self.no_delete:
            return Decision(Outcome.DENY, "DELETE is disabled")
        if method == "GET" and self.serve_file:
            return Decision(Outcome.SERVE_FILE)
        if self.read_only and method not in READ_ONLY_METHODS:
            return Decision(Outcome.DENY, f"{method} is not allowed in read-only mode")
        return Decision(Outcome.ALLOW)
