"""Per-attempt gateway session state."""

from dataclasses import dataclass, field
from enum import Enum

import httpx

from .exceptions import AddressError, SessionStateError


class FollowUpKind(str, Enum):
    """Which element of the credential response named the next path."""

    POSTBACK = "Postback"
    REDIRECT = "RedirectURL"


@dataclass(frozen=True)
class FollowUpPath:
    """Path the client registration form is posted to."""

    kind: FollowUpKind
    path: str


def parse_authority(uri: str) -> httpx.URL:
    """Parse an absolute address that has a host.

    Raises:
        AddressError: If the address is malformed, relative or hostless.
    """
    try:
        url = httpx.URL(uri)
    except (httpx.InvalidURL, TypeError) as e:
        raise AddressError(f"Failed to parse base URI: {e}") from e
    if url.scheme not in ("http", "https"):
        raise AddressError(f"Failed to parse base URI: unsupported scheme in {uri!r}")
    if not url.host:
        raise AddressError("Failed to parse domain for base URI.")
    return url


@dataclass
class GatewaySession:
    """Mutable state threaded through one login attempt.

    Built empty for every attempt and discarded afterwards; cookies and
    tokens never carry over to the next attempt.
    """

    base_authority: httpx.URL
    cookies: httpx.Cookies = field(default_factory=httpx.Cookies)
    initial_authority: httpx.URL | None = None
    internal_authority: httpx.URL | None = None
    csrf_token: str | None = None
    resource_list_path: str | None = None

    # Intermediate values handed from one step to the next
    auth_methods_path: str | None = None
    auth_submit_path: str | None = None
    state_context: str | None = None
    postback_path: str | None = None
    follow_up: FollowUpPath | None = None
    authenticated: bool = False
    auth_login_path: str | None = None
    extra_headers: dict[str, str] = field(default_factory=dict)
    catalog_body: str | None = None
    launch_path: str | None = None

    @classmethod
    def start(cls, base_uri: str, cookies: httpx.Cookies | None = None) -> "GatewaySession":
        """Create a fresh session for base_uri."""
        return cls(
            base_authority=parse_authority(base_uri),
            cookies=cookies if cookies is not None else httpx.Cookies(),
        )

    @property
    def cookie_domain(self) -> str:
        return self.base_authority.host

    def require(self, field_name: str) -> str:
        """Return a string field produced by an earlier step."""
        value = getattr(self, field_name)
        if value is None:
            raise SessionStateError(f"Session is missing {field_name}")
        return value

    def require_initial(self) -> httpx.URL:
        if self.initial_authority is None:
            raise SessionStateError("Initial authority has not been discovered")
        return self.initial_authority

    def set_internal(self, url: httpx.URL) -> None:
        """Record the post-login authority; only valid once credentials succeeded."""
        if not self.authenticated:
            raise SessionStateError("Internal authority discovered before credential submission")
        self.internal_authority = url

    def require_internal(self) -> httpx.URL:
        if self.internal_authority is None:
            raise SessionStateError("Internal authority has not been discovered")
        return self.internal_authority

    def require_csrf(self) -> str:
        if not self.csrf_token:
            raise SessionStateError("CSRF token missing from session")
        return self.csrf_token
