"""Citrix StoreFront login and launch file retrieval.

StoreFront has no stable API for scripted logins. The browser receiver walks
a fixed chain of requests, each one revealing the path or token needed for
the next, and this module replays that chain:

    1.  GET the base address; where it lands is the logon point
    2.  Home/Configuration on the logon point -> resource list path
    3.  resource list (rejected) -> auth methods path, from a header
    4.  auth methods -> ExplicitForms requirements path
    5.  requirements -> StateContext and Postback path
    6.  post credentials -> Postback or RedirectURL path
    7.  register the client (cookies only)
    8.  GET the base address again; where it lands is the store
    9.  Home/Configuration on the store (cookies only)
    10. Home/Configuration again -> CsrfToken cookie, resource list path
    11. add CSRF/Referer headers and client detection cookies
    12. resource list (rejected) -> CitrixAGBasic auth methods path
    13. auth methods -> gateway login path
    14. gateway login (cookies only)
    15. resource list -> catalog JSON
    16. download the launch file for the requested application

Every attempt starts from an empty cookie jar. The first failing step aborts
the attempt with a StepError naming the step; retrying is up to the caller.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Callable

import httpx

from .artifact import DEFAULT_ARTIFACT_NAME, save_launch_descriptor
from .catalog import parse_resource_list, resolve_launch_path
from .exceptions import ExtractionError, LauncherError, StepError
from .extract import attribute_value, cookie_value, header_attribute, tag_inner_text
from .session import FollowUpKind, FollowUpPath, GatewaySession

CONFIGURATION_PATH = "Home/Configuration"
AUTHENTICATE_HEADER = "CitrixWebReceiver-Authenticate"
EXPLICIT_FORMS_MARKER = 'method name="ExplicitForms"'
GATEWAY_BASIC_MARKER = 'method name="CitrixAGBasic"'
CSRF_COOKIE = "CsrfToken"

# Cookies the receiver's client detection would normally set in a browser
CLIENT_DETECTION_COOKIES = {
    "CtxsClientDetectionDone": "true",
    "CtxsHasUpgradeBeenShown": "true",
    "CtxsUserPreferredClient": "Native",
}

CATALOG_FORM = {"format": "json", "resourceDetails": "Default"}

USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) Gecko/20100101 Firefox/145.0"

# Failures a step may raise; anything else is a bug and propagates as-is
STEP_FAILURES = (httpx.HTTPError, httpx.InvalidURL, LauncherError, OSError)


@dataclass(frozen=True)
class Step:
    """One exchange in the login chain."""

    label: str
    run: Callable[[httpx.Client, GatewaySession], None]


class StoreFrontGateway:
    """Log in to a StoreFront gateway and download one application's launch file."""

    def __init__(
        self,
        base_uri: str,
        application_name: str,
        login: str,
        password: str,
        *,
        output_path: Path = Path(DEFAULT_ARTIFACT_NAME),
        transport: httpx.BaseTransport | None = None,
        timeout: float = 30.0,
        verify: bool = True,
        progress_callback: Callable[[str], None] | None = None,
    ):
        """Initialize the gateway client.

        Args:
            base_uri: Gateway address users browse to (usually https).
            application_name: Resource name exactly as shown in StoreFront.
            login: Gateway user name.
            password: Gateway password.
            output_path: Where the validated launch file is written.
            transport: Optional httpx transport (used by tests).
            timeout: Per-request timeout in seconds.
            verify: Verify TLS certificates.
            progress_callback: Optional callback for progress messages.
        """
        self.base_uri = base_uri
        self.application_name = application_name
        self.login = login
        self.password = password
        self.output_path = output_path
        self._transport = transport
        self._timeout = timeout
        self._verify = verify
        self._progress = progress_callback or (lambda x: None)

    @property
    def steps(self) -> tuple[Step, ...]:
        """Login chain in the order StoreFront requires."""
        return (
            Step("initial", self._discover_entry),
            Step("configure-1", self._configure_initial),
            Step("resource-list-probe-1", self._probe_initial_resources),
            Step("auth-methods-1", self._discover_explicit_forms),
            Step("auth-requirements", self._get_auth_requirements),
            Step("credential-submission", self._submit_credentials),
            Step("client-registration", self._register_client),
            Step("internal-redirect", self._discover_internal),
            Step("configure-2", self._configure_internal),
            Step("csrf", self._acquire_csrf),
            Step("schema-upgrade", self._upgrade_schema),
            Step("resource-list-probe-2", self._probe_internal_resources),
            Step("auth-methods-2", self._discover_gateway_login),
            Step("basic-login", self._gateway_login),
            Step("resource-list", self._list_resources),
            Step("catalog-resolution", self._resolve_application),
            Step("artifact-download", self._download_launch_file),
        )

    def fetch_launch_file(self) -> Path:
        """Run one complete login attempt and save the launch file.

        Returns:
            Path of the validated launch file.

        Raises:
            StepError: If any step fails. ``step`` names the failing step and
                ``cause`` holds the underlying error.
        """
        with self._new_client() as client:
            try:
                session = GatewaySession.start(self.base_uri, cookies=client.cookies)
            except LauncherError as e:
                raise StepError("initial", e) from e

            for step in self.steps:
                self._progress(f"Step: {step.label}")
                try:
                    step.run(client, session)
                except STEP_FAILURES as e:
                    raise StepError(step.label, e) from e

        self._progress(f"Launch file saved to {self.output_path}")
        return self.output_path

    def _new_client(self) -> httpx.Client:
        return httpx.Client(
            transport=self._transport,
            timeout=self._timeout,
            verify=self._verify,
            follow_redirects=True,
            headers={"User-Agent": USER_AGENT},
        )

    def _headers(self, session: GatewaySession) -> dict[str, str]:
        """Headers StoreFront expects on receiver requests."""
        base = session.base_authority
        headers = {
            "Host": base.netloc.decode("ascii"),
            "Origin": str(base),
            "X-Citrix-Isusinghttps": "Yes",
            "X-Requested-With": "XMLHttpRequest",
        }
        headers.update(session.extra_headers)
        return headers

    def _post(
        self,
        client: httpx.Client,
        session: GatewaySession,
        url: httpx.URL,
        data: dict[str, str] | None = None,
    ) -> httpx.Response:
        headers = self._headers(session)
        if data is None:
            headers["Content-Length"] = "0"
            return client.post(url, headers=headers)
        return client.post(url, headers=headers, data=data)

    # --- Pre-authentication ---

    def _discover_entry(self, client: httpx.Client, session: GatewaySession) -> None:
        # Plain browser-style fetch, outside the session's cookie jar
        with self._new_client() as probe:
            response = probe.get(session.base_authority)
        session.initial_authority = response.url.join("./")

    def _configure_initial(self, client: httpx.Client, session: GatewaySession) -> None:
        url = session.require_initial().join(CONFIGURATION_PATH)
        response = self._post(client, session, url)
        session.resource_list_path = attribute_value(response.text, "resourcesProxy", "listURL")

    def _probe_initial_resources(self, client: httpx.Client, session: GatewaySession) -> None:
        url = session.require_initial().join(session.require("resource_list_path"))
        response = self._post(client, session, url)
        session.auth_methods_path = header_attribute(response.headers, AUTHENTICATE_HEADER, "location")

    def _discover_explicit_forms(self, client: httpx.Client, session: GatewaySession) -> None:
        url = session.require_initial().join(session.require("auth_methods_path"))
        response = self._post(client, session, url)
        session.auth_submit_path = attribute_value(response.text, EXPLICIT_FORMS_MARKER, "url")

    def _get_auth_requirements(self, client: httpx.Client, session: GatewaySession) -> None:
        url = session.base_authority.join(session.require("auth_submit_path"))
        response = self._post(client, session, url)
        session.state_context = tag_inner_text(response.text, "StateContext")
        session.postback_path = tag_inner_text(response.text, "Postback")

    def _submit_credentials(self, client: httpx.Client, session: GatewaySession) -> None:
        url = session.base_authority.join(session.require("postback_path"))
        form = {
            "login": self.login,
            "passwd": self.password,
            "savecredentials": "false",
            "nsg-x1-logon-button": "Log On",
            "StateContext": session.require("state_context"),
        }
        response = self._post(client, session, url, data=form)
        session.follow_up = select_follow_up(response.text)
        session.authenticated = True

    def _register_client(self, client: httpx.Client, session: GatewaySession) -> None:
        if session.follow_up is None:
            raise ExtractionError("Postback", "No follow-up path after credential submission")
        url = session.base_authority.join(session.follow_up.path)
        form = {
            "nsg-setclient": "wica",
            "StateContext": session.require("state_context"),
        }
        self._post(client, session, url, data=form)

    # --- Post-authentication ---

    def _discover_internal(self, client: httpx.Client, session: GatewaySession) -> None:
        response = client.get(session.base_authority)
        session.set_internal(session.base_authority.join(response.url.path))

    def _configure_internal(self, client: httpx.Client, session: GatewaySession) -> None:
        # Body unused; the exchange sets cookies the CSRF step relies on
        url = session.require_internal().join(CONFIGURATION_PATH)
        self._post(client, session, url)

    def _acquire_csrf(self, client: httpx.Client, session: GatewaySession) -> None:
        url = session.require_internal().join(CONFIGURATION_PATH)
        response = self._post(client, session, url)
        session.csrf_token = cookie_value(response.headers, CSRF_COOKIE)
        session.resource_list_path = attribute_value(response.text, "resourcesProxy", "listURL")

    def _upgrade_schema(self, client: httpx.Client, session: GatewaySession) -> None:
        internal = session.require_internal()
        session.extra_headers = {
            "Csrf-Token": session.require_csrf(),
            "Referer": str(internal),
        }
        for name, value in CLIENT_DETECTION_COOKIES.items():
            session.cookies.set(name, value, domain=session.cookie_domain, path=internal.path)

    def _probe_internal_resources(self, client: httpx.Client, session: GatewaySession) -> None:
        # Expected to be rejected; it sets CtxsDeviceId and names the real auth method
        url = session.require_internal().join(session.require("resource_list_path"))
        response = self._post(client, session, url, data=CATALOG_FORM)
        session.auth_methods_path = header_attribute(response.headers, AUTHENTICATE_HEADER, "location")

    def _discover_gateway_login(self, client: httpx.Client, session: GatewaySession) -> None:
        url = session.require_internal().join(session.require("auth_methods_path"))
        response = self._post(client, session, url)
        session.auth_login_path = attribute_value(response.text, GATEWAY_BASIC_MARKER, "url")

    def _gateway_login(self, client: httpx.Client, session: GatewaySession) -> None:
        url = session.require_internal().join(session.require("auth_login_path"))
        self._post(client, session, url)

    def _list_resources(self, client: httpx.Client, session: GatewaySession) -> None:
        url = session.require_internal().join(session.require("resource_list_path"))
        response = self._post(client, session, url, data=CATALOG_FORM)
        session.catalog_body = response.text

    def _resolve_application(self, client: httpx.Client, session: GatewaySession) -> None:
        catalog = parse_resource_list(session.require("catalog_body"))
        session.launch_path = resolve_launch_path(catalog, self.application_name)

    def _download_launch_file(self, client: httpx.Client, session: GatewaySession) -> None:
        url = launch_file_url(session)
        response = client.get(url)
        save_launch_descriptor(response.content, self.output_path)


def select_follow_up(body: str) -> FollowUpPath:
    """Pick the client registration path from a credential submission response.

    StoreFront answers with a Postback element when it wants more from the
    client and with a RedirectURL once logon is complete.

    Raises:
        ExtractionError: If neither element is present (e.g. rejected login).
    """
    try:
        path = tag_inner_text(body, FollowUpKind.POSTBACK.value)
    except ExtractionError:
        return FollowUpPath(FollowUpKind.REDIRECT, tag_inner_text(body, FollowUpKind.REDIRECT.value))
    return FollowUpPath(FollowUpKind.POSTBACK, path)


def launch_file_url(session: GatewaySession) -> httpx.URL:
    """Download address for the resolved launch path, carrying the CSRF token."""
    internal = session.require_internal()
    url = httpx.URL(f"{internal}{session.require('launch_path')}")
    return url.join(f"?CsrfToken={session.require_csrf()}&IsUsingHttps=Yes")
