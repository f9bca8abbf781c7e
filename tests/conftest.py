"""Pytest fixtures for StoreFront launcher tests."""

import json
from typing import Callable

import httpx
import pytest

from storefront_launcher.gateway import StoreFrontGateway

BASE_URI = "https://gateway.example.com/"
HOST = "gateway.example.com"
APP_NAME = "Status Board"
CSRF = "csrf-4f2a9c"
STATE_CONTEXT = "c3RhdGUtY29udGV4dA=="
ICA_BODY = b"[Encoding]\r\nInputEncoding=UTF8\r\n\r\n[WFClient]\r\nVersion=2\r\n\r\n[ApplicationServers]\r\nStatus Board=\r\n"

LOGON = "/logon/LogonPoint/"
STORE = "/Citrix/StoreWeb/"

CONFIGURATION_BODY = (
    '<clientSettings><authManager getUsernameURL="Authentication/GetUserName" />'
    '<resourcesProxy listURL="Resources/List" enumerationURL="Resources/Enumerate" />'
    "</clientSettings>"
)
AUTHENTICATE_401 = 'CitrixAuth reason="authenticate", location="Authentication/GetAuthMethods"'
INITIAL_AUTH_METHODS = (
    '<?xml version="1.0"?><authMethods>'
    '<method name="ExplicitForms" url="/nf/auth/getAuthenticationRequirements.do" />'
    "</authMethods>"
)
AUTH_REQUIREMENTS = (
    "<AuthenticationRequirements>"
    f"<StateContext>{STATE_CONTEXT}</StateContext>"
    "<Postback>/nf/auth/doAuthentication.do</Postback>"
    "<CancelPostback>/Citrix/LogonPoint/ExplicitAuth/LogoffAuthenticate</CancelPostback>"
    "</AuthenticationRequirements>"
)
AUTH_SUCCESS = (
    "<AuthenticationStatus><Result>success</Result>"
    "<RedirectURL>/p/u/setClient.do</RedirectURL></AuthenticationStatus>"
)
AUTH_REJECTED = (
    "<AuthenticationRequirements><Result>more-info</Result>"
    "<Label>Incorrect credentials. Try again.</Label></AuthenticationRequirements>"
)
INTERNAL_AUTH_METHODS = (
    "<authMethods>"
    '<method name="ExplicitForms" url="ExplicitAuth/Login" />'
    '<method name="CitrixAGBasic" url="GatewayAuth/Login" />'
    "</authMethods>"
)
LAUNCH_PATH = "Resources/LaunchIca/U3RvcmUuU3RhdHVz.ica"
CATALOG = {
    "isSubscriptionEnabled": False,
    "resources": [
        {"name": "Notepad", "launchurl": "Resources/LaunchIca/Tm90ZXBhZA.ica"},
        {"name": APP_NAME, "launchurl": LAUNCH_PATH},
    ],
}


class FakeStoreFront:
    """Canned StoreFront + Gateway responses, keyed on method and path.

    Authentication state is read from the cookies each request carries, so
    the fake itself keeps no session and can serve repeated attempts.
    ``overrides`` maps an exchange name to a replacement response factory.
    """

    def __init__(self, accept_credentials: bool = True):
        self.accept_credentials = accept_credentials
        self.requests: list[httpx.Request] = []
        self.overrides: dict[str, Callable[[], httpx.Response]] = {}
        self.catalog_body: str = json.dumps(CATALOG)
        self.ica_body: bytes = ICA_BODY

    @property
    def paths(self) -> list[tuple[str, str]]:
        return [(r.method, r.url.path) for r in self.requests]

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        name, response = self._route(request)
        override = self.overrides.get(name)
        return override() if override else response

    def _cookies(self, request: httpx.Request) -> str:
        return request.headers.get("cookie", "")

    def _route(self, request: httpx.Request) -> tuple[str, httpx.Response]:
        path = request.url.path
        cookies = self._cookies(request)

        if path == "/":
            target = STORE if "NSC_AAAC=" in cookies else f"{LOGON}tmindex.html"
            return "root", httpx.Response(302, headers={"Location": target})
        if path == f"{LOGON}tmindex.html":
            return "logon-page", httpx.Response(200, text="<html><title>Citrix Gateway</title></html>")
        if path == f"{LOGON}Home/Configuration":
            return "configure-1", httpx.Response(
                200,
                text=CONFIGURATION_BODY,
                headers={"Set-Cookie": "ASP.NET_SessionId=pre-auth; path=/; HttpOnly"},
            )
        if path == f"{LOGON}Resources/List":
            return "resource-list-probe-1", httpx.Response(
                401, headers={"CitrixWebReceiver-Authenticate": AUTHENTICATE_401}
            )
        if path == f"{LOGON}Authentication/GetAuthMethods":
            return "auth-methods-1", httpx.Response(200, text=INITIAL_AUTH_METHODS)
        if path == "/nf/auth/getAuthenticationRequirements.do":
            return "auth-requirements", httpx.Response(200, text=AUTH_REQUIREMENTS)
        if path == "/nf/auth/doAuthentication.do":
            if not self.accept_credentials:
                return "credential-submission", httpx.Response(200, text=AUTH_REJECTED)
            return "credential-submission", httpx.Response(
                200,
                text=AUTH_SUCCESS,
                headers={"Set-Cookie": "NSC_AAAC=aaac-cookie; Path=/; Secure; HttpOnly"},
            )
        if path == "/p/u/setClient.do":
            return "client-registration", httpx.Response(
                200, text="ok", headers={"Set-Cookie": "NSC_CLIENT=wica; Path=/"}
            )
        if path == STORE:
            return "store-page", httpx.Response(200, text="<html>Citrix Receiver</html>")
        if path == f"{STORE}Home/Configuration":
            return "configure-2", httpx.Response(
                200,
                text=CONFIGURATION_BODY,
                headers={"Set-Cookie": f"CsrfToken={CSRF}; Path={STORE}"},
            )
        if path == f"{STORE}Resources/List":
            if "CtxsAuthId=" in cookies:
                return "resource-list", httpx.Response(200, text=self.catalog_body)
            return "resource-list-probe-2", httpx.Response(
                401,
                headers=[
                    ("CitrixWebReceiver-Authenticate", AUTHENTICATE_401),
                    ("Set-Cookie", f"CtxsDeviceId=device-1; Path={STORE}"),
                ],
            )
        if path == f"{STORE}Authentication/GetAuthMethods":
            return "auth-methods-2", httpx.Response(200, text=INTERNAL_AUTH_METHODS)
        if path == f"{STORE}GatewayAuth/Login":
            return "basic-login", httpx.Response(
                200, headers={"Set-Cookie": f"CtxsAuthId=auth-1; Path={STORE}; HttpOnly"}
            )
        if path == f"{STORE}{LAUNCH_PATH}":
            return "artifact-download", httpx.Response(200, content=self.ica_body)
        return "unknown", httpx.Response(404, text="not found")


@pytest.fixture
def fake_storefront() -> FakeStoreFront:
    return FakeStoreFront()


@pytest.fixture
def make_gateway(tmp_path):
    """Factory fixture building a gateway wired to a fake StoreFront."""

    def _make(fake: FakeStoreFront, application_name: str = APP_NAME, **kwargs) -> StoreFrontGateway:
        return StoreFrontGateway(
            BASE_URI,
            application_name,
            "jdoe",
            "s3cret",
            output_path=kwargs.pop("output_path", tmp_path / "AutoLaunch.ica"),
            transport=fake.transport,
            **kwargs,
        )

    return _make
