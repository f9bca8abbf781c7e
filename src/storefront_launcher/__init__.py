"""Citrix StoreFront launcher.

Logs in to a StoreFront gateway the way the browser receiver does, downloads
the launch (.ica) file for one published application and hands it to the
locally installed client. Each login attempt starts from a clean session.
"""

from .catalog import Resource, ResourceList, parse_resource_list, resolve_launch_path
from .config import LauncherSettings, SettingsStore, verify_gateway
from .exceptions import (
    AddressError,
    ApplicationNotFoundError,
    CatalogError,
    ConfigError,
    ExtractionError,
    InvalidArtifactError,
    LauncherError,
    MalformedCatalogError,
    MissingLaunchPathError,
    SessionStateError,
    StepError,
)
from .gateway import StoreFrontGateway
from .launcher import Launcher, LauncherState
from .session import FollowUpKind, FollowUpPath, GatewaySession

__all__ = [
    "StoreFrontGateway",
    "GatewaySession",
    "FollowUpKind",
    "FollowUpPath",
    "Resource",
    "ResourceList",
    "parse_resource_list",
    "resolve_launch_path",
    "LauncherSettings",
    "SettingsStore",
    "verify_gateway",
    "Launcher",
    "LauncherState",
    "LauncherError",
    "ConfigError",
    "AddressError",
    "ExtractionError",
    "SessionStateError",
    "CatalogError",
    "MalformedCatalogError",
    "ApplicationNotFoundError",
    "MissingLaunchPathError",
    "InvalidArtifactError",
    "StepError",
]
