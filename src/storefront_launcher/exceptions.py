"""Custom exceptions for the StoreFront launcher."""


class LauncherError(Exception):
    """Base exception for launcher errors."""

    pass


class ConfigError(LauncherError):
    """Settings are missing, unreadable or invalid."""

    pass


class AddressError(LauncherError):
    """An address could not be parsed or has no host to scope cookies to."""

    pass


class ExtractionError(LauncherError):
    """A tag, attribute, cookie or header was not found in a response."""

    def __init__(self, name: str, message: str):
        super().__init__(message)
        self.name = name


class SessionStateError(LauncherError):
    """Gateway session state is missing a field a step depends on."""

    pass


class CatalogError(LauncherError):
    """The resource catalog cannot satisfy the request."""

    pass


class MalformedCatalogError(CatalogError):
    """Catalog payload is not JSON or carries no resource list."""

    pass


class ApplicationNotFoundError(CatalogError):
    """No catalog entry has the requested application name."""

    pass


class MissingLaunchPathError(CatalogError):
    """The matching catalog entry has no launch URL."""

    pass


class InvalidArtifactError(LauncherError):
    """Downloaded content is not a launch descriptor."""

    pass


class StepError(LauncherError):
    """A gateway protocol step failed; the whole attempt is aborted."""

    def __init__(self, step: str, cause: BaseException | str):
        self.step = step
        self.cause = cause
        super().__init__(f"[{step}] {cause}")
