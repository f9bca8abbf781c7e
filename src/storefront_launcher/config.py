"""Configuration handling for the StoreFront launcher."""

import json
import os
from dataclasses import asdict, dataclass, fields
from pathlib import Path

import httpx
from cryptography.fernet import Fernet, InvalidToken

from .artifact import DEFAULT_ARTIFACT_NAME
from .exceptions import ConfigError

DEFAULT_CONFIG_DIR = Path.home() / ".config" / "storefront-launcher"
DEFAULT_SETTINGS_FILE = DEFAULT_CONFIG_DIR / "settings.enc"
DEFAULT_KEY_FILE = DEFAULT_CONFIG_DIR / "settings.key"

# Text every StoreFront/Gateway logon page carries
GATEWAY_SIGNATURE = "Citrix"


def load_env(start: Path | None = None) -> Path | None:
    """Load STOREFRONT_* defaults from the nearest local.env.

    Looks in ``start`` (default: the working directory) and up to three
    parents. Variables already set in the environment win.

    Returns:
        The file that was read, or None if there was none.
    """
    start = start or Path.cwd()
    for parent in [start, *list(start.parents)[:3]]:
        env_file = parent / "local.env"
        if not env_file.is_file():
            continue
        for line in env_file.read_text().splitlines():
            line = line.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue
            key, _, value = line.partition("=")
            os.environ.setdefault(key.strip(), value.strip().strip('"').strip("'"))
        return env_file
    return None


def _env_float(name: str, default: str) -> float:
    raw = os.environ.get(name, default)
    try:
        return float(raw)
    except ValueError as e:
        raise ConfigError(f"{name} must be a number of seconds, got {raw!r}") from e


@dataclass
class LauncherSettings:
    """Settings for one gateway/application pair.

    Settings can be loaded from:
    1. Environment variables (STOREFRONT_URL, STOREFRONT_APP, ...)
    2. The encrypted settings file written by ``configure``
    3. Explicit parameters
    """

    base_uri: str = ""
    application_name: str = ""
    login: str = ""
    password: str = ""
    output_path: str = DEFAULT_ARTIFACT_NAME
    timeout: float = 30.0
    verify_ssl: bool = True
    retry_delay: float = 5.0
    poll_interval: float = 1.0

    @property
    def is_empty(self) -> bool:
        """True if nothing identifying a gateway login has been set."""
        return not (self.base_uri or self.login or self.password)

    @property
    def is_valid(self) -> bool:
        return not self.validate()

    @classmethod
    def from_env(cls) -> "LauncherSettings":
        """Load settings from environment variables.

        Environment variables:
            STOREFRONT_URL: Gateway address (https)
            STOREFRONT_APP: Application name as listed in StoreFront
            STOREFRONT_USER: Login
            STOREFRONT_PASSWORD: Password
            STOREFRONT_OUTPUT: Launch file path (default AutoLaunch.ica)
            STOREFRONT_TIMEOUT: Request timeout in seconds
            STOREFRONT_VERIFY_SSL: Set to "false" to skip TLS verification
            STOREFRONT_RETRY_DELAY: Seconds to wait after a failed attempt

        Returns:
            LauncherSettings instance

        Raises:
            ConfigError: If a numeric variable is not a number.
        """
        return cls(
            base_uri=os.environ.get("STOREFRONT_URL", ""),
            application_name=os.environ.get("STOREFRONT_APP", ""),
            login=os.environ.get("STOREFRONT_USER", ""),
            password=os.environ.get("STOREFRONT_PASSWORD", ""),
            output_path=os.environ.get("STOREFRONT_OUTPUT", DEFAULT_ARTIFACT_NAME),
            timeout=_env_float("STOREFRONT_TIMEOUT", "30"),
            verify_ssl=os.environ.get("STOREFRONT_VERIFY_SSL", "true").lower() != "false",
            retry_delay=_env_float("STOREFRONT_RETRY_DELAY", "5"),
        )

    @classmethod
    def from_dict(cls, data: dict) -> "LauncherSettings":
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})

    def to_dict(self) -> dict:
        return asdict(self)

    def validate(self) -> list[str]:
        """Validate settings, returning a list of problems.

        Returns:
            List of missing or invalid field descriptions.
        """
        problems = []
        if not self.base_uri:
            problems.append("base_uri (STOREFRONT_URL)")
        else:
            try:
                url = httpx.URL(self.base_uri)
            except httpx.InvalidURL:
                problems.append("base_uri is not a valid URL")
            else:
                if url.scheme != "https":
                    problems.append("base_uri must use https")
                elif not url.host:
                    problems.append("base_uri has no host")
        if not self.application_name:
            problems.append("application_name (STOREFRONT_APP)")
        if not self.login and not self.password:
            problems.append("login/password (STOREFRONT_USER, STOREFRONT_PASSWORD)")
        return problems


class SettingsStore:
    """Encrypted settings file.

    The Fernet key is supplied by the caller and must be the same one used to
    write the file; a different key makes the file unreadable, in which case
    ``load`` reports it and the caller is expected to collect settings again.
    """

    def __init__(self, path: Path, key: bytes):
        self.path = path
        try:
            self._fernet = Fernet(key)
        except ValueError as e:
            raise ConfigError(f"Invalid settings key: {e}") from e

    @staticmethod
    def generate_key() -> bytes:
        return Fernet.generate_key()

    @classmethod
    def load_or_create_key(cls, path: Path = DEFAULT_KEY_FILE) -> bytes:
        """Read the key file, creating it (owner-only) on first use."""
        if path.exists():
            return path.read_bytes().strip()
        path.parent.mkdir(parents=True, exist_ok=True)
        key = cls.generate_key()
        path.write_bytes(key)
        path.chmod(0o600)
        return key

    def load(self) -> LauncherSettings:
        """Decrypt and parse the settings file.

        Raises:
            ConfigError: With the reason the file could not be used.
        """
        if not self.path.exists():
            raise ConfigError(f"No settings file was found at {self.path}")
        try:
            raw = self.path.read_bytes()
        except OSError as e:
            raise ConfigError(f"Settings file is unreadable: {e}") from e
        if not raw.strip():
            raise ConfigError("Settings file is empty")
        try:
            decrypted = self._fernet.decrypt(raw.strip())
        except InvalidToken as e:
            raise ConfigError("Settings file does not match the encryption key") from e
        try:
            data = json.loads(decrypted)
        except json.JSONDecodeError as e:
            raise ConfigError("Settings file is corrupted") from e
        if not isinstance(data, dict):
            raise ConfigError("Settings file is corrupted")
        return LauncherSettings.from_dict(data)

    def save(self, settings: LauncherSettings) -> None:
        """Encrypt and write settings."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        token = self._fernet.encrypt(json.dumps(settings.to_dict()).encode())
        self.path.write_bytes(token)


def verify_gateway(base_uri: str, client: httpx.Client | None = None) -> None:
    """Check that base_uri is an https address serving a Citrix logon page.

    Raises:
        ConfigError: If the address is not https, unreachable or unrecognized.
    """
    try:
        url = httpx.URL(base_uri)
    except httpx.InvalidURL as e:
        raise ConfigError(f"Invalid URI: {e}") from e
    if url.scheme != "https":
        raise ConfigError("URI must use HTTPS.")

    owns_client = client is None
    client = client or httpx.Client(follow_redirects=True, timeout=30.0)
    try:
        response = client.get(url)
    except httpx.HTTPError as e:
        raise ConfigError(f"Failed to connect to gateway: {e}") from e
    finally:
        if owns_client:
            client.close()

    if GATEWAY_SIGNATURE not in response.text:
        raise ConfigError("Gateway not recognized.")
