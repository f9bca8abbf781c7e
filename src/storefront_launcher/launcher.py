"""Keep a published application open.

Loops over four states: load settings, log in and fetch the launch file,
hand the file to the OS, then watch the client while the session runs.
Failed steps are reported and retried after a delay with a completely fresh
gateway attempt.
"""

import time
from enum import Enum
from pathlib import Path
from typing import Callable

import psutil
import typer

from .config import LauncherSettings
from .exceptions import ConfigError, LauncherError
from .gateway import StoreFrontGateway

ICA_CLIENT_PROCESS = "wfica32.exe"


class LauncherState(str, Enum):
    INITIALIZATION = "initialization"
    READY_TO_LOG_IN = "ready-to-log-in"
    READY_TO_LAUNCH = "ready-to-launch"
    ACTIVE = "active"


def ica_is_running(process_name: str = ICA_CLIENT_PROCESS) -> bool:
    """True if a process named process_name (case-insensitive) is running."""
    wanted = process_name.lower()
    for proc in psutil.process_iter(["name"]):
        name = proc.info.get("name") or ""
        if name.lower() == wanted:
            return True
    return False


def open_launch_file(path: Path) -> None:
    """Open the launch file with the OS default handler (the receiver)."""
    result = typer.launch(str(path))
    if result != 0:
        raise LauncherError(f"Failed to launch file: exit status {result}")


def default_gateway_factory(settings: LauncherSettings, progress: Callable[[str], None]) -> StoreFrontGateway:
    return StoreFrontGateway(
        settings.base_uri,
        settings.application_name,
        settings.login,
        settings.password,
        output_path=Path(settings.output_path),
        timeout=settings.timeout,
        verify=settings.verify_ssl,
        progress_callback=progress,
    )


class Launcher:
    """Drive settings -> login -> launch -> watch, forever or for N iterations."""

    def __init__(
        self,
        settings_provider: Callable[[], LauncherSettings],
        *,
        gateway_factory: Callable[[LauncherSettings, Callable[[str], None]], StoreFrontGateway] = default_gateway_factory,
        open_file: Callable[[Path], None] = open_launch_file,
        is_running: Callable[[], bool] = ica_is_running,
        sleep: Callable[[float], None] = time.sleep,
        report: Callable[[str], None] | None = None,
    ):
        """Initialize the launcher.

        Args:
            settings_provider: Returns settings; raises ConfigError when none
                are usable.
            gateway_factory: Builds a gateway client for one attempt.
            open_file: Hands the launch file to the OS.
            is_running: True while the remote session client is running.
            sleep: Delay function.
            report: Optional callback for status messages.
        """
        self._settings_provider = settings_provider
        self._gateway_factory = gateway_factory
        self._open_file = open_file
        self._is_running = is_running
        self._sleep = sleep
        self._report = report or (lambda x: None)
        self.settings = LauncherSettings()
        self.launch_file: Path | None = None

    @property
    def state(self) -> LauncherState:
        if self._is_running():
            return LauncherState.ACTIVE
        if self.settings.is_empty or not self.settings.is_valid:
            return LauncherState.INITIALIZATION
        if self.launch_file is None:
            return LauncherState.READY_TO_LOG_IN
        return LauncherState.READY_TO_LAUNCH

    def step(self) -> LauncherState:
        """Run one loop iteration and return the state it acted on."""
        state = self.state
        if state is LauncherState.INITIALIZATION:
            self._initialize()
        elif state is LauncherState.READY_TO_LOG_IN:
            self._log_in()
        elif state is LauncherState.READY_TO_LAUNCH:
            self._launch()
        else:
            self._sleep(self.settings.poll_interval)
        return state

    def run(self, max_iterations: int | None = None) -> None:
        count = 0
        while max_iterations is None or count < max_iterations:
            self.step()
            count += 1

    def _initialize(self) -> None:
        self._report("Initializing...")
        try:
            settings = self._settings_provider()
        except ConfigError as e:
            self.settings = LauncherSettings()
            self._report(f"Error: {e}\n\nFailed to get settings. Retrying in {self.settings.retry_delay:g} seconds.")
            self._sleep(self.settings.retry_delay)
            return
        problems = settings.validate()
        if problems:
            self.settings = LauncherSettings()
            self._report(f"Error: invalid settings: {', '.join(problems)}\n\nRetrying in {settings.retry_delay:g} seconds.")
            self._sleep(settings.retry_delay)
            return
        self.settings = settings
        self._report("Settings loaded successfully.")

    def _log_in(self) -> None:
        self._report("Logging in...")
        delay = self.settings.retry_delay
        gateway = self._gateway_factory(self.settings, self._report)
        try:
            self.launch_file = gateway.fetch_launch_file()
        except LauncherError as e:
            self._report(f"Error: {e}\n\nFailed to get ICA file. Retrying in {delay:g} seconds.")
            self.settings = LauncherSettings()
            self.launch_file = None
            self._sleep(delay)
            return
        self._report("ICA file downloaded successfully.")

    def _launch(self) -> None:
        self._report("Launching file...")
        target = self.launch_file
        self.launch_file = None
        try:
            self._open_file(target)
        except (LauncherError, OSError) as e:
            self._report(f"Error: {e}\n\nFailed to launch file. Retrying in {self.settings.retry_delay:g} seconds.")
        else:
            self._report(f"File launched successfully: {target}")
        self._sleep(self.settings.retry_delay)
