"""CLI for the StoreFront launcher."""

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape

from .config import (
    DEFAULT_KEY_FILE,
    DEFAULT_SETTINGS_FILE,
    LauncherSettings,
    SettingsStore,
    load_env,
    verify_gateway,
)
from .exceptions import ConfigError, StepError
from .gateway import StoreFrontGateway
from .launcher import Launcher

app = typer.Typer(help="Log in to a Citrix StoreFront gateway and launch a published application")
console = Console()

SETTINGS_HELP = "Encrypted settings file"
KEY_HELP = "Key file used to encrypt the settings file"


def open_store(settings_file: Path, key_file: Path) -> SettingsStore:
    """Open the settings store, creating its key file on first use.

    Raises:
        ConfigError: If the key file cannot be read or created.
    """
    try:
        key = SettingsStore.load_or_create_key(key_file)
    except OSError as e:
        raise ConfigError(f"Cannot use settings key {key_file}: {e}") from e
    return SettingsStore(settings_file, key)


def resolve_settings(settings_file: Path, key_file: Path) -> LauncherSettings:
    """Settings from the environment (or local.env), else from the settings file.

    Raises:
        ConfigError: If neither source yields valid settings.
    """
    load_env()
    settings = LauncherSettings.from_env()
    if settings.is_empty:
        settings = open_store(settings_file, key_file).load()
    problems = settings.validate()
    if problems:
        raise ConfigError(f"Missing or invalid settings: {', '.join(problems)}")
    return settings


@app.command()
def fetch(
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Where to write the launch file"),
    settings_file: Path = typer.Option(DEFAULT_SETTINGS_FILE, "--settings", help=SETTINGS_HELP),
    key_file: Path = typer.Option(DEFAULT_KEY_FILE, "--key", help=KEY_HELP),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show each protocol step"),
):
    """Log in once and download the launch file."""
    try:
        settings = resolve_settings(settings_file, key_file)
    except ConfigError as e:
        console.print(f"[red]Error:[/red] {e}")
        console.print("[dim]Set STOREFRONT_URL, STOREFRONT_APP, STOREFRONT_USER, STOREFRONT_PASSWORD or run 'configure'[/dim]")
        raise typer.Exit(1)

    gateway = StoreFrontGateway(
        settings.base_uri,
        settings.application_name,
        settings.login,
        settings.password,
        output_path=output or Path(settings.output_path),
        timeout=settings.timeout,
        verify=settings.verify_ssl,
        progress_callback=(lambda msg: console.print(f"[dim]{escape(msg)}[/dim]")) if verbose else None,
    )

    console.print(f"Logging in to [cyan]{settings.base_uri}[/cyan] as [cyan]{settings.login}[/cyan]")
    try:
        path = gateway.fetch_launch_file()
    except StepError as e:
        console.print(f"[red]✗ Failed at step {e.step}:[/red] {escape(str(e.cause))}")
        raise typer.Exit(1)

    console.print(f"[green]✓ Launch file saved:[/green] {path}")


@app.command()
def launch(
    settings_file: Path = typer.Option(DEFAULT_SETTINGS_FILE, "--settings", help=SETTINGS_HELP),
    key_file: Path = typer.Option(DEFAULT_KEY_FILE, "--key", help=KEY_HELP),
):
    """Keep the application running, logging in again whenever it closes."""
    launcher = Launcher(
        lambda: resolve_settings(settings_file, key_file),
        report=lambda message: console.print(escape(message)),
    )
    try:
        launcher.run()
    except KeyboardInterrupt:
        console.print("[yellow]Stopped[/yellow]")


@app.command()
def configure(
    settings_file: Path = typer.Option(DEFAULT_SETTINGS_FILE, "--settings", help=SETTINGS_HELP),
    key_file: Path = typer.Option(DEFAULT_KEY_FILE, "--key", help=KEY_HELP),
    skip_check: bool = typer.Option(False, "--skip-check", help="Do not contact the gateway"),
):
    """Prompt for settings and save them encrypted."""
    base_uri = typer.prompt("Base URI (https)")
    if not skip_check:
        console.print("Verifying gateway...")
        try:
            verify_gateway(base_uri)
        except ConfigError as e:
            console.print(f"[red]✗[/red] {e}")
            raise typer.Exit(1)
        console.print("[green]✓ Gateway verified[/green]")

    settings = LauncherSettings(
        base_uri=base_uri,
        application_name=typer.prompt("Application to launch"),
        login=typer.prompt("Login"),
        password=typer.prompt("Password", hide_input=True),
    )
    problems = settings.validate()
    if problems:
        console.print(f"[red]Invalid settings:[/red] {', '.join(problems)}")
        raise typer.Exit(1)

    try:
        open_store(settings_file, key_file).save(settings)
    except (ConfigError, OSError) as e:
        console.print(f"[red]✗ Could not save settings:[/red] {e}")
        raise typer.Exit(1)
    console.print(f"[green]Settings saved to {settings_file}[/green]")


@app.command()
def check(base_uri: str = typer.Argument(..., help="Gateway address")):
    """Check that an address serves a Citrix gateway logon page."""
    try:
        verify_gateway(base_uri)
    except ConfigError as e:
        console.print(f"[red]✗[/red] {e}")
        raise typer.Exit(1)
    console.print("[green]✓ Gateway verified[/green]")


@app.command()
def forget(
    settings_file: Path = typer.Option(DEFAULT_SETTINGS_FILE, "--settings", help=SETTINGS_HELP),
):
    """Delete saved settings."""
    if settings_file.exists():
        settings_file.unlink()
    console.print("[green]Settings cleared[/green]")


if __name__ == "__main__":
    app()
