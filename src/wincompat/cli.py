"""
Command-line interface for wincompat.

Usage:
    wincompat analyze ~/Games/prefix
    wincompat --wine /opt/wine-ge/bin/wine64 --prefix ~/Games/prefix prefix update
    wincompat --proton ~/proton/GE-Proton9-27 --prefix ~/Games/proton-prefix dxvk install ./dxvk-2.1
    wincompat --profile ./game dxvk version
"""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import NoReturn, Union

import click
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from wincompat import __version__
from wincompat.config import PROFILE_ENV, Profile, ProtonProfile, WineProfile
from wincompat.dxvk import DXVK_DLLS
from wincompat.errors import WincompatError
from wincompat.proton import Proton
from wincompat.wine import Wine


console = Console()


@dataclass
class Options:
    """Global options shared by all commands."""
    profile: Path | None
    wine: str | None
    proton: Path | None
    prefix: Path | None


def _fail(message: object) -> NoReturn:
    console.print(f"[red]Error:[/red] {message}")
    sys.exit(1)


def _profile(options: Options) -> Profile:
    """Profile file with command line overrides applied."""
    try:
        profile = Profile.load(options.profile) if options.profile else Profile()
    except (OSError, ValueError) as e:
        _fail(f"Failed to load profile: {e}")

    if options.proton:
        proton = profile.proton or ProtonProfile(path=str(options.proton))
        profile = Profile(proton=proton.model_copy(update={"path": str(options.proton)}))
    elif options.wine:
        wine = profile.wine or WineProfile()
        profile = Profile(wine=wine.model_copy(update={"binary": options.wine}))

    if options.prefix:
        prefix = str(options.prefix)
        if profile.proton is not None:
            profile.proton = profile.proton.model_copy(update={"prefix": prefix})
        else:
            wine = profile.wine or WineProfile()
            profile.wine = wine.model_copy(update={"prefix": prefix})

    return profile


def _environment(ctx: click.Context) -> Union[Wine, Proton]:
    try:
        return _profile(ctx.obj).build()
    except (ValidationError, ValueError) as e:
        _fail(f"Invalid configuration: {e}")


@click.group()
@click.version_option(__version__)
@click.option("--profile", type=click.Path(path_type=Path), envvar=PROFILE_ENV,
              help="Profile file or folder containing profile.json")
@click.option("--wine", "wine_binary", help="Wine binary (default: system wine)")
@click.option("--proton", "proton_path", type=click.Path(exists=True, file_okay=False, path_type=Path),
              help="Proton install folder")
@click.option("--prefix", type=click.Path(path_type=Path),
              help="Wine prefix, or the proton prefix with --proton")
@click.option("-v", "--verbose", is_flag=True, default=False, help="Show debug output")
@click.pass_context
def cli(
    ctx: click.Context,
    profile: Path | None,
    wine_binary: str | None,
    proton_path: Path | None,
    prefix: Path | None,
    verbose: bool,
):
    """wincompat - manage Wine/Proton prefixes and DXVK."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )
    ctx.obj = Options(profile=profile, wine=wine_binary, proton=proton_path, prefix=prefix)


@cli.command()
@click.argument("prefix_path", type=click.Path(exists=True, file_okay=False, path_type=Path))
def analyze(prefix_path: Path):
    """Analyze a Wine prefix and show its DXVK state."""
    from wincompat.analysis import PrefixAnalyzer

    with console.status("Analyzing prefix..."):
        result = PrefixAnalyzer(prefix_path).analyze()

    console.print()
    console.print(f"[bold]Prefix:[/bold] {result.prefix_path}")
    console.print()

    if not result.is_valid_prefix:
        console.print("[red]Not a valid Wine prefix![/red]")
        for warning in result.warnings:
            console.print(f"  [yellow]⚠[/yellow] {warning}")
        return

    info_table = Table(show_header=False, box=None)
    info_table.add_column("Property", style="bold")
    info_table.add_column("Value")

    info_table.add_row("Architecture", result.arch or "Unknown")
    info_table.add_row("DXVK", f"✓ {result.dxvk_version}" if result.has_dxvk else "✗ Not installed")

    console.print(info_table)
    console.print()

    dll_table = Table()
    dll_table.add_column("Dll")
    dll_table.add_column("State")
    dll_table.add_column("Override")

    for name, state in result.dlls.items():
        dll_table.add_row(f"{name}.dll", state.value, result.dll_overrides.get(name, ""))

    console.print(dll_table)

    if result.warnings:
        console.print()
        console.print("[bold yellow]Warnings:[/bold yellow]")
        for warning in result.warnings:
            console.print(f"  [yellow]⚠[/yellow] {warning}")


@cli.group()
def prefix():
    """Prefix lifecycle (wineboot)."""
    pass


def _boot(ctx: click.Context, description: str, action: str, **kwargs) -> None:
    env = _environment(ctx)

    try:
        with console.status(f"{description}..."):
            getattr(env, action)(**kwargs)
    except WincompatError as e:
        _fail(e)

    console.print(f"[green]✓[/green] {description}: done")


@prefix.command()
@click.pass_context
def init(ctx: click.Context):
    """Initialize the prefix (wineboot -i)."""
    _boot(ctx, "Initializing prefix", "init_prefix")


@prefix.command()
@click.pass_context
def update(ctx: click.Context):
    """Create or update the prefix (wineboot -u)."""
    _boot(ctx, "Updating prefix", "update_prefix")


@prefix.command()
@click.option("--force", is_flag=True, default=False, help="Force kill (wineboot -f)")
@click.pass_context
def stop(ctx: click.Context, force: bool):
    """Stop running processes (wineboot -k)."""
    _boot(ctx, "Stopping processes", "stop_processes", force=force)


@prefix.command()
@click.pass_context
def restart(ctx: click.Context):
    """Imitate a windows restart (wineboot -r)."""
    _boot(ctx, "Restarting", "restart")


@prefix.command()
@click.pass_context
def shutdown(ctx: click.Context):
    """Imitate a windows shutdown (wineboot -s)."""
    _boot(ctx, "Shutting down", "shutdown")


@prefix.command("end-session")
@click.pass_context
def end_session(ctx: click.Context):
    """End the wineboot session (wineboot -e)."""
    _boot(ctx, "Ending session", "end_session")


@cli.command(context_settings={"ignore_unknown_options": True})
@click.argument("program")
@click.argument("args", nargs=-1, type=click.UNPROCESSED)
@click.pass_context
def run(ctx: click.Context, program: str, args: tuple[str, ...]):
    """Run a program in the prefix and wait for it."""
    env = _environment(ctx)

    try:
        proc = env.run_args([program, *args])
    except OSError as e:
        _fail(e)

    stdout, stderr = proc.communicate()
    sys.stdout.buffer.write(stdout)
    sys.stderr.buffer.write(stderr)
    sys.exit(proc.returncode)


@cli.group()
def dxvk():
    """DXVK install state."""
    pass


def _dll_params(dlls: tuple[str, ...]) -> dict[str, bool]:
    if not dlls:
        return {}
    return {name: name in dlls for name in DXVK_DLLS}


@dxvk.command()
@click.pass_context
def version(ctx: click.Context):
    """Show the DXVK version applied to the prefix."""
    from wincompat.dxvk import get_version

    env = _environment(ctx)
    if env.prefix is None:
        _fail("No prefix configured. Use --prefix or a profile")

    try:
        dxvk_version = get_version(env.prefix)
    except OSError as e:
        _fail(f"Failed to read DXVK version: {e}")

    if dxvk_version is None:
        console.print("DXVK is not applied")
    else:
        console.print(f"DXVK applied: [bold]{dxvk_version}[/bold]")


@dxvk.command()
@click.argument("dxvk_folder", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.option("--dll", "dlls", multiple=True, type=click.Choice(DXVK_DLLS),
              help="Only install these dlls (can specify multiple)")
@click.option("--arch", type=click.Choice(["win64", "win32"]), default="win64",
              help="Which dlls of the release to use (x64 or x32)")
@click.option("--no-repair", is_flag=True, default=False, help="Skip wineboot -u before installing")
@click.pass_context
def install(ctx: click.Context, dxvk_folder: Path, dlls: tuple[str, ...], arch: str, no_repair: bool):
    """Install DXVK from an extracted release folder."""
    from wincompat.dxvk import InstallParams, get_version, install_dxvk

    env = _environment(ctx)
    params = InstallParams(arch=arch, repair_dlls=not no_repair, **_dll_params(dlls))

    try:
        with console.status("Installing DXVK..."):
            install_dxvk(env, dxvk_folder, params)
        installed = get_version(env.prefix) if env.prefix else None
    except (WincompatError, OSError) as e:
        _fail(e)

    console.print(f"[green]✓[/green] DXVK installed{f': {installed}' if installed else ''}")


@dxvk.command()
@click.option("--dll", "dlls", multiple=True, type=click.Choice(DXVK_DLLS),
              help="Only restore these dlls (can specify multiple)")
@click.option("--no-repair", is_flag=True, default=False, help="Skip wineboot -u after restoring")
@click.pass_context
def uninstall(ctx: click.Context, dlls: tuple[str, ...], no_repair: bool):
    """Restore the original dlls."""
    from wincompat.dxvk import InstallParams, uninstall_dxvk

    env = _environment(ctx)
    params = InstallParams(repair_dlls=not no_repair, **_dll_params(dlls))

    try:
        with console.status("Uninstalling DXVK..."):
            uninstall_dxvk(env, params)
    except (WincompatError, OSError) as e:
        _fail(e)

    console.print("[green]✓[/green] DXVK uninstalled")


@cli.group("profile")
def profile_group():
    """Show or save the effective profile."""
    pass


@profile_group.command()
@click.pass_context
def show(ctx: click.Context):
    """Print the effective profile as JSON."""
    console.print_json(_profile(ctx.obj).model_dump_json(exclude_none=True))


@profile_group.command()
@click.argument("path", type=click.Path(path_type=Path))
@click.pass_context
def save(ctx: click.Context, path: Path):
    """Save the effective profile to PATH."""
    saved = _profile(ctx.obj).save(path)
    console.print(f"[green]✓[/green] Profile saved to: {saved}")


def main():
    """Entry point."""
    cli()


if __name__ == "__main__":
    main()
