"""loadorder command-line interface."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Annotated, NoReturn

import typer

from . import __version__
from .config import Config, ConfigError, load_config
from .logging import configure_logging
from .manifest import ManifestError, load_manifests
from .resolver import (
    CyclicDependencyError,
    DependencyGraphResolver,
    DuplicateSymbolError,
    ResolutionError,
    UnresolvedSymbolError,
)
from .types import RecordError

app = typer.Typer(help="Resolve module dependency manifests into a load order.")
LOGGER = logging.getLogger(__name__)

ManifestArgs = Annotated[
    list[Path] | None,
    typer.Argument(help="deps.js or YAML manifests (defaults to 'manifests' from config)."),
]


@dataclass
class CLIState:
    """Stores shared CLI options."""

    config_path: Path | None
    external: list[str] = field(default_factory=list)
    allow_unknown: bool = False


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"loadorder {__version__}")
        raise typer.Exit()


@app.callback()
def _loadorder(
    ctx: typer.Context,
    config: Annotated[
        Path | None,
        typer.Option(
            "-c",
            "--config",
            help="Path to config (env LOADORDER_CONFIG or ~/.config/loadorder/config.yaml).",
        ),
    ] = None,
    external: Annotated[
        list[str] | None,
        typer.Option(
            "-x",
            "--external",
            help="Symbol supplied by the host environment; 'prefix.*' matches a namespace.",
        ),
    ] = None,
    allow_unknown: Annotated[
        bool,
        typer.Option(
            "--allow-unknown",
            help="Treat every unprovided symbol as external instead of failing.",
        ),
    ] = False,
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            callback=_version_callback,
            is_eager=True,
            help="Show the version and exit.",
        ),
    ] = False,
) -> None:
    """Capture global CLI options."""

    resolved = config.expanduser() if config else None
    ctx.obj = CLIState(
        config_path=resolved,
        external=list(external or []),
        allow_unknown=allow_unknown,
    )


@app.command()
def order(
    ctx: typer.Context,
    manifests: ManifestArgs = None,
    entry: Annotated[
        list[str] | None,
        typer.Option(
            "-e",
            "--entry",
            help="Only print what is needed to load this symbol (repeatable).",
        ),
    ] = None,
) -> None:
    """Print the load order, one path per line."""

    state = _state(ctx)
    config = _load_environment(state)
    resolver = _build_resolver(state, config, manifests)
    try:
        paths = resolver.load_order_for(entry) if entry else resolver.resolve()
    except ResolutionError as exc:
        _resolution_failure(exc)
    for path in paths:
        typer.echo(path)


@app.command()
def check(ctx: typer.Context, manifests: ManifestArgs = None) -> None:
    """Validate manifests without printing the order."""

    state = _state(ctx)
    config = _load_environment(state)
    resolver = _build_resolver(state, config, manifests)
    try:
        resolver.resolve()
    except ResolutionError as exc:
        _resolution_failure(exc)
    symbols = sum(len(record.provides) for record in resolver.records)
    typer.secho(
        f"OK: {len(resolver)} record(s), {symbols} symbol(s)",
        fg=typer.colors.GREEN,
    )


@app.command()
def deps(
    ctx: typer.Context,
    path: Annotated[str, typer.Option("-p", "--path", help="Record path to inspect.")],
    manifests: ManifestArgs = None,
) -> None:
    """Print the records a single record directly depends on."""

    state = _state(ctx)
    config = _load_environment(state)
    resolver = _build_resolver(state, config, manifests)
    try:
        dependencies = resolver.dependencies_of(path)
    except KeyError:
        typer.secho(f"Unknown record path '{path}'.", fg=typer.colors.RED, err=True)
        raise typer.Exit(1) from None
    for dependency in dependencies:
        typer.echo(dependency)


def _state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        raise RuntimeError("CLI state missing from context.")
    return state


def _load_environment(state: CLIState) -> Config:
    try:
        config = load_config(state.config_path)
        configure_logging(config.logging)
    except ConfigError as exc:
        _config_failure(exc)
    return config


def _build_resolver(
    state: CLIState,
    config: Config,
    manifests: list[Path] | None,
) -> DependencyGraphResolver:
    sources = list(manifests or config.manifests)
    if not sources:
        typer.secho(
            "No manifests given on the command line or in the config.",
            fg=typer.colors.RED,
            err=True,
        )
        raise typer.Exit(2)

    policy = config.policy.extended(state.external, treat_unknown_as_external=state.allow_unknown)
    resolver = DependencyGraphResolver(policy)
    try:
        resolver.register_many(load_manifests(sources))
    except (ManifestError, RecordError) as exc:
        typer.secho(f"Manifest error: {exc}", fg=typer.colors.RED, err=True)
        raise typer.Exit(1) from exc
    except ResolutionError as exc:
        _resolution_failure(exc)
    LOGGER.debug("Loaded %d record(s) from %d manifest(s)", len(resolver), len(sources))
    return resolver


def _describe(exc: ResolutionError) -> str:
    if isinstance(exc, DuplicateSymbolError):
        return (
            f"Duplicate symbol '{exc.symbol}' provided by both "
            f"{exc.existing_path} and {exc.path}"
        )
    if isinstance(exc, UnresolvedSymbolError):
        return f"Unresolved symbol '{exc.symbol}' required by {exc.required_by}"
    if isinstance(exc, CyclicDependencyError):
        return "Dependency cycle: " + " -> ".join((*exc.cycle, exc.cycle[0]))
    return str(exc)


def _resolution_failure(exc: ResolutionError) -> NoReturn:
    typer.secho(_describe(exc), fg=typer.colors.RED, err=True)
    raise typer.Exit(1) from exc


def _config_failure(exc: ConfigError) -> NoReturn:
    typer.secho(f"Configuration error: {exc}", fg=typer.colors.RED, err=True)
    raise typer.Exit(2) from exc


def main() -> None:  # pragma: no cover - delegated to Typer
    app()


__all__ = ["app", "main"]
