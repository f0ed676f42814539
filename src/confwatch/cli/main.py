"""confwatch CLI entry point."""

import logging
from pathlib import Path
from typing import Optional

import typer

from ..config import WatchSettings
from ..errors import ConfigError, ConfWatchError, StoreError
from ..store.base import KVStore
from ..values import DocumentValue, RawValue
from ..watch import Watcher
from .display import error, info_dict, payload, success, warning

app = typer.Typer(
    name="confwatch",
    help="Read and watch configuration values stored in Consul KV",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def config_option() -> typer.Option:
    return typer.Option(
        None,
        "--config",
        "-c",
        help="Settings file (YAML); defaults to CONFWATCH_* environment variables",
        exists=True,
        file_okay=True,
        dir_okay=False,
        readable=True,
    )


def load_settings(config: Optional[Path]) -> WatchSettings:
    """Load settings from ``config`` or the environment, exiting on errors."""
    try:
        return WatchSettings.from_yaml(config) if config else WatchSettings.from_env()
    except ConfigError as e:
        error(str(e))
        raise typer.Exit(1)


def open_store(settings: WatchSettings) -> KVStore:
    return settings.build_store()


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
):
    """confwatch - keep configuration values in sync with Consul."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format=LOG_FORMAT,
    )


@app.command()
def get(
    key: str = typer.Argument(..., help="Key to read"),
    config: Optional[Path] = config_option(),
):
    """Print the current value of a key.

    Example:
        confwatch get service/web/config
    """
    settings = load_settings(config)
    store = open_store(settings)

    try:
        entry = store.get(key)
    except StoreError as e:
        error(str(e))
        raise typer.Exit(1)

    if entry is None:
        error(f"Key not found: {key}")
        raise typer.Exit(1)

    payload(entry.version, entry.value.decode("utf-8", errors="replace"))


@app.command()
def watch(
    key: str = typer.Argument(..., help="Key to watch"),
    config: Optional[Path] = config_option(),
    fmt: str = typer.Option(
        "raw", "--format", "-f", help="Payload format: raw, json or yaml"
    ),
    count: int = typer.Option(
        0, "--count", "-n", min=0, help="Exit after this many updates (0 = run until interrupted)"
    ),
    poll_interval: float = typer.Option(
        0.5, "--poll-interval", help="Seconds between checks for a new value", hidden=True
    ),
):
    """Print a key's value and every update until interrupted.

    Payloads that fail to decode in the chosen format are reported in the
    log and skipped; the last good value stays current.

    Example:
        confwatch watch service/web/config --format json
        confwatch watch service/web/config -n 1
    """
    if fmt not in ("raw", "json", "yaml"):
        error(f"Unsupported format: {fmt} (choose raw, json or yaml)")
        raise typer.Exit(2)

    settings = load_settings(config)
    watcher = Watcher(
        open_store(settings),
        retry_policy=settings.retry_policy(),
        wait=settings.wait,
    )
    factory = RawValue if fmt == "raw" else (lambda: DocumentValue(fmt))

    try:
        w = watcher.add_watch(key, factory)
    except ConfWatchError as e:
        error(str(e))
        raise typer.Exit(1)

    updates = 0
    gave_up = False
    try:
        with w:
            value = w.value
            payload(w.version, str(value))
            while not count or updates < count:
                if not value.superseded.wait(poll_interval):
                    if not w.running:
                        gave_up = True
                        break
                    continue
                value = w.value
                updates += 1
                payload(w.version, str(value))
    except KeyboardInterrupt:
        warning("Interrupted")

    stats = w.stats
    if gave_up:
        error(f"Watch on {key} stopped after exhausting retries")
        info_dict({"updates": stats.updates, "failed reads": stats.fetch_failures})
        raise typer.Exit(1)
    success(f"Stopped watching {key}")
    info_dict({"updates": stats.updates, "decode failures": stats.decode_failures})
