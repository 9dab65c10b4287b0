"""
Command line entry point.

Command line options win over ``TOOTHBRUSH_*`` environment variables, which
win over ``config.json``. The config file is looked up in ``--meta-dir`` when
that is given and ``--config`` is not.
"""

import asyncio
import logging
from pathlib import Path
from typing import Optional

import click

from toothbrush.config import (
    CONFIG_FILENAME,
    Settings,
    configure_logging,
    ensure_directories,
    load_settings,
)
from toothbrush.errors import ToothbrushError


def resolve_settings(
    host: Optional[str] = None,
    port: Optional[int] = None,
    meta_dir: Optional[Path] = None,
    config_path: Optional[Path] = None,
) -> Settings:
    """
    Merge command line options into the loaded settings.

    Raises:
        ConfigError: If an environment override is invalid
    """
    if config_path is None and meta_dir is not None:
        config_path = meta_dir.expanduser() / CONFIG_FILENAME
    settings = load_settings(config_path)
    overrides = {
        key: value
        for key, value in (("host", host), ("port", port), ("meta_dir", meta_dir))
        if value is not None
    }
    if not overrides:
        return settings
    return Settings(**{**settings.model_dump(), **overrides})


@click.command("toothbrush")
@click.option("--host", default=None, help="Search server host. Overrides TOOTHBRUSH_HOST.")
@click.option("--port", default=None, type=int, help="Search server port. Overrides TOOTHBRUSH_PORT.")
@click.option(
    "--meta-dir",
    default=None,
    help="Directory for scratch files, the log and config.json. Overrides TOOTHBRUSH_META_DIR.",
    type=click.Path(file_okay=False, dir_okay=True, path_type=Path),
)
@click.option(
    "--config",
    "config_path",
    default=None,
    help="Path to config.json. Defaults to config.json in the metadata directory.",
    type=click.Path(dir_okay=False, file_okay=True, path_type=Path),
)
@click.option("--verbose", "-v", is_flag=True, help="Log requests and replies.")
def main(
    host: Optional[str],
    port: Optional[int],
    meta_dir: Optional[Path],
    config_path: Optional[Path],
    verbose: bool,
):
    """
    Fuzzy-search your notes from the terminal.
    """
    try:
        settings = resolve_settings(host, port, meta_dir, config_path)
        ensure_directories(settings)
    except ToothbrushError as e:
        raise click.ClickException(str(e)) from e

    configure_logging(settings, logging.DEBUG if verbose else logging.INFO)
    logging.getLogger(__name__).info("starting, server at %s", settings.base_url)

    from toothbrush.app import SearchApp

    try:
        asyncio.run(SearchApp(settings).run_async())
    except KeyboardInterrupt:
        click.echo("\n\nGoodbye! 👋")


if __name__ == "__main__":
    main()
