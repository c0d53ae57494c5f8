"""CLI commands for promecieus."""

from __future__ import annotations

import asyncio

import click

from promecieus.config import Config


def _load_config(host: str | None, secure: bool | None) -> Config:
    """Load config and apply command-line overrides."""
    try:
        cfg = Config.load()
    except ValueError as e:
        raise click.ClickException(str(e)) from e
    if host is not None:
        if "://" in host:
            raise click.BadParameter("give host[:port] without a scheme", param_hint="--host")
        cfg.server.host = host
    if secure is not None:
        cfg.server.secure = secure
    return cfg


@click.group()
@click.version_option(package_name="promecieus")
def main() -> None:
    """Generate Prometheus instances from Prow jobs and follow their status."""
    pass


@main.command()
@click.option("--host", "-h", default=None, help="Service host[:port]")
@click.option("--secure/--insecure", default=None, help="Use wss:// (or ws://)")
def tui(host: str | None, secure: bool | None) -> None:
    """Launch interactive front-end."""
    from promecieus.logging import configure
    from promecieus.tui import run_tui

    cfg = _load_config(host, secure)
    configure(cfg, source="tui")
    run_tui(cfg)


@main.command()
@click.option("--host", "-h", default=None, help="Service host[:port]")
@click.option("--secure/--insecure", default=None, help="Use wss:// (or ws://)")
@click.option("--submit", "-s", "submit_url", default=None, help="Prow URL to submit once connected")
@click.option("--until-done", is_flag=True, help="Exit after the job reports done")
def watch(host: str | None, secure: bool | None, submit_url: str | None, until_done: bool) -> None:
    """Follow the status feed on the console."""
    from promecieus.logging import configure

    cfg = _load_config(host, secure)
    configure(cfg, source="watch")
    try:
        asyncio.run(run_watch(cfg, submit_url=submit_url, until_done=until_done))
    except KeyboardInterrupt:
        pass


async def run_watch(
    cfg: Config,
    submit_url: str | None = None,
    until_done: bool = False,
    client_factory=None,
) -> None:
    """Print the session's status events until interrupted (or done)."""
    from promecieus import logging as clog
    from promecieus.controller import SessionController
    from promecieus.protocol import APP_LABEL, DONE, RQUOTA

    finished = asyncio.Event()
    pending: set[asyncio.Task] = set()
    submitted = False

    async def submit_once() -> None:
        if await controller.submit(submit_url):
            clog.submitted(submit_url)
        else:
            clog.submit_dropped()

    def on_connection(connected: bool, retry_in_ms: int | None) -> None:
        nonlocal submitted
        if not connected:
            clog.disconnected(retry_in_ms)
            return
        clog.connected(cfg.server.ws_url)
        if submit_url and not submitted:
            submitted = True
            task = asyncio.create_task(submit_once())
            pending.add(task)
            task.add_done_callback(pending.discard)

    def on_event(event) -> None:
        if event.kind == APP_LABEL:
            clog.job_labelled(event.payload)
        elif event.kind == RQUOTA:
            clog.quota_updated(controller.state.quota)
        else:
            clog.status_event(event)
        if until_done and event.kind == DONE:
            finished.set()

    controller = SessionController(
        cfg,
        client_factory=client_factory,
        on_connection=on_connection,
        on_event=on_event,
    )
    try:
        await finished.wait()
    finally:
        await controller.close()


@main.group()
def config() -> None:
    """Manage configuration."""
    pass


@config.command("show")
def config_show() -> None:
    """Display current configuration."""
    cfg = _load_config(None, None)

    click.echo(f"Config file: {cfg.config_path}")
    click.echo(f"Exists: {cfg.config_path.exists()}")
    click.echo()
    click.echo("[server]")
    click.echo(f"  host = {cfg.server.host}")
    click.echo(f"  secure = {cfg.server.secure}")
    click.echo(f"  path = {cfg.server.path}")
    click.echo(f"  open_timeout = {cfg.server.open_timeout}")
    click.echo(f"  # url: {cfg.server.ws_url}")
    click.echo()
    click.echo("[reconnect]")
    click.echo(f"  initial_delay_ms = {cfg.reconnect.initial_delay_ms}")
    click.echo(f"  max_delay_ms = {cfg.reconnect.max_delay_ms}")
    click.echo(f"  multiplier = {cfg.reconnect.multiplier}")
    click.echo()
    click.echo("[logging]")
    click.echo(f"  level = {cfg.logging.level}")
    click.echo(f"  # file: {cfg.log_path}")


@config.command("edit")
def config_edit() -> None:
    """Open config file in editor."""
    import os
    import subprocess

    cfg = _load_config(None, None)

    # Create config if it doesn't exist
    if not cfg.config_path.exists():
        cfg.save()
        click.echo(f"Created default config at {cfg.config_path}")

    editor = os.environ.get("EDITOR", "nano")
    subprocess.run([editor, str(cfg.config_path)])


@config.command("reset")
@click.confirmation_option(prompt="Reset config to defaults?")
def config_reset() -> None:
    """Reset configuration to defaults."""
    cfg = Config()
    cfg.save()
    click.echo(f"Config reset to defaults at {cfg.config_path}")
