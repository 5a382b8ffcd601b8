"""Typer CLI entrypoint for routeprobe."""

import asyncio
import logging
from pathlib import Path

import typer

from .logging_utils import configure_logging
from .runner import run
from .settings import apply_overrides, load_probe_config

app = typer.Typer(
    add_completion=False,
    help="Probe every route of a web app (fetch or screenshot) with bounded concurrency.",
)


@app.command()
def main(
    config_file: Path | None = typer.Option(
        None,
        "--config-file",
        help="Optional probe_config.yaml path.",
        dir_okay=False,
    ),
    base_url: str | None = typer.Option(None, "--base-url", envvar="BASE_URL", help="Target origin."),
    csv_path: str | None = typer.Option(None, "--csv-path", envvar="CSV_PATH", help="Route list CSV."),
    output_dir: str | None = typer.Option(None, "--output-dir", envvar="OUTPUT_DIR", help="Artifact directory."),
    max_concurrency: int | None = typer.Option(
        None, "--max-threads", envvar="MAX_THREADS", help="Probes in flight at once."
    ),
    prober: str | None = typer.Option(
        None,
        "--prober",
        envvar=["PROBER", "SCREENSHOT_BROWSER"],
        help="'http' to fetch pages, or a browser engine: chromium, firefox, webkit.",
    ),
    viewport: str | None = typer.Option(
        None, "--viewport", envvar="SCREENSHOT_VIEWPORT", help="Browser viewport, e.g. 1280x720."
    ),
    settle_delay_ms: int | None = typer.Option(
        None, "--settle-delay-ms", envvar="SETTLE_DELAY_MS", help="Extra wait after page load."
    ),
    start_delay_ms: int | None = typer.Option(
        None, "--start-delay-ms", envvar="START_DELAY_MS", help="Wait before the first probe."
    ),
    login_username: str | None = typer.Option(None, "--login-username", envvar="LOGIN_USERNAME"),
    login_password: str | None = typer.Option(None, "--login-password", envvar="LOGIN_PASSWORD"),
    headless: bool | None = typer.Option(None, "--headless/--headed"),
    verify_tls: bool | None = typer.Option(None, "--verify-tls/--no-verify-tls"),
    install_browsers: bool | None = typer.Option(
        None, "--install-browsers/--no-install-browsers", help="Run 'playwright install' first."
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging."),
    log_file: Path | None = typer.Option(None, "--log-file", dir_okay=False),
) -> None:
    """Run every route in the CSV and print results in input order."""

    configure_logging(logging.DEBUG if verbose else logging.INFO, log_file)

    config = apply_overrides(
        load_probe_config(config_file),
        base_url=base_url,
        csv_path=csv_path,
        output_dir=output_dir,
        max_concurrency=max_concurrency,
        prober=prober,
        viewport=viewport,
        settle_delay_ms=settle_delay_ms,
        start_delay_ms=start_delay_ms,
        login_username=login_username,
        login_password=login_password,
        headless=headless,
        verify_tls=verify_tls,
        install_browsers=install_browsers,
    )

    exit_code = asyncio.run(run(config))
    raise typer.Exit(code=exit_code)


if __name__ == "__main__":
    app()
