import asyncio
import logging
import subprocess
import sys
from pathlib import Path

from playwright.async_api import Error as PlaywrightError

from .browser_prober import BrowserProber
from .http_prober import HttpProber, make_session
from .metrics import RouteDescriptor
from .ordering import OrderedResultSink
from .report import DIVIDER, RunReporter, RunTally, print_banner, print_config
from .routes import load_routes
from .scheduler import BoundedScheduler
from .settings import ProbeConfig

logger = logging.getLogger(__name__)


async def run_probes(descriptors: list[RouteDescriptor], prober, config: ProbeConfig,
                     reporter: RunReporter) -> RunTally:
    """
    Probe all descriptors with bounded concurrency and report them in input order.
    """
    sink = OrderedResultSink(reporter.emit)
    scheduler = BoundedScheduler(config.max_concurrency, config.base_url)

    await scheduler.run(descriptors, prober, sink.add)

    leftover = sink.flush_remaining()
    if leftover:
        logger.warning("%d outcome(s) were flushed out of order", leftover)
    logger.debug("peak concurrency %d of %d", scheduler.peak, scheduler.max_concurrency)
    return reporter.tally


def install_browser(engine: str) -> None:
    """`playwright install <engine>`; failure is reported, not fatal."""
    result = subprocess.run([sys.executable, "-m", "playwright", "install", engine], check=False)
    if result.returncode != 0:
        print(f"Playwright install returned exit code {result.returncode}, but continuing anyway...")
    else:
        print(f"Playwright {engine} browser ready.")


async def _run_http(descriptors, config: ProbeConfig, reporter: RunReporter) -> int:
    async with make_session(config) as session:
        prober = HttpProber(session, config)
        tally = await run_probes(descriptors, prober, config, reporter)
        reporter.print_summary(browser_mode=False)

        assets_ok = True
        if config.asset_checks:
            print()
            print("=== Verifying static asset MIME types ===")
            assets_ok = await prober.verify_asset_mime_types()

    reporter.save_results()

    if tally.is_fatal:
        print(f"FAILED: {tally.transport_errors} connection error(s) occurred (server unreachable).",
              file=sys.stderr)
        return 1
    if not assets_ok:
        print("WARNING: MIME type checks had issues (non-fatal).")
    print("Completed successfully.")
    return 0


async def _run_browser(descriptors, config: ProbeConfig, reporter: RunReporter) -> int:
    engine = config.browser_engine
    if config.install_browsers:
        print(f"Ensuring Playwright {engine} is installed...")
        install_browser(engine)

    try:
        print(f"Launching {engine} ({'headless' if config.headless else 'headed'})...")
        async with BrowserProber(config) as prober:
            await run_probes(descriptors, prober, config, reporter)
    except PlaywrightError as e:
        print("Fatal error in browser run:", file=sys.stderr)
        print(str(e), file=sys.stderr)
        return 1

    reporter.print_summary(browser_mode=True)
    reporter.save_results()
    print("Completed successfully.")
    return 0


async def run(config: ProbeConfig) -> int:
    """Full run; returns the process exit code."""
    print_banner("routeprobe")
    print_config("BASE_URL", config.base_url)
    print_config("CSV_PATH", config.csv_path)
    print_config("OUTPUT_DIR", config.output_dir)
    print_config("PROBER", config.browser_engine if config.uses_browser else config.prober)
    if config.uses_browser:
        print_config("VIEWPORT", config.viewport or "(default)")
    print_config("MAX_THREADS", config.max_concurrency)
    print(DIVIDER)

    if config.start_delay_ms > 0:
        print(f"Waiting {config.start_delay_ms}ms for server to be ready...")
        await asyncio.sleep(config.start_delay_ms / 1000)

    csv_path = Path(config.csv_path)
    if not csv_path.exists():
        print(f"CSV file not found: {csv_path}", file=sys.stderr)
        return 1

    descriptors, skipped = load_routes(csv_path)

    for route in skipped:
        print(f"  [skip] {route} - has route parameters")
    if skipped:
        print(f"Skipped {len(skipped)} routes with parameters.")

    if not descriptors:
        print("No probeable routes found in CSV.")
        return 0

    print(f"Found {len(descriptors)} routes with {config.max_concurrency} parallel workers.")
    print()

    Path(config.output_dir).mkdir(parents=True, exist_ok=True)
    reporter = RunReporter(config.output_dir, len(descriptors))

    if config.uses_browser:
        return await _run_browser(descriptors, config, reporter)
    return await _run_http(descriptors, config, reporter)
