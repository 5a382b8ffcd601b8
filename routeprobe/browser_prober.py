import logging
from playwright.async_api import async_playwright
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError
from .auth_flow import AuthFlow, looks_like_login_page
from .metrics import UNEXPECTED_LOGIN_NOTE, AuthFlowRecord, OutcomeKind, RouteDescriptor, RouteOutcome, classify_status
from .policy import capture_with_retry
from .settings import ProbeConfig
from .utils import build_url, output_file_path, take_screenshot

logger = logging.getLogger(__name__)

SCREENSHOT_FILE = "default.png"


class BrowserProber:
    """
    Navigation probe using Playwright.

    - Single browser instance per context manager (__aenter__/__aexit__)
    - Fresh browser context per route, so cookies/storage never leak
    - Waits for network idle plus `settle_delay_ms` before capturing
    - Declared-auth routes (and public routes that land on a login form)
      go through AuthFlow; everything else gets one full-page screenshot
    - Collects console errors for the lifetime of the page
    """

    name = "browser"
    failure_kind = OutcomeKind.NAVIGATION_ERROR

    def __init__(self, config: ProbeConfig, browser=None):
        self.config = config

        self._playwright = None
        self._browser = browser
        self._owns_browser = browser is None

    async def __aenter__(self):
        if self._browser is None:
            self._playwright = await async_playwright().start()
            browser_type = getattr(self._playwright, self.config.browser_engine)
            self._browser = await browser_type.launch(headless=self.config.headless)
        return self

    async def __aexit__(self, exc_type, exc, tb):
        if self._browser and self._owns_browser:
            await self._browser.close()
        if self._playwright:
            await self._playwright.stop()

    def _context_options(self) -> dict:
        options = {"ignore_https_errors": not self.config.verify_tls}
        viewport = self.config.parsed_viewport
        if viewport is not None:
            options["viewport"] = viewport.as_playwright()
        return options

    async def probe(self, descriptor: RouteDescriptor) -> RouteOutcome:
        url = build_url(self.config.base_url, descriptor.route)
        console_errors: list[str] = []
        status = None

        def on_console(msg):
            if msg.type == "error":
                console_errors.append(msg.text)

        def outcome(kind: OutcomeKind, **extra) -> RouteOutcome:
            return RouteOutcome(
                index=descriptor.index, route=descriptor.route, url=url,
                outcome_kind=kind, status_code=status,
                console_errors=tuple(console_errors), **extra,
            )

        context = await self._browser.new_context(**self._context_options())
        try:
            page = await context.new_page()
            page.on("console", on_console)
            page.on("pageerror", lambda exc: console_errors.append(str(exc)))

            try:
                resp = await page.goto(url, timeout=self.config.navigation_timeout_ms, wait_until="networkidle")
            except PlaywrightTimeoutError:
                return outcome(OutcomeKind.NAVIGATION_ERROR, error_message="Navigation timed out")

            status = resp.status if resp else None
            kind = classify_status(status)

            await page.wait_for_timeout(self.config.settle_delay_ms)

            flow = None
            if descriptor.requires_auth:
                flow = AuthFlow(page, descriptor.route, self.config)
            elif await looks_like_login_page(page):
                logger.info("%s: %s", descriptor.route, UNEXPECTED_LOGIN_NOTE)
                flow = AuthFlow(page, descriptor.route, self.config, note=UNEXPECTED_LOGIN_NOTE)

            if flow is not None:
                result = await flow.run()
                capture = result.capture
                return outcome(
                    kind,
                    artifact_path=str(result.artifact_path) if result.artifact_path else None,
                    artifact_size_bytes=capture.size_bytes if capture else 0,
                    is_suspiciously_small=capture.suspicious if capture else False,
                    retry_attempted=capture.retried if capture else False,
                    auth_flow=result.record,
                )

            path = output_file_path(self.config.output_dir, descriptor.route, SCREENSHOT_FILE)
            capture = await capture_with_retry(lambda: take_screenshot(page, path), self.config)
            return outcome(
                kind,
                artifact_path=str(path),
                artifact_size_bytes=capture.size_bytes,
                is_suspiciously_small=capture.suspicious,
                retry_attempted=capture.retried,
                auth_flow=AuthFlowRecord(),
            )

        except PlaywrightError as e:
            return outcome(OutcomeKind.NAVIGATION_ERROR, error_message=str(e) or type(e).__name__)

        except OSError as e:
            # Artifact I/O failed after a good navigation: keep the status classification
            return outcome(classify_status(status), error_message=f"could not save screenshot: {e}")

        except Exception as e:
            logger.exception("unexpected error probing %s", descriptor.route)
            return outcome(OutcomeKind.NAVIGATION_ERROR, error_message=str(e) or type(e).__name__)

        finally:
            await context.close()
