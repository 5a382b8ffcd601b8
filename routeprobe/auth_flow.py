"""
Login detection and the three-step login capture.

The selector tuples below are priority-ordered: the first selector that has
a visible match wins. On pages with several candidate inputs the order
decides which field gets filled, so keep it stable.
"""

import logging
from dataclasses import dataclass
from pathlib import Path

from playwright.async_api import Error as PlaywrightError

from .metrics import AuthFlowRecord, AuthState
from .policy import CaptureResult, capture_with_retry, is_suspicious
from .settings import ProbeConfig
from .utils import output_file_path, take_screenshot

logger = logging.getLogger(__name__)

USERNAME_SELECTORS = (
    'input[type="email"]',
    'input[name="Input.Email"]',
    'input[name="Input.UserName"]',
    'input[name="email"]',
    'input[name="username"]',
    'input[id="email"]',
    'input[id="username"]',
    'input[autocomplete="username"]',
    'input[autocomplete="email"]',
    'input[name*="email" i]',
    'input[name*="user" i]',
)

PASSWORD_SELECTORS = (
    'input[type="password"]',
    'input[name="Input.Password"]',
    'input[name="password"]',
    'input[id="password"]',
    'input[autocomplete="current-password"]',
)

SUBMIT_SELECTORS = (
    'button[type="submit"]',
    'input[type="submit"]',
    'button:has-text("Log in")',
    'button:has-text("Login")',
    'button:has-text("Sign in")',
    'form button',
)

INITIAL_FILE = "1-initial.png"
FILLED_FILE = "2-filled.png"
RESULT_FILE = "3-result.png"
FALLBACK_FILE = "default.png"


async def first_visible(page, selectors):
    """Return the first visible element across `selectors` (in order), or None."""
    for selector in selectors:
        locator = page.locator(selector)
        count = await locator.count()
        for i in range(count):
            candidate = locator.nth(i)
            if await candidate.is_visible():
                return candidate
    return None


async def looks_like_login_page(page) -> bool:
    """
    Cheap check used on every public route: a visible password field plus a
    visible username/email-like field.
    """
    if await first_visible(page, ('input[type="password"]',)) is None:
        return False
    return await first_visible(page, USERNAME_SELECTORS) is not None


@dataclass
class AuthFlowResult:
    record: AuthFlowRecord
    artifact_path: Path | None = None
    capture: CaptureResult | None = None


class AuthFlow:
    """
    Drives a login form and records it in up to three screenshots.

    Initial -> FormFilled -> Submitted -> Completed, or Initial ->
    NoFormDetected when the page has no recognizable login form. Only the
    final artifact (3-result.png, or default.png when no form was found) is
    subject to the suspicious-size retry.

    Playwright failures after entry stop the flow in the last reached state
    with an "incomplete: ..." note; they never propagate.
    """

    def __init__(self, page, route: str, config: ProbeConfig, note: str | None = None):
        self.page = page
        self.route = route
        self.config = config
        self.state = AuthState.NOT_APPLICABLE
        self.steps: list[str] = []
        self.note = note

    @property
    def record(self) -> AuthFlowRecord:
        """Snapshot of the flow so far."""
        return AuthFlowRecord(state=self.state, step_artifacts=tuple(self.steps), note=self.note)

    def _path(self, filename: str) -> Path:
        return output_file_path(self.config.output_dir, self.route, filename)

    def _add_note(self, text: str) -> None:
        self.note = f"{self.note}; {text}" if self.note else text

    async def _final_capture(self, filename: str) -> tuple[Path, CaptureResult]:
        path = self._path(filename)
        capture = await capture_with_retry(lambda: take_screenshot(self.page, path), self.config)
        return path, capture

    async def run(self) -> AuthFlowResult:
        try:
            return await self._run()
        except (PlaywrightError, OSError) as e:
            logger.debug("auth flow for %s stopped in %s: %s", self.route, self.state.value, e)
            self._add_note(f"incomplete: {e}")
            return self._partial_result()

    def _partial_result(self) -> AuthFlowResult:
        if not self.steps:
            return AuthFlowResult(record=self.record)
        path = Path(self.steps[-1])
        size = path.stat().st_size if path.exists() else 0
        capture = CaptureResult(size_bytes=size, suspicious=is_suspicious(size, self.config), retried=False)
        return AuthFlowResult(record=self.record, artifact_path=path, capture=capture)

    async def _run(self) -> AuthFlowResult:
        page = self.page

        initial = self._path(INITIAL_FILE)
        await take_screenshot(page, initial)
        self.steps.append(str(initial))
        self.state = AuthState.INITIAL_CAPTURED

        username_field = await first_visible(page, USERNAME_SELECTORS)
        password_field = await first_visible(page, PASSWORD_SELECTORS)
        if username_field is None or password_field is None:
            self.state = AuthState.NO_FORM_DETECTED
            self._add_note("no login form detected")
            path, capture = await self._final_capture(FALLBACK_FILE)
            return AuthFlowResult(record=self.record, artifact_path=path, capture=capture)

        credentials = self.config.credentials
        if not credentials.complete:
            self._add_note("incomplete: no login credentials configured")
            return self._partial_result()

        await username_field.fill(credentials.username)
        await password_field.fill(credentials.password)
        await page.wait_for_timeout(self.config.fill_pause_ms)
        filled = self._path(FILLED_FILE)
        await take_screenshot(page, filled)
        self.steps.append(str(filled))
        self.state = AuthState.FORM_FILLED

        submit = await first_visible(page, SUBMIT_SELECTORS)
        if submit is not None:
            await submit.click()
        else:
            await password_field.press("Enter")
        self.state = AuthState.SUBMITTED

        await page.wait_for_timeout(self.config.settle_delay_ms)

        path, capture = await self._final_capture(RESULT_FILE)
        self.steps.append(str(path))
        self.state = AuthState.COMPLETED
        return AuthFlowResult(record=self.record, artifact_path=path, capture=capture)
