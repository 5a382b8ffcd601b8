import logging
from dataclasses import dataclass
from pathlib import Path

from .metrics import UNEXPECTED_LOGIN_NOTE, AuthState, OutcomeKind, RouteOutcome
from .storage import outcomes_frame, save_df, write_metadata
from .utils import format_bytes

logger = logging.getLogger(__name__)

DIVIDER = "=" * 60


def print_banner(title: str) -> None:
    print(DIVIDER)
    print(f" {title}")
    print(DIVIDER)


def print_config(key: str, value, key_width: int = 18) -> None:
    print(f"{(key + ':').ljust(key_width)} {value}")


@dataclass
class RunTally:
    """Category counters for one run."""
    total: int = 0
    successes: int = 0
    http_errors: int = 0
    transport_errors: int = 0
    navigation_errors: int = 0
    retries: int = 0
    suspicious: int = 0
    auth_incomplete: int = 0
    unexpected_logins: int = 0
    metadata_failures: int = 0

    def record(self, outcome: RouteOutcome) -> None:
        self.total += 1
        if outcome.outcome_kind is OutcomeKind.SUCCESS:
            self.successes += 1
        elif outcome.outcome_kind is OutcomeKind.HTTP_ERROR:
            self.http_errors += 1
        elif outcome.outcome_kind is OutcomeKind.TRANSPORT_ERROR:
            self.transport_errors += 1
        elif outcome.outcome_kind is OutcomeKind.NAVIGATION_ERROR:
            self.navigation_errors += 1

        if outcome.retry_attempted:
            self.retries += 1
        if outcome.is_suspiciously_small:
            self.suspicious += 1

        auth = outcome.auth_flow
        if auth is not None:
            if auth.incomplete:
                self.auth_incomplete += 1
            if auth.note and UNEXPECTED_LOGIN_NOTE in auth.note:
                self.unexpected_logins += 1

    @property
    def is_fatal(self) -> bool:
        """Any transport error means the target is presumed down."""
        return self.transport_errors > 0


def format_outcome(outcome: RouteOutcome, total: int) -> list[str]:
    """Console lines for one outcome."""
    lines = [f"[{outcome.index + 1}/{total}] {outcome.route}", f"  URL: {outcome.url}"]

    if outcome.is_error:
        lines.append(f"  !! {outcome.error_message}")
    else:
        lines.append(f"  -> Status: {outcome.status_code if outcome.status_code is not None else 'n/a'}")
        if outcome.artifact_path:
            lines.append(f"  -> Saved: {Path(outcome.artifact_path).name} ({format_bytes(outcome.artifact_size_bytes)})")
        if outcome.error_message:
            lines.append(f"  !! {outcome.error_message}")

    if outcome.retry_attempted:
        lines.append("  -> retried (first capture looked blank)")
    if outcome.is_suspiciously_small:
        lines.append("  !! suspiciously small artifact")

    auth = outcome.auth_flow
    if auth is not None and auth.state is not AuthState.NOT_APPLICABLE:
        note = f" ({auth.note})" if auth.note else ""
        lines.append(f"  -> auth: {auth.state.value}, {len(auth.step_artifacts)} step(s){note}")

    if outcome.console_errors:
        lines.append(f"  -> console errors: {len(outcome.console_errors)}")

    return lines


class RunReporter:
    """
    Consumer of the ordered outcome stream.

    For every outcome: print its lines, update the tally, and write its
    metadata.json sidecar. A failed sidecar write is logged and counted,
    never raised.
    """

    def __init__(self, output_dir: str | Path, total: int):
        self.output_dir = Path(output_dir)
        self.total = total
        self.tally = RunTally()
        self.outcomes: list[RouteOutcome] = []

    def emit(self, outcome: RouteOutcome) -> None:
        for line in format_outcome(outcome, self.total):
            print(line)
        print()

        self.tally.record(outcome)
        self.outcomes.append(outcome)

        try:
            write_metadata(outcome, self.output_dir)
        except OSError as e:
            self.tally.metadata_failures += 1
            logger.warning("could not write metadata for %s: %s", outcome.route, e)

    def save_results(self) -> Path | None:
        return save_df(outcomes_frame(self.outcomes), "results", self.output_dir)

    def print_summary(self, browser_mode: bool) -> None:
        t = self.tally
        print()
        print(f"Done. Processed {t.total} routes:")
        print(f"  - Successful (2xx/3xx): {t.successes}")
        print(f"  - HTTP errors (4xx/5xx): {t.http_errors}")
        if browser_mode:
            print(f"  - Browser/timeout errors: {t.navigation_errors}")
        else:
            print(f"  - Connection errors: {t.transport_errors}")
        print(f"  - Retried captures: {t.retries}")
        print(f"  - Suspiciously small artifacts: {t.suspicious}")
        if t.auth_incomplete:
            print(f"  - Incomplete login flows: {t.auth_incomplete}")
        if t.unexpected_logins:
            print(f"  - Public routes showing a login form: {t.unexpected_logins}")
        if t.metadata_failures:
            print(f"  - Metadata write failures: {t.metadata_failures}")

        if t.navigation_errors:
            print("WARNING: Some browser/timeout errors occurred (non-fatal).")
        if t.suspicious:
            print("WARNING: Some screenshots look blank (non-fatal).")
        if t.http_errors:
            print(f"INFO: {t.http_errors} routes returned HTTP 4xx/5xx (expected for auth-protected routes).")
