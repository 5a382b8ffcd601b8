from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum


class OutcomeKind(str, Enum):
    SUCCESS = "Success"
    HTTP_ERROR = "HttpError"
    TRANSPORT_ERROR = "TransportError"
    NAVIGATION_ERROR = "NavigationError"


UNEXPECTED_LOGIN_NOTE = "login form detected on public route"


class AuthState(str, Enum):
    """
    Auth flow progress. Ordered: a flow only ever moves forward through
    INITIAL_CAPTURED -> FORM_FILLED -> SUBMITTED -> COMPLETED, or stops at
    NO_FORM_DETECTED right after the initial capture.
    """
    NOT_APPLICABLE = "NotApplicable"
    NO_FORM_DETECTED = "NoFormDetected"
    INITIAL_CAPTURED = "InitialCaptured"
    FORM_FILLED = "FormFilled"
    SUBMITTED = "Submitted"
    COMPLETED = "Completed"


def classify_status(status: int | None) -> OutcomeKind:
    """2xx-3xx (or no status at all) is a success, everything else an HTTP error."""
    if status is None or 200 <= status < 400:
        return OutcomeKind.SUCCESS
    return OutcomeKind.HTTP_ERROR


@dataclass(frozen=True)
class RouteDescriptor:
    """
    One route to probe.

    Fields:
        index         : 0-based position in the input; output order follows it.
        route         : URL path, never containing unresolved {parameters}.
        requires_auth : Route declared as login-protected by the route list.
    """
    index: int
    route: str
    requires_auth: bool = False


@dataclass(frozen=True)
class AuthFlowRecord:
    state: AuthState = AuthState.NOT_APPLICABLE
    step_artifacts: tuple[str, ...] = ()
    note: str | None = None

    @property
    def incomplete(self) -> bool:
        return self.note is not None and "incomplete:" in self.note


@dataclass(frozen=True)
class RouteOutcome:
    """
    Normalized per-route result produced by both the fetch and navigation probes.

    Fields:
        index, route         : Copied from the RouteDescriptor.
        url                  : Absolute URL that was requested.
        status_code          : HTTP status if a response was received.
        outcome_kind         : Success / HttpError / TransportError / NavigationError.
        artifact_path        : Primary artifact (body or final screenshot), if written.
        artifact_size_bytes  : Size of the primary artifact (0 when absent).
        is_suspiciously_small: Final screenshot is below the suspicion threshold.
        retry_attempted      : A recapture was made because the first was suspicious.
        auth_flow            : Auth flow record, navigation probe only.
        console_errors       : Browser console error messages, in emission order.
        captured_at_utc      : When the outcome was produced.
        error_message        : Failure text (transport/navigation/artifact I/O).
    """
    index: int
    route: str
    url: str
    outcome_kind: OutcomeKind
    status_code: int | None = None
    artifact_path: str | None = None
    artifact_size_bytes: int = 0
    is_suspiciously_small: bool = False
    retry_attempted: bool = False
    auth_flow: AuthFlowRecord | None = None
    console_errors: tuple[str, ...] = ()
    captured_at_utc: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    error_message: str | None = None

    @property
    def is_success(self) -> bool:
        return self.outcome_kind is OutcomeKind.SUCCESS

    @property
    def is_error(self) -> bool:
        return self.outcome_kind in (OutcomeKind.TRANSPORT_ERROR, OutcomeKind.NAVIGATION_ERROR)

    def to_dict(self) -> dict:
        """JSON-ready mapping of every field (enums as values, timestamp as ISO-8601)."""
        data = asdict(self)
        data["outcome_kind"] = self.outcome_kind.value
        data["console_errors"] = list(self.console_errors)
        data["captured_at_utc"] = self.captured_at_utc.isoformat()
        if self.auth_flow is not None:
            data["auth_flow"]["state"] = self.auth_flow.state.value
            data["auth_flow"]["step_artifacts"] = list(self.auth_flow.step_artifacts)
        return data
