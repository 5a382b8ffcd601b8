from pathlib import Path
from pydantic import BaseModel
from dataclasses import dataclass, field, fields, replace
import yaml

PROJECT_ROOT = Path(__file__).resolve().parents[1]

BROWSER_ENGINES = ("chromium", "firefox", "webkit")
HTTP_PROBER = "http"


class Credentials(BaseModel):
    username: str | None = None
    password: str | None = None

    @property
    def complete(self) -> bool:
        return bool(self.username) and bool(self.password)


class Viewport(BaseModel):
    width: int
    height: int

    @classmethod
    def parse(cls, value: str | None) -> "Viewport | None":
        """
        Parse "WIDTHxHEIGHT" (e.g. "1280x720").

        Anything malformed yields None so the browser keeps its default viewport.
        """
        if not value or not value.strip():
            return None
        parts = [p for p in value.strip().lower().split("x") if p]
        if len(parts) != 2:
            return None
        try:
            width, height = int(parts[0]), int(parts[1])
        except ValueError:
            return None
        if width <= 0 or height <= 0:
            return None
        return cls(width=width, height=height)

    def as_playwright(self) -> dict:
        return {"width": self.width, "height": self.height}


def _default_asset_checks() -> dict[str, str]:
    return {"/_framework/blazor.web.js": "application/javascript"}


@dataclass
class ProbeConfig:
    """
    Central configuration for a probe run.

    Values can be overridden via probe_config.yaml at the project root,
    then by command-line options / environment variables (see cli.py).
    """

    # Target and I/O
    base_url: str = "https://localhost:5001"
    csv_path: str = "pages.csv"
    output_dir: str = "page-snapshots"

    # Scheduling
    max_concurrency: int = 10
    start_delay_ms: int = 5000

    # "http" for the fetch probe, otherwise a playwright engine name
    prober: str = "chromium"

    # HTTP client tuning
    http_timeout_s: float = 30.0
    verify_tls: bool = False
    user_agent: str = "Mozilla/5.0 (routeprobe)"
    asset_checks: dict[str, str] = field(default_factory=_default_asset_checks)

    # Browser tuning
    headless: bool = True
    viewport: str | None = None
    navigation_timeout_ms: int = 60_000
    settle_delay_ms: int = 1500
    install_browsers: bool = False

    # Login flow
    login_username: str | None = None
    login_password: str | None = None
    fill_pause_ms: int = 500

    # Suspicious screenshot retry
    suspicious_bytes: int = 10 * 1024
    retry_delay_ms: int = 3000

    def __post_init__(self):
        self.max_concurrency = max(1, int(self.max_concurrency))
        self.prober = (self.prober or "chromium").strip().lower()

    @property
    def uses_browser(self) -> bool:
        return self.prober != HTTP_PROBER

    @property
    def browser_engine(self) -> str:
        """Playwright engine to launch; unknown names fall back to chromium."""
        return self.prober if self.prober in BROWSER_ENGINES else "chromium"

    @property
    def credentials(self) -> Credentials:
        return Credentials(username=self.login_username, password=self.login_password)

    @property
    def parsed_viewport(self) -> Viewport | None:
        return Viewport.parse(self.viewport)


def load_probe_config(path: str | Path | None = None) -> ProbeConfig:
    """
    Load ProbeConfig from YAML if present; otherwise use defaults.

    By default, looks for `probe_config.yaml` at the project root.
    """

    if path is None:
        path = PROJECT_ROOT / "probe_config.yaml"

    path = Path(path)

    if not path.exists():
        print(f"[config] YAML not found at {path}, using defaults")
        return ProbeConfig()

    raw = path.read_text(encoding="utf-8")
    data = yaml.safe_load(raw) or {}

    if not isinstance(data, dict):
        print(f"[config] Expected mapping in {path}, got {type(data)}, using defaults")
        return ProbeConfig()

    allowed_keys = {f.name for f in fields(ProbeConfig)}
    filtered = {k: v for k, v in data.items() if k in allowed_keys}

    return ProbeConfig(**filtered)


def apply_overrides(config: ProbeConfig, **values) -> ProbeConfig:
    """
    Return a copy of `config` with every non-None value applied.

    Unknown keys raise TypeError, like the dataclass constructor would.
    """
    allowed_keys = {f.name for f in fields(ProbeConfig)}
    unknown = set(values) - allowed_keys
    if unknown:
        raise TypeError(f"Unknown ProbeConfig option(s): {', '.join(sorted(unknown))}")
    updates = {k: v for k, v in values.items() if v is not None}
    return replace(config, **updates)


DEFAULT_PROBE_CONFIG = ProbeConfig()
