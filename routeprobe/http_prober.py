import asyncio
import aiohttp
from .metrics import OutcomeKind, RouteDescriptor, RouteOutcome, classify_status
from .settings import ProbeConfig
from .utils import build_url, output_file_path


DEFAULT_HTTP_HEADERS = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
}

FETCH_FILE = "default.html"
JS_MIME_ALIASES = {"text/javascript"}


def make_session(config: ProbeConfig) -> aiohttp.ClientSession:
    """Shared session for a fetch run; TLS verification follows `verify_tls`."""
    connector = aiohttp.TCPConnector(ssl=bool(config.verify_tls))
    timeout = aiohttp.ClientTimeout(total=config.http_timeout_s)
    return aiohttp.ClientSession(connector=connector, timeout=timeout)


class HttpProber:
    """
    Fetch probe built on aiohttp.

    - One GET per route, redirects followed, bounded by `http_timeout_s`
    - Body is saved verbatim as <route>/default.html for any HTTP status
    - 2xx/3xx -> Success, 4xx/5xx -> HttpError
    - Connection / timeout / TLS failures -> TransportError (fatal for the run)
    """
    name = "http"
    failure_kind = OutcomeKind.TRANSPORT_ERROR

    def __init__(self, session: aiohttp.ClientSession, config: ProbeConfig):
        self.session = session
        self.config = config

    async def probe(self, descriptor: RouteDescriptor) -> RouteOutcome:
        """
        Fetch one route and persist its body.

        Returns:
            RouteOutcome with status, artifact path/size, or the transport
            error message if the target could not be reached.
        """
        url = build_url(self.config.base_url, descriptor.route)
        headers = {**DEFAULT_HTTP_HEADERS, "User-Agent": self.config.user_agent}

        try:
            async with self.session.get(url, headers=headers, allow_redirects=True) as resp:
                body = await resp.read()
                status = resp.status
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            return RouteOutcome(
                index=descriptor.index, route=descriptor.route, url=url,
                outcome_kind=OutcomeKind.TRANSPORT_ERROR,
                error_message=str(e) or type(e).__name__,
            )

        kind = classify_status(status)
        try:
            path = output_file_path(self.config.output_dir, descriptor.route, FETCH_FILE)
            path.write_bytes(body)
        except OSError as e:
            return RouteOutcome(
                index=descriptor.index, route=descriptor.route, url=url,
                outcome_kind=kind, status_code=status,
                error_message=f"could not save body: {e}",
            )

        return RouteOutcome(
            index=descriptor.index, route=descriptor.route, url=url,
            outcome_kind=kind, status_code=status,
            artifact_path=str(path), artifact_size_bytes=len(body),
        )

    async def verify_asset_mime_types(self) -> bool:
        """
        Fetch each configured static asset and compare its Content-Type.

        Prints PASS / WARN per asset; returns True only if all passed.
        Never raises for unreachable assets.
        """
        all_passed = True

        for path, expected in self.config.asset_checks.items():
            url = build_url(self.config.base_url, path)
            try:
                async with self.session.get(url) as resp:
                    content_type = resp.content_type or "unknown"
                    status = resp.status
            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                print(f"  WARN: {path} -> Error: {str(e) or type(e).__name__}")
                all_passed = False
                continue

            if not 200 <= status < 300:
                print(f"  WARN: {path} returned status {status}")
                all_passed = False
            elif content_type.lower().startswith(expected.lower()) or content_type.lower() in JS_MIME_ALIASES:
                print(f"  PASS: {path} -> {content_type}")
            else:
                print(f"  WARN: {path} has MIME type '{content_type}', expected '{expected}'")
                all_passed = False

        return all_passed
