from pathlib import Path

from .metrics import OutcomeKind, RouteDescriptor, RouteOutcome


def build_url(base_url: str, route: str) -> str:
    """Join base URL and route with exactly one slash between them."""
    return base_url.rstrip("/") + "/" + route.lstrip("/")


def route_to_directory(route: str) -> Path:
    """
    Mirror a route's path segments as a relative directory.

    "/Account/Login" -> Account/Login, "/" -> root
    """
    segments = [s for s in route.strip().strip("/").split("/") if s and s not in (".", "..")]
    if not segments:
        return Path("root")
    return Path(*segments)


def output_file_path(output_dir: str | Path, route: str, filename: str) -> Path:
    """Full output path for one of a route's artifacts; parent directories are created."""
    path = Path(output_dir) / route_to_directory(route) / filename
    path.parent.mkdir(parents=True, exist_ok=True)
    return path


def format_bytes(size: int) -> str:
    kb = 1024
    mb = kb * 1024
    gb = mb * 1024
    if size >= gb:
        return f"{size / gb:.1f} GB"
    if size >= mb:
        return f"{size / mb:.1f} MB"
    if size >= kb:
        return f"{size / kb:.1f} KB"
    return f"{size} bytes"


def error_outcome(descriptor: RouteDescriptor, url: str, kind: OutcomeKind, exc: BaseException) -> RouteOutcome:
    """
    Convenience factory for a RouteOutcome representing a probe that blew up.
    Used at the per-route boundary so a crashing probe still yields exactly
    one outcome for its route.
    """
    return RouteOutcome(
        index=descriptor.index,
        route=descriptor.route,
        url=url,
        outcome_kind=kind,
        error_message=str(exc) or type(exc).__name__,
    )


async def take_screenshot(page, path: Path) -> int:
    """Full-page screenshot to `path`; returns the written file size."""
    await page.screenshot(path=str(path), full_page=True)
    return path.stat().st_size
