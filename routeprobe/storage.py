import json
from pathlib import Path

import pandas as pd

from .metrics import RouteOutcome
from .utils import output_file_path

METADATA_FILENAME = "metadata.json"


def save_df(df: pd.DataFrame, name: str, directory: str | Path) -> Path | None:
    """
    Persist a DataFrame as CSV under <directory>/<name>.csv.

    This intentionally keeps the storage layer minimal, but centralizes
    the filesystem layout so it can be replaced later.
    """
    if df.empty:
        return None

    out_dir = Path(directory)
    out_dir.mkdir(parents=True, exist_ok=True)
    out_path = out_dir / f"{name}.csv"
    df.to_csv(out_path, index=False)
    print(f"Saved {out_path}")
    return out_path


def write_metadata(outcome: RouteOutcome, output_dir: str | Path) -> Path:
    """Write the route's metadata.json sidecar next to its artifacts."""
    path = output_file_path(output_dir, outcome.route, METADATA_FILENAME)
    path.write_text(json.dumps(outcome.to_dict(), ensure_ascii=False, indent=2), encoding="utf-8")
    return path


def outcomes_frame(outcomes: list[RouteOutcome]) -> pd.DataFrame:
    """One row per outcome, flattened for the results table."""
    rows = []
    for o in outcomes:
        auth = o.auth_flow
        rows.append({
            "index": o.index,
            "route": o.route,
            "url": o.url,
            "status_code": o.status_code,
            "outcome_kind": o.outcome_kind.value,
            "artifact_path": o.artifact_path,
            "artifact_size_bytes": o.artifact_size_bytes,
            "is_suspiciously_small": o.is_suspiciously_small,
            "retry_attempted": o.retry_attempted,
            "auth_state": auth.state.value if auth else None,
            "auth_note": auth.note if auth else None,
            "console_errors": len(o.console_errors),
            "captured_at_utc": o.captured_at_utc.isoformat(),
            "error_message": o.error_message,
        })
    df = pd.DataFrame(rows)
    if not df.empty:
        df["status_code"] = df["status_code"].astype("Int64")
    return df
