"""
Route list loading.

The route list is the CSV written by the endpoint mapper:

    FilePath,Route,RequiresAuth,Project

Only the Route (2nd) and RequiresAuth (3rd) columns matter here. Routes
with unresolved path parameters ("/admin/{id}") cannot be probed and are
returned separately instead of being dispatched.
"""

from pathlib import Path

import pandas as pd

from .metrics import RouteDescriptor

ROUTE_COLUMN = 1
AUTH_COLUMN = 2
TRUE_VALUES = {"true", "yes", "1"}


def has_parameter(route: str) -> bool:
    return "{" in route and "}" in route


def _cell(value) -> str:
    if value is None or pd.isna(value):
        return ""
    return str(value).strip().strip('"').strip()


def _parse_flag(value) -> bool:
    return _cell(value).lower() in TRUE_VALUES


def parse_routes(df: pd.DataFrame) -> tuple[list[RouteDescriptor], list[str]]:
    """
    Turn a route-list frame into (descriptors, skipped_routes).

    Indices are assigned contiguously to the kept routes, in row order.
    """
    descriptors: list[RouteDescriptor] = []
    skipped: list[str] = []

    if df.shape[1] <= ROUTE_COLUMN:
        return descriptors, skipped

    for row in df.itertuples(index=False):
        route = _cell(row[ROUTE_COLUMN])
        if not route:
            continue

        if has_parameter(route):
            skipped.append(route)
            continue

        requires_auth = _parse_flag(row[AUTH_COLUMN]) if len(row) > AUTH_COLUMN else False
        descriptors.append(RouteDescriptor(index=len(descriptors), route=route, requires_auth=requires_auth))

    return descriptors, skipped


def load_routes(csv_path: str | Path) -> tuple[list[RouteDescriptor], list[str]]:
    """Read the route list CSV (header row expected) and parse it."""
    # Rows with extra unquoted commas (or a trailing comma on every row) keep
    # their leading columns; the first column is never taken as the index
    try:
        df = pd.read_csv(
            csv_path,
            dtype=str,
            index_col=False,
            keep_default_na=False,
            skipinitialspace=True,
            engine="python",
            on_bad_lines=lambda bad_line: bad_line,
        )
    except pd.errors.EmptyDataError:
        return [], []
    return parse_routes(df)
