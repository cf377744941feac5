from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import asdict, dataclass, field
from datetime import date, datetime, time, timezone

from app.constants import TRACKING_STATUSES

SORT_FIELDS = ("created_at", "updated_at", "quantity", "status")
SORT_ORDERS = ("asc", "desc")
MAX_PAGE_SIZE = 100
MAX_REMARKS_LENGTH = 500

Errors = dict[str, list[str]]

# the dashboards send camelCase and "filters."-prefixed keys
_QUERY_ALIASES = {
    "page": ("page",),
    "page_size": ("page_size", "limit"),
    "sort_by": ("sort_by", "sortBy"),
    "sort_order": ("sort_order", "sortOrder"),
    "vendor": ("vendor", "filters.vendor"),
    "status": ("status", "filters.status"),
    "qty_min": ("qty_min", "filters.qty_min", "filters.qtyMin"),
    "qty_max": ("qty_max", "filters.qty_max", "filters.qtyMax"),
    "date_from": ("date_from", "filters.date_from", "filters.dateFrom"),
    "date_to": ("date_to", "filters.date_to", "filters.dateTo"),
    "search": ("search", "filters.search"),
}

_SORT_FIELD_ALIASES = {"createdAt": "created_at", "updatedAt": "updated_at"}


@dataclass(frozen=True)
class TrackingFilters:
    vendor: str | None = None
    status: str | None = None
    qty_min: int | None = None
    qty_max: int | None = None
    date_from: datetime | None = None
    date_to: datetime | None = None
    search: str | None = None


@dataclass(frozen=True)
class TrackingQuery:
    page: int = 1
    page_size: int = 10
    sort_by: str = "created_at"
    sort_order: str = "desc"
    filters: TrackingFilters = field(default_factory=TrackingFilters)

    def cache_fragment(self) -> str:
        """Stable string form used in cache keys; equal queries give equal strings."""
        return json.dumps(asdict(self), sort_keys=True, default=str, separators=(",", ":"))


@dataclass(frozen=True)
class StatusUpdate:
    status: str
    remarks: str | None = None


def _first_value(args: Mapping[str, str], name: str) -> str | None:
    for key in _QUERY_ALIASES[name]:
        raw = args.get(key)
        if raw is not None and str(raw).strip() != "":
            return str(raw).strip()
    return None


def _parse_int(
    args: Mapping[str, str],
    name: str,
    errors: Errors,
    *,
    default: int | None = None,
    minimum: int | None = None,
    maximum: int | None = None,
) -> int | None:
    raw = _first_value(args, name)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError:
        errors.setdefault(name, []).append(f"{name} must be an integer")
        return default
    if minimum is not None and value < minimum:
        errors.setdefault(name, []).append(f"{name} must be >= {minimum}")
    if maximum is not None and value > maximum:
        errors.setdefault(name, []).append(f"{name} must be <= {maximum}")
    return value


def parse_datetime(raw: str, *, end_of_day: bool = False) -> datetime:
    """Parse an ISO date or datetime into an aware UTC datetime.

    A bare date expands to the start of that day, or to its last instant when
    ``end_of_day`` is set, so ``date_to=2025-01-31`` includes the whole day.
    """
    text = raw.strip()
    if len(text) == 10:
        day = date.fromisoformat(text)
        return datetime.combine(day, time.max if end_of_day else time.min, tzinfo=timezone.utc)
    if text.endswith("Z"):
        text = f"{text[:-1]}+00:00"
    value = datetime.fromisoformat(text)
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _parse_date(args: Mapping[str, str], name: str, errors: Errors, *, end_of_day: bool = False) -> datetime | None:
    raw = _first_value(args, name)
    if raw is None:
        return None
    try:
        return parse_datetime(raw, end_of_day=end_of_day)
    except ValueError:
        errors.setdefault(name, []).append(f"{name} must be an ISO-8601 date or datetime")
        return None


def parse_tracking_query(args: Mapping[str, str]) -> tuple[TrackingQuery | None, Errors]:
    errors: Errors = {}

    page = _parse_int(args, "page", errors, default=1, minimum=1)
    page_size = _parse_int(args, "page_size", errors, default=10, minimum=1, maximum=MAX_PAGE_SIZE)

    sort_by = _first_value(args, "sort_by") or "created_at"
    sort_by = _SORT_FIELD_ALIASES.get(sort_by, sort_by)
    if sort_by not in SORT_FIELDS:
        errors.setdefault("sort_by", []).append(f"sort_by must be one of: {', '.join(SORT_FIELDS)}")

    sort_order = (_first_value(args, "sort_order") or "desc").lower()
    if sort_order not in SORT_ORDERS:
        errors.setdefault("sort_order", []).append("sort_order must be asc or desc")

    status = _first_value(args, "status")
    if status is not None and status not in TRACKING_STATUSES:
        errors.setdefault("status", []).append(f"status must be one of: {', '.join(TRACKING_STATUSES)}")

    qty_min = _parse_int(args, "qty_min", errors, minimum=0)
    qty_max = _parse_int(args, "qty_max", errors, minimum=0)
    if qty_min is not None and qty_max is not None and qty_min > qty_max:
        errors.setdefault("qty_min", []).append("qty_min cannot be greater than qty_max")

    date_from = _parse_date(args, "date_from", errors)
    date_to = _parse_date(args, "date_to", errors, end_of_day=True)
    if date_from is not None and date_to is not None and date_from > date_to:
        errors.setdefault("date_from", []).append("date_from cannot be after date_to")

    if errors:
        return None, errors

    filters = TrackingFilters(
        vendor=_first_value(args, "vendor"),
        status=status,
        qty_min=qty_min,
        qty_max=qty_max,
        date_from=date_from,
        date_to=date_to,
        search=_first_value(args, "search"),
    )
    return (
        TrackingQuery(
            page=page,
            page_size=page_size,
            sort_by=sort_by,
            sort_order=sort_order,
            filters=filters,
        ),
        {},
    )


def parse_status_update(payload: object, order_item_id: int) -> tuple[StatusUpdate | None, Errors]:
    if not isinstance(payload, dict):
        return None, {"body": ["request body must be a JSON object"]}

    errors: Errors = {}
    # drag-and-drop clients send camelCase
    status = payload.get("status", payload.get("newStatus"))
    if not isinstance(status, str) or status.strip() not in TRACKING_STATUSES:
        errors.setdefault("status", []).append(f"status must be one of: {', '.join(TRACKING_STATUSES)}")

    remarks = payload.get("remarks")
    if remarks is not None:
        if not isinstance(remarks, str):
            errors.setdefault("remarks", []).append("remarks must be a string")
        elif len(remarks) > MAX_REMARKS_LENGTH:
            errors.setdefault("remarks", []).append(f"remarks must be at most {MAX_REMARKS_LENGTH} characters")

    body_item_id = payload.get("order_item_id", payload.get("orderItemId"))
    if body_item_id is not None and str(body_item_id) != str(order_item_id):
        errors.setdefault("order_item_id", []).append("order_item_id does not match the URL")

    if errors:
        return None, errors

    cleaned_remarks = remarks.strip() if isinstance(remarks, str) and remarks.strip() else None
    return StatusUpdate(status=status.strip(), remarks=cleaned_remarks), {}
