"""
Monthly grouping and totals for service records.

All functions here are pure: they take an already loaded list of
records and recompute everything from scratch on each call.  Records
may be ``ServiceRead`` models or any object exposing the same
attributes.

A record counts towards the included total unless its
``include_in_total`` flag is explicitly ``False``; otherwise its price
goes to the pending total.  Months are keyed ``"YYYY-MM"`` in the
configured local calendar and returned most recent first.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple
from zoneinfo import ZoneInfo

from ..core.config import settings
from ..schemas.service import SERVICE_LABELS, SERVICE_PRICES, ServiceType


@dataclass
class MonthGroup:
    records: List[Any] = field(default_factory=list)
    included_total: float = 0.0
    pending_total: float = 0.0

    @property
    def count(self) -> int:
        return len(self.records)

    @property
    def total(self) -> float:
        return self.included_total + self.pending_total


@dataclass
class TypeSummary:
    service_type: str
    label: str
    count: int = 0
    included_total: float = 0.0
    pending_total: float = 0.0


def local_timezone() -> ZoneInfo:
    return ZoneInfo(settings.local_timezone)


def to_local(value: str | datetime) -> datetime:
    """Parse a timestamp and express it in the local calendar.

    Naive timestamps (including bare dates such as ``2024-03-01``) are
    taken as already local.
    """
    moment = value if isinstance(value, datetime) else datetime.fromisoformat(value)
    if moment.tzinfo is None:
        return moment
    return moment.astimezone(local_timezone())


def month_key(value: str | datetime) -> str:
    """Return the zero‑padded ``YYYY-MM`` key for a timestamp."""
    moment = to_local(value)
    return f"{moment.year:04d}-{moment.month:02d}"


def current_month_key(now: Optional[datetime] = None) -> str:
    """Key of the month containing ``now`` (defaults to the current local time)."""
    return month_key(now or datetime.now(local_timezone()))


def is_included(record: Any) -> bool:
    return record.include_in_total is not False


def group_by_month(records: Iterable[Any]) -> List[Tuple[str, MonthGroup]]:
    """Group records by month with included and pending totals.

    Parameters
    ----------
    records : Iterable
        Unordered records, possibly pre‑filtered by viewer scope.

    Returns
    -------
    list of (str, MonthGroup)
        Pairs sorted by month key descending.  Records keep their input
        order within a month.  Empty input yields an empty list.
    """
    grouped: Dict[str, MonthGroup] = {}
    for record in records:
        key = month_key(record.created_at)
        group = grouped.setdefault(key, MonthGroup())
        group.records.append(record)
        price = record.price or 0.0
        if is_included(record):
            group.included_total += price
        else:
            group.pending_total += price
    return sorted(grouped.items(), key=lambda item: item[0], reverse=True)


def summarize_by_type(records: Iterable[Any]) -> List[TypeSummary]:
    """Count records and sum prices per service type.

    Known types come first in price‑table order; unknown type codes
    found in the data follow alphabetically.
    """
    summaries: Dict[str, TypeSummary] = {}
    for record in records:
        code = record.service_type
        summary = summaries.get(code)
        if summary is None:
            try:
                label = SERVICE_LABELS[ServiceType(code)]
            except ValueError:
                label = code
            summary = summaries[code] = TypeSummary(service_type=code, label=label)
        summary.count += 1
        price = record.price or 0.0
        if is_included(record):
            summary.included_total += price
        else:
            summary.pending_total += price
    order = {service_type.value: index for index, service_type in enumerate(SERVICE_PRICES)}
    return sorted(
        summaries.values(),
        key=lambda s: (order.get(s.service_type, len(order)), s.service_type),
    )


def format_brl(amount: float) -> str:
    """Format an amount as Brazilian reais, e.g. ``R$ 1.234,50``."""
    sign = "-" if amount < 0 else ""
    whole, cents = f"{abs(amount):,.2f}".split(".")
    return f"{sign}R$ {whole.replace(',', '.')},{cents}"
