import math
from dataclasses import dataclass, field, fields
from typing import Dict, List, Mapping, Optional

import pandas as pd

from config import CLIENT_IDS

TOTAL_STAGE_NAME = "Total Applications"
FINGERPRINT_SERVICE = "fingerprint_capture"

# Wire key -> known misspellings, canonical key first
SERVICE_FIELD_KEYS = {
    "total": ("total",),
    "verified": ("verified", "verfied"),
    "not_verified": ("not_verified",),
    "pending": ("pending", "Pending"),
    "matched_applicants": ("matched_applicants",),
    "not_matched_applicants": ("not_matched_applicants",),
}

REPORT_FIELD_KEYS = {
    "total_count": ("total_count",),
    "verified": ("verified", "verfied"),
    "not_verified": ("not_verified",),
    "pending": ("pending", "Pending"),
    "incomplete": ("incomplete",),
}


# ============================================================
# DATA MODEL
# ============================================================

@dataclass
class ServiceCount:
    total: int = 0
    verified: int = 0
    not_verified: int = 0
    pending: int = 0
    matched_applicants: int = 0
    not_matched_applicants: int = 0

    def add(self, other: "ServiceCount") -> None:
        for f in fields(self):
            setattr(self, f.name, getattr(self, f.name) + getattr(other, f.name))

    def copy(self) -> "ServiceCount":
        return ServiceCount(**{f.name: getattr(self, f.name) for f in fields(self)})


@dataclass
class ClientReport:
    total_count: int = 0
    verified: int = 0
    not_verified: int = 0
    pending: int = 0
    incomplete: int = 0
    client_name: str = ""
    services: Dict[str, ServiceCount] = field(default_factory=dict)


@dataclass
class AggregatedService:
    name: str
    counts: ServiceCount = field(default_factory=ServiceCount)
    # client id -> that client's own counts for this service
    clients: Dict[int, ServiceCount] = field(default_factory=dict)

    @property
    def total(self) -> int:
        return self.counts.total


@dataclass
class AggregatedReport:
    total_count: int = 0
    verified: int = 0
    not_verified: int = 0
    pending: int = 0
    incomplete: int = 0
    services: List[AggregatedService] = field(default_factory=list)

    def scalars(self) -> dict:
        return {
            "total_count": self.total_count,
            "verified": self.verified,
            "not_verified": self.not_verified,
            "pending": self.pending,
            "incomplete": self.incomplete,
        }

    def service(self, name: str) -> Optional[AggregatedService]:
        for s in self.services:
            if s.name == name:
                return s
        return None


@dataclass
class FunnelStage:
    name: str
    value: int
    drop_off_count: Optional[int] = None
    drop_off_percentage: Optional[float] = None
    service: Optional[AggregatedService] = None


# ============================================================
# INGESTION (alias resolution + numeric coercion)
# ============================================================

def to_count(value) -> int:
    """
    Coerce a wire value to a non-negative int.

    Numbers and numeric strings pass through (floats truncate). Everything
    else, including bools, NaN, infinities and negatives, becomes 0.
    """
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return 0
        try:
            value = float(value)
        except ValueError:
            return 0
    if not isinstance(value, (int, float)):
        return 0
    if isinstance(value, float) and not math.isfinite(value):
        return 0
    value = int(value)
    return value if value > 0 else 0


def resolve_field(payload: Mapping, keys) -> int:
    """First key present with a non-null value wins; later keys are fallbacks."""
    for key in keys:
        if payload.get(key) is not None:
            return to_count(payload[key])
    return 0


def parse_service_count(payload) -> ServiceCount:
    if not isinstance(payload, Mapping):
        return ServiceCount()
    return ServiceCount(**{
        name: resolve_field(payload, keys) for name, keys in SERVICE_FIELD_KEYS.items()
    })


def parse_client_report(payload) -> Optional[ClientReport]:
    """
    Normalize one raw services-count response.

    Returns None for an absent report. An already parsed ``ClientReport`` is
    returned unchanged so callers can mix raw and parsed inputs.
    """
    if payload is None:
        return None
    if isinstance(payload, ClientReport):
        return payload
    if not isinstance(payload, Mapping):
        return ClientReport()

    scalars = {name: resolve_field(payload, keys) for name, keys in REPORT_FIELD_KEYS.items()}

    raw_services = payload.get("services_count")
    services = {}
    if isinstance(raw_services, Mapping):
        for service_name, service_payload in raw_services.items():
            services[str(service_name)] = parse_service_count(service_payload)

    client_name = payload.get("client_name")
    return ClientReport(
        client_name=str(client_name) if client_name else "",
        services=services,
        **scalars,
    )


def _lookup(reports: Mapping, client_id):
    # JSON stores (dcc.Store) turn int keys into strings
    if client_id in reports:
        return reports[client_id]
    return reports.get(str(client_id))


# ============================================================
# AGGREGATION
# ============================================================

def aggregate(reports: Mapping, client_ids=CLIENT_IDS) -> AggregatedReport:
    """
    Merge per-client reports into one AggregatedReport.

    Clients are visited in ascending id order and absent reports count as
    zero. Services are sorted by total descending; the sort is stable so
    ties keep first-seen order.
    """
    result = AggregatedReport()
    services: Dict[str, AggregatedService] = {}

    for client_id in sorted(client_ids):
        report = parse_client_report(_lookup(reports or {}, client_id))
        if report is None:
            continue

        result.total_count += report.total_count
        result.verified += report.verified
        result.not_verified += report.not_verified
        result.pending += report.pending
        result.incomplete += report.incomplete

        for name, counts in report.services.items():
            entry = services.get(name)
            if entry is None:
                entry = services[name] = AggregatedService(name=name)
            entry.counts.add(counts)
            entry.clients[client_id] = counts.copy()

    result.services = sorted(services.values(), key=lambda s: s.counts.total, reverse=True)
    return result


def build_per_client_funnel(report, client_id=0) -> AggregatedReport:
    """Wraps a single client's report so it goes through the same funnel path as the overall view."""
    return aggregate({client_id: report}, client_ids=(client_id,))


def build_funnel_stages(aggregated: AggregatedReport, skip_zero=False) -> List[FunnelStage]:
    """
    Stage 0 is Total Applications, then each service in sorted order.

    With ``skip_zero`` the zero-value stages are dropped before drop-off is
    derived, so each drop-off is relative to the previous remaining stage.
    """
    stages = [FunnelStage(name=TOTAL_STAGE_NAME, value=aggregated.total_count)]
    stages += [FunnelStage(name=s.name, value=s.total, service=s) for s in aggregated.services]

    if skip_zero:
        stages = [s for s in stages if s.value > 0]

    for prev, stage in zip(stages, stages[1:]):
        stage.drop_off_count = prev.value - stage.value
        stage.drop_off_percentage = percentage(stage.drop_off_count, prev.value)
    return stages


# ============================================================
# DERIVED METRICS
# ============================================================

def percentage(part, whole, digits=1) -> float:
    """part / whole * 100 rounded to ``digits``; 0.0 when whole is 0."""
    if not whole:
        return 0.0
    return round(part / whole * 100.0, digits)


def verified_rate(counts: ServiceCount) -> float:
    return percentage(counts.verified, counts.total)


def whole_percentage(part, whole) -> int:
    """part / whole * 100 rounded half-up to an integer, from the raw ratio."""
    if not whole:
        return 0
    return int(math.floor(part / whole * 100.0 + 0.5))


def verified_pct(counts: ServiceCount) -> int:
    return whole_percentage(counts.verified, counts.total)


def is_fingerprint_service(name: str) -> bool:
    return name == FINGERPRINT_SERVICE


def conversion_metrics(aggregated: AggregatedReport) -> dict:
    total = aggregated.total_count
    dropoff = total - aggregated.verified
    return {
        "conversion_rate": percentage(aggregated.verified, total),
        "dropoff_rate": percentage(dropoff, total),
        "pending_rate": percentage(aggregated.pending, total),
        "dropoff_count": dropoff,
        "verified": aggregated.verified,
        "pending": aggregated.pending,
        "total": total,
    }


def dropoff_rows(aggregated: AggregatedReport) -> List[dict]:
    """Rows for the stacked drop-off chart. Every stage is kept, zero totals included."""
    rows = [{
        "stage": TOTAL_STAGE_NAME,
        "total": aggregated.total_count,
        "verified": aggregated.verified,
        "pending": aggregated.pending,
        "dropoff": aggregated.total_count - aggregated.verified,
    }]
    for s in aggregated.services:
        rows.append({
            "stage": s.name,
            "total": s.counts.total,
            "verified": s.counts.verified,
            "pending": s.counts.pending,
            "dropoff": s.counts.total - s.counts.verified,
        })
    return rows


def service_client_breakdown(aggregated: AggregatedReport) -> pd.DataFrame:
    """One row per (service, client) pair that reported the service."""
    columns = ["Service", "Client", "Total", "Verified", "Not Verified", "Verified %"]
    rows = []
    for s in aggregated.services:
        for client_id in sorted(s.clients):
            counts = s.clients[client_id]
            rows.append({
                "Service": s.name,
                "Client": client_id,
                "Total": counts.total,
                "Verified": counts.verified,
                "Not Verified": counts.not_verified,
                "Verified %": verified_pct(counts),
            })
    return pd.DataFrame(rows, columns=columns)


def has_any_data(reports: Mapping, client_ids=CLIENT_IDS) -> bool:
    """True when at least one client returned services or a non-zero total."""
    for client_id in client_ids:
        report = parse_client_report(_lookup(reports or {}, client_id))
        if report is not None and (report.services or report.total_count > 0):
            return True
    return False
