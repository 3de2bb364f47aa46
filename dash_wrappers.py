import plotly.graph_objects as go

from config import (
    CLIENT_IDS,
    DROPOFF_COLOR,
    NOT_VERIFIED_COLOR,
    PENDING_COLOR,
    TOTAL_STAGE_COLOR,
    VERIFIED_COLOR,
)
from report_formatting import fmt_count, fmt_pct, format_service_name, truncate_label
from usage_engine import (
    aggregate,
    build_funnel_stages,
    build_per_client_funnel,
    conversion_metrics,
    dropoff_rows,
    is_fingerprint_service,
    parse_client_report,
    service_client_breakdown,
    verified_pct,
    verified_rate,
)

# ============================================================
# VIEW MODELS
# ============================================================
# Everything here is recomputed from the raw per-client payloads held in
# the reports store; nothing is cached between renders.

def get_overall_report(reports):
    return aggregate(reports or {})


def get_client_funnels(reports, client_ids=CLIENT_IDS):
    """
    (client_id, title, AggregatedReport) for each client that returned services.
    """
    funnels = []
    for client_id in client_ids:
        raw = (reports or {}).get(str(client_id), (reports or {}).get(client_id))
        report = parse_client_report(raw)
        if report is None or not report.services:
            continue
        title = f"Client {client_id} Funnel - {report.client_name or 'Unknown'}"
        funnels.append((client_id, title, build_per_client_funnel(report, client_id)))
    return funnels


def get_summary_cards(aggregated):
    """Label/value pairs for the summary row. Incomplete only shows when non-zero."""
    cards = [
        {"key": "total", "label": "Total Applications", "value": fmt_count(aggregated.total_count)},
        {"key": "verified", "label": "Verified", "value": fmt_count(aggregated.verified)},
        {"key": "pending", "label": "Pending", "value": fmt_count(aggregated.pending)},
        {"key": "not-verified", "label": "Not Verified", "value": fmt_count(aggregated.not_verified)},
    ]
    if aggregated.incomplete > 0:
        cards.append({"key": "incomplete", "label": "Incomplete", "value": fmt_count(aggregated.incomplete)})
    return cards


def get_conversion_cards(aggregated):
    m = conversion_metrics(aggregated)
    return [
        {
            "label": "Conversion Rate",
            "value": fmt_pct(m["conversion_rate"]),
            "desc": f"{fmt_count(m['verified'])} of {fmt_count(m['total'])} applications",
            "tone": "positive",
        },
        {
            "label": "Drop Off Rate",
            "value": fmt_pct(m["dropoff_rate"]),
            "desc": f"{fmt_count(m['dropoff_count'])} applications not verified",
            "tone": "negative",
        },
        {
            "label": "Pending Rate",
            "value": fmt_pct(m["pending_rate"]),
            "desc": f"{fmt_count(m['pending'])} applications pending",
            "tone": "warning",
        },
    ]


def get_service_details(aggregated):
    """Per-service detail card data for services with a non-zero total, in funnel order."""
    details = []
    for index, s in enumerate([s for s in aggregated.services if s.total > 0]):
        c = s.counts
        fingerprint = is_fingerprint_service(s.name)
        metrics = []
        if fingerprint:
            metrics.append(("Total", fmt_count(c.total)))
            if c.matched_applicants > 0 or c.not_matched_applicants > 0:
                metrics.append(("Matched Applicants", fmt_count(c.matched_applicants)))
                metrics.append(("Not Matched Applicants", fmt_count(c.not_matched_applicants)))
        else:
            metrics.append(("Verified", fmt_count(c.verified)))
            if c.not_verified > 0:
                metrics.append(("Not Verified", fmt_count(c.not_verified)))
            if c.pending > 0:
                metrics.append(("Pending", fmt_count(c.pending)))
        details.append({
            "rank": index + 1,
            "name": s.name,
            "label": format_service_name(s.name),
            "total": fmt_count(c.total),
            "verified_rate": None if fingerprint else verified_rate(c),
            "metrics": metrics,
        })
    return details


def get_service_breakdown_rows(aggregated):
    """Per-service per-client rows for the AG Grid, service names formatted."""
    df = service_client_breakdown(aggregated)
    if df.empty:
        return []
    df["Service"] = df["Service"].apply(format_service_name)
    df["Client"] = df["Client"].apply(lambda cid: f"Client {cid}")
    return df.to_dict("records")


def get_service_sections(aggregated):
    """Per-service KPI values plus its client rows, for the overview page."""
    sections = []
    for s in aggregated.services:
        sections.append({
            "name": s.name,
            "label": format_service_name(s.name),
            "total": fmt_count(s.counts.total),
            "verified": fmt_count(s.counts.verified),
            "not_verified": fmt_count(s.counts.not_verified),
            "clients": [
                {
                    "client_id": cid,
                    "total": fmt_count(counts.total),
                    "verified": fmt_count(counts.verified),
                    "not_verified": fmt_count(counts.not_verified),
                    "verified_pct": verified_pct(counts),
                }
                for cid, counts in sorted(s.clients.items())
            ],
        })
    return sections


def get_client_status(reports, failures=None, client_ids=CLIENT_IDS):
    """
    Summary for the client status badge.
    failures: {client_id(str): error message} from the last fetch.
    """
    failures = failures or {}
    loaded = [cid for cid in client_ids if (reports or {}).get(str(cid)) is not None]
    failed = [(cid, failures[str(cid)]) for cid in client_ids if str(cid) in failures]
    return {
        "loaded": loaded,
        "failed": failed,
        "total": len(client_ids),
        "complete": len(loaded) == len(client_ids),
    }


# ============================================================
# FIGURES
# ============================================================

def _template(theme):
    return "plotly_white" if theme == "light" else "plotly_dark"


def get_totals_chart(aggregated, theme="light"):
    """Overall Verified vs Not Verified bar."""
    fig = go.Figure(go.Bar(
        x=["Verified", "Not Verified"],
        y=[aggregated.verified, aggregated.not_verified],
        marker_color=[VERIFIED_COLOR, NOT_VERIFIED_COLOR],
        name="Count",
        hovertemplate="<b>%{x}</b>: %{y:,}<extra></extra>"
    ))
    fig.update_layout(
        yaxis_title="Count",
        template=_template(theme),
        margin=dict(l=40, r=20, t=40, b=40)
    )
    return fig


def get_dropoff_chart(aggregated, theme="light"):
    """Stacked horizontal bar of verified / pending / drop-off per stage. Zero stages are kept."""
    rows = dropoff_rows(aggregated)
    labels = [truncate_label(format_service_name(r["stage"])) for r in rows]

    fig = go.Figure()
    for name, key, color in (
        ("Verified", "verified", VERIFIED_COLOR),
        ("Pending", "pending", PENDING_COLOR),
        ("Drop-Off", "dropoff", DROPOFF_COLOR),
    ):
        fig.add_trace(go.Bar(
            y=labels,
            x=[r[key] for r in rows],
            name=name,
            orientation='h',
            marker_color=color,
            hovertemplate=f"<b>%{{y}}</b><br>{name}: %{{x:,}}<extra></extra>"
        ))
    fig.update_layout(
        barmode="stack",
        template=_template(theme),
        legend=dict(orientation="h", yanchor="bottom", y=1.02, xanchor="center", x=0.5),
        yaxis=dict(autorange="reversed"),
        height=400,
        margin=dict(l=20, r=20, t=40, b=20)
    )
    return fig


def get_funnel_label(stage):
    """'Name: 1,234 | ↓ 12.5% (30 lost)'; the drop-off part only for a positive drop."""
    text = f"{format_service_name(stage.name)}: {fmt_count(stage.value)}"
    if stage.drop_off_percentage and stage.drop_off_percentage > 0:
        text += f" | ↓ {stage.drop_off_percentage:.1f}% ({fmt_count(stage.drop_off_count)} lost)"
    return text


def get_funnel_chart(aggregated, theme="light"):
    """Application flow funnel. Zero-value stages are skipped before drop-off is derived."""
    stages = build_funnel_stages(aggregated, skip_zero=True)
    if not stages:
        return go.Figure()

    colors = [
        TOTAL_STAGE_COLOR if s.service is None
        else f"hsl({200 + i * 15}, 70%, 55%)"
        for i, s in enumerate(stages)
    ]
    fig = go.Figure(go.Funnel(
        y=[format_service_name(s.name) for s in stages],
        x=[s.value for s in stages],
        text=[get_funnel_label(s) for s in stages],
        textinfo="text",
        textposition="inside",
        marker=dict(color=colors),
        hovertemplate="<b>%{y}</b><br>Count: %{x:,}<extra></extra>"
    ))
    fig.update_layout(
        template=_template(theme),
        yaxis=dict(showticklabels=False),
        height=500,
        margin=dict(l=20, r=20, t=20, b=20)
    )
    return fig
