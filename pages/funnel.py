from dash import dcc, html, callback, Input, Output
import dash_bootstrap_components as dbc

import dash_wrappers as dw
from components.client_status_badge import create_client_status_badge
from components.kpi_card import create_kpi_card
from report_formatting import fmt_count, fmt_pct
from usage_engine import conversion_metrics, has_any_data

layout = html.Div([
    dbc.Row([
        dbc.Col(html.H2("Verification Funnel", className="mb-0"), width="auto"),
        dbc.Col(html.Div(id="funnel-status-container"), width="auto", className="d-flex align-items-center"),
    ], className="mb-4 g-2"),

    dcc.Loading(html.Div(id="funnel-body")),
])


def _service_detail_card(detail):
    header = [
        html.Div([
            dbc.Badge(str(detail["rank"]), color="primary", className="me-2"),
            html.Span(detail["label"], className="fw-bold"),
        ]),
        html.Div(f"{detail['total']} Total", className="text-muted small"),
    ]
    if detail["verified_rate"] is not None:
        header.append(html.Div(fmt_pct(detail["verified_rate"]), className="text-info fw-bold"))

    rows = [
        html.Div([html.Span(f"{label}: ", className="text-muted"), html.Span(value)], className="small")
        for label, value in detail["metrics"]
    ]
    if detail["verified_rate"] is not None:
        rows.append(dbc.Progress(value=detail["verified_rate"], color="info", className="mt-2", style={"height": "6px"}))

    return dbc.Col(dbc.Card(dbc.CardBody(header + [html.Hr(className="my-2")] + rows, className="p-2"),
                            className="shadow-sm h-100"), width=4, className="mb-2")


def _funnel_section(title, aggregated, theme, section_id):
    """One funnel block: summary, drop-off chart, funnel chart, service details, conversion."""
    summary = dbc.Row([
        dbc.Col(create_kpi_card(card["label"], card["value"], tone=card["key"]))
        for card in dw.get_summary_cards(aggregated)
    ], className="mb-3 g-2")

    metrics = conversion_metrics(aggregated)
    dropoff_summary = html.Div([
        html.Span("Total Drop-Off: ", className="text-muted"),
        html.Span(fmt_count(metrics["dropoff_count"]), className="text-danger fw-bold me-4"),
        html.Span("Drop-Off Rate: ", className="text-muted"),
        html.Span(fmt_pct(metrics["dropoff_rate"]), className="text-danger fw-bold"),
    ], className="mt-2")

    conversion = dbc.Row([
        dbc.Col(create_kpi_card(card["label"], card["value"], subtext=card["desc"], tone=card["tone"]), width=4)
        for card in dw.get_conversion_cards(aggregated)
    ], className="g-2")

    return dbc.Card([
        html.H4(title, className="card-title p-2"),
        dbc.CardBody([
            summary,

            html.H5("Overall Drop-Off Analysis"),
            dcc.Graph(id=f"{section_id}-dropoff-chart", figure=dw.get_dropoff_chart(aggregated, theme)),
            dropoff_summary,
            html.Hr(),

            html.H5("Application Flow Funnel"),
            dcc.Graph(id=f"{section_id}-funnel-chart", figure=dw.get_funnel_chart(aggregated, theme)),
            html.Hr(),

            html.H5("Service Details"),
            dbc.Row([_service_detail_card(d) for d in dw.get_service_details(aggregated)], className="g-2"),
            html.Hr(),

            html.H5("Conversion Metrics"),
            conversion,
        ])
    ], className="mb-4 shadow-sm")


@callback(
    [Output("funnel-status-container", "children"),
     Output("funnel-body", "children")],
    [Input("reports-store", "data"),
     Input("fetch-errors-store", "data"),
     Input("theme-store", "data")]
)
def update_funnel(reports, fetch_errors, theme):
    status = create_client_status_badge(dw.get_client_status(reports, fetch_errors))

    if not has_any_data(reports):
        return status, html.P("Select a date range and fetch data to see results.", className="text-muted")

    sections = [_funnel_section("Overall Funnel (All Clients)", dw.get_overall_report(reports), theme, "funnel-overall")]
    for client_id, title, aggregated in dw.get_client_funnels(reports):
        sections.append(_funnel_section(title, aggregated, theme, f"funnel-client-{client_id}"))

    return status, html.Div(sections)
