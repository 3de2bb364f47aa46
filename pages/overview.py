from dash import dcc, html, callback, Input, Output
import dash_bootstrap_components as dbc
import dash_ag_grid as dag

import dash_wrappers as dw
from components.client_status_badge import create_client_status_badge
from components.kpi_card import create_kpi_card
from report_formatting import fmt_count
from usage_engine import has_any_data

layout = html.Div([
    dbc.Row([
        dbc.Col(html.H2("Analytics Dashboard", className="mb-0"), width="auto"),
        dbc.Col(html.Div(id="overview-status-container"), width="auto", className="d-flex align-items-center"),
    ], className="mb-4 g-2"),

    dcc.Loading(html.Div(id="overview-body")),
])


def _service_section(section):
    kpis = dbc.Row([
        dbc.Col(create_kpi_card("Total Count", section["total"], tone="total"), width=4),
        dbc.Col(create_kpi_card("Verified", section["verified"], tone="verified"), width=4),
        dbc.Col(create_kpi_card("Not Verified", section["not_verified"], tone="not-verified"), width=4),
    ], className="mb-3 g-2")

    client_cards = []
    for c in section["clients"]:
        client_cards.append(dbc.Col(dbc.Card(dbc.CardBody([
            html.H6(f"Client {c['client_id']}", className="mb-2"),
            html.Div([html.Span("Total: ", className="text-muted"), html.Span(c["total"])]),
            html.Div([html.Span("Verified: ", className="text-muted"), html.Span(c["verified"], className="text-info")]),
            html.Div([html.Span("Not Verified: ", className="text-muted"), html.Span(c["not_verified"], className="text-secondary")]),
            dbc.Progress(value=c["verified_pct"], color="info", className="mt-2", style={"height": "6px"}),
        ], className="p-2"), className="shadow-sm"), width=4))

    return dbc.Card([
        html.H5(section["label"], className="card-title p-2"),
        dbc.CardBody([
            kpis,
            html.H6("Client Breakdown", className="text-muted"),
            dbc.Row(client_cards, className="g-2"),
        ])
    ], className="mb-4")


@callback(
    [Output("overview-status-container", "children"),
     Output("overview-body", "children")],
    [Input("reports-store", "data"),
     Input("fetch-errors-store", "data"),
     Input("theme-store", "data")]
)
def update_overview(reports, fetch_errors, theme):
    status = create_client_status_badge(dw.get_client_status(reports, fetch_errors))

    if not has_any_data(reports):
        return status, html.P("Select a date range and fetch data to see results.", className="text-muted")

    aggregated = dw.get_overall_report(reports)

    sections = [_service_section(s) for s in dw.get_service_sections(aggregated)]

    breakdown_grid = dag.AgGrid(
        id="overview-breakdown-grid",
        rowData=dw.get_service_breakdown_rows(aggregated),
        columnDefs=[
            {"field": "Service"},
            {"field": "Client"},
            {"field": "Total", "type": "numericColumn"},
            {"field": "Verified", "type": "numericColumn"},
            {"field": "Not Verified", "type": "numericColumn"},
            {"field": "Verified %", "type": "numericColumn"},
        ],
        defaultColDef={"flex": 1, "minWidth": 100, "sortable": True, "filter": True, "resizable": True},
        className="ag-theme-alpine-dark" if theme == "dark" else "ag-theme-alpine",
        dashGridOptions={"domLayout": "autoHeight"}
    )

    overall = dbc.Card([
        html.H5("Overall Totals (All Clients)", className="card-title p-2"),
        dbc.CardBody([
            dbc.Row([
                dbc.Col(create_kpi_card("Total Count", fmt_count(aggregated.total_count), tone="total"), width=4),
                dbc.Col(create_kpi_card("Verified", fmt_count(aggregated.verified), tone="verified"), width=4),
                dbc.Col(create_kpi_card("Not Verified", fmt_count(aggregated.not_verified), tone="not-verified"), width=4),
            ], className="mb-3 g-2"),
            html.H6("Overall Verification Overview", className="text-muted"),
            dcc.Graph(id="overview-totals-chart", figure=dw.get_totals_chart(aggregated, theme), style={"height": "350px"}),
        ])
    ], className="mb-4")

    breakdown = dbc.Card([
        html.H5("Service / Client Breakdown", className="card-title p-2"),
        breakdown_grid,
    ], className="mb-4")

    return status, html.Div(sections + [overall, breakdown])
