import logging

import dash
from dash import dcc, html, Input, Output, State
import dash_bootstrap_components as dbc
from datetime import datetime, timedelta

import config
import data_loader
from date_range import validate_range
from session import SessionContext, resolve_route

# Import Pages
from pages import login, overview, funnel

logging.basicConfig(
    level=getattr(logging, config.LOG_LEVEL, logging.INFO),
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)

# Path -> allowed usernames (empty means any authenticated user)
PROTECTED_PAGES = {
    "/dashboard": set(),
    "/funnel": config.FUNNEL_ALLOWED_USERNAMES,
}

PAGE_LAYOUTS = {
    "/": login.layout,
    "/dashboard": overview.layout,
    "/funnel": funnel.layout,
}

# Initialize App
app = dash.Dash(
    __name__,
    external_stylesheets=[dbc.themes.FLATLY, dbc.icons.BOOTSTRAP],
    suppress_callback_exceptions=True,
    title="Analytics Dashboard"
)
server = app.server

# Sidebar Component
sidebar = html.Div(
    [
        html.H3("TRUID", className="display-6"),
        html.P("Verification Analytics", className="lead"),
        html.Hr(),

        dbc.Nav(
            [
                dbc.NavLink("Service Breakdown", href="/dashboard", active="exact"),
                dbc.NavLink("Funnel", href="/funnel", active="exact"),
            ],
            vertical=True,
            pills=True,
        ),

        html.Hr(),

        # Controls
        html.Div([
            dbc.Label("Theme"),
            dbc.Switch(id="theme-switch", label="Dark Mode", value=False, className="mb-2"),

            dbc.Label("From Date"),
            dcc.DatePickerSingle(
                id="date-picker-from",
                date=(datetime.now() - timedelta(days=7)).date(),
                display_format="YYYY-MM-DD",
                className="mb-2 d-block",
                style={'zIndex': 100}
            ),

            dbc.Label("To Date"),
            dcc.DatePickerSingle(
                id="date-picker-to",
                date=datetime.now().date(),
                display_format="YYYY-MM-DD",
                className="mb-2 d-block",
                style={'zIndex': 99}
            ),

            dbc.Button("Fetch Data", id="btn-fetch", color="primary", className="w-100 mt-2"),
            html.Div(id="fetch-error-message", className="text-danger small mt-2"),

            html.Hr(),
            html.Div(id="sidebar-username", className="text-muted small mb-2"),
            dbc.Button(
                [html.I(className="bi bi-box-arrow-right me-2"), "Logout"],
                id="btn-logout", color="secondary", className="w-100"
            ),
        ]),
    ],
    id="sidebar",
    className="sidebar",
)

# Content Container
content = html.Div(id="page-content", className="content")

# Main Layout
app.layout = html.Div(
    [
        dcc.Location(id="url"),

        # Session (token + username) lives for the browser tab
        dcc.Store(id="session-store", storage_type="session"),

        # Raw per-client payloads: {"1": {...} | None, "2": ..., "3": ...}
        dcc.Store(id="reports-store", storage_type="memory"),
        # Per-client error messages from the last fetch
        dcc.Store(id="fetch-errors-store", storage_type="memory"),
        dcc.Store(id="theme-store", data="light"),

        sidebar,
        content,
    ],
    id="main-container",
    **{"data-theme": "light"}
)

# Validation Layout (Required for multi-page apps with global callbacks)
app.validation_layout = html.Div([
    app.layout,
    login.layout,
    overview.layout,
    funnel.layout,
])

# ============================================================
# CALLBACKS
# ============================================================

# 1. Router + auth gate
@app.callback(
    [Output("page-content", "children"),
     Output("url", "pathname"),
     Output("sidebar", "style"),
     Output("sidebar-username", "children")],
    [Input("url", "pathname"),
     Input("session-store", "data")]
)
def render_page_content(pathname, session_data):
    session = SessionContext(session_data)
    page, redirect = resolve_route(pathname, session, PROTECTED_PAGES)

    sidebar_style = {"display": "none"} if page in (None, "/") or not session.is_authenticated else {}
    username = f"Signed in as {session.get_username()}" if session.get_username() else ""
    url_out = redirect if redirect and redirect != pathname else dash.no_update

    if page is None:
        return dbc.Container(
            [
                html.H1("404: Not found", className="text-danger"),
                html.Hr(),
                html.P(f"The pathname {pathname} was not recognised..."),
            ],
            className="py-3"
        ), url_out, sidebar_style, username

    return PAGE_LAYOUTS[page], url_out, sidebar_style, username

# 2. Theme
@app.callback(
    [Output("theme-store", "data"),
     Output("main-container", "data-theme")],
    [Input("theme-switch", "value")]
)
def update_theme(is_dark):
    theme = "dark" if is_dark else "light"
    return theme, theme

# 3. Fetch all clients
@app.callback(
    [Output("reports-store", "data"),
     Output("fetch-errors-store", "data"),
     Output("fetch-error-message", "children"),
     Output("session-store", "data", allow_duplicate=True)],
    [Input("btn-fetch", "n_clicks")],
    [State("date-picker-from", "date"),
     State("date-picker-to", "date"),
     State("session-store", "data")],
    running=[
        (Output("btn-fetch", "disabled"), True, False),
        (Output("btn-fetch", "children"), "Fetching...", "Fetch Data"),
    ],
    prevent_initial_call=True
)
def fetch_data(n_clicks, from_date, to_date, session_data):
    session = SessionContext(session_data)
    if not session.is_authenticated:
        return None, None, "", None

    message = validate_range(from_date, to_date)
    if message:
        return dash.no_update, dash.no_update, message, dash.no_update

    state = data_loader.FetchState()
    outcome = data_loader.fetch_all_clients(session.get_token(), from_date, to_date, state=state)
    loaded = sum(1 for slot in state.slots.values() if slot is not None)
    logger.info("Fetch %s..%s settled: %d of %d clients loaded", from_date, to_date, loaded, len(state.slots))

    if outcome.unauthorized:
        session.clear()
        return None, None, "", session.to_dict()

    errors = {str(cid): err.message for cid, err in outcome.failures.items()}
    return outcome.payloads(), errors, "", dash.no_update

# 4. Logout
@app.callback(
    [Output("session-store", "data", allow_duplicate=True),
     Output("reports-store", "data", allow_duplicate=True),
     Output("fetch-errors-store", "data", allow_duplicate=True)],
    [Input("btn-logout", "n_clicks")],
    prevent_initial_call=True
)
def logout(n_clicks):
    session = SessionContext()
    session.clear()
    return session.to_dict(), None, None

if __name__ == "__main__":
    app.run(debug=True)
