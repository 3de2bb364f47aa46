import dash
from dash import dcc, html, callback, Input, Output, State
import dash_bootstrap_components as dbc

import data_loader
from errors import AuthenticationFailed
from session import SessionContext

layout = html.Div([
    dbc.Row([
        dbc.Col(dbc.Card([
            dbc.CardBody([
                html.H3("Welcome Back", className="mb-1"),
                html.P("Login to your dashboard", className="text-muted"),

                dbc.Label("Username"),
                dbc.Input(id="login-username", type="text", className="mb-3"),

                dbc.Label("Password"),
                dbc.Input(id="login-password", type="password", className="mb-3"),

                html.Div(id="login-error", className="text-danger small mb-2"),

                dbc.Button("Login", id="btn-login", color="primary", className="w-100"),
            ], className="p-4")
        ], className="shadow-sm"), width={"size": 4, "offset": 4})
    ], className="mt-5"),
])


@callback(
    [Output("session-store", "data", allow_duplicate=True),
     Output("login-error", "children")],
    [Input("btn-login", "n_clicks"),
     Input("login-password", "n_submit")],
    [State("login-username", "value"),
     State("login-password", "value")],
    prevent_initial_call=True
)
def submit_login(n_clicks, n_submit, username, password):
    if not username or not password:
        return dash.no_update, "Please enter username and password"

    try:
        token = data_loader.login(username, password)
    except AuthenticationFailed as e:
        return dash.no_update, e.message

    session = SessionContext()
    session.set(token, username)
    # Router reacts to the store change and moves to the dashboard
    return session.to_dict(), ""
