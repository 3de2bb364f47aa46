import dash_bootstrap_components as dbc
from dash import html

def create_client_status_badge(status_summary):
    """
    Creates a badge indicating how many clients loaded in the last fetch.
    status_summary: {
        'loaded': [client_id, ...],
        'failed': [(client_id, message), ...],
        'total': int,
        'complete': bool
    }
    """
    if not status_summary or (not status_summary.get('loaded') and not status_summary.get('failed')):
        return html.Div()

    loaded = status_summary.get('loaded', [])
    failed = status_summary.get('failed', [])
    total = status_summary.get('total', 0)

    if status_summary.get('complete'):
        label = "All Clients Loaded"
        color = "success"
        header = "Every client returned data for this range."
    elif loaded:
        label = f"{len(loaded)}/{total} Clients"
        color = "warning"
        header = "Partial data: totals only include the clients listed as loaded."
    else:
        label = "No Client Data"
        color = "danger"
        header = "No client returned data for this range."

    tooltip_content = html.Div([
        html.P(header, className="mb-2 fw-bold"),
        html.P(
            "Loaded: " + (", ".join(f"Client {cid}" for cid in loaded) or "none"),
            className="mb-0"
        ),
        html.Hr(className="my-2") if failed else None,
        html.P("Failed:", className="mb-1 small") if failed else None,
        html.Div([html.P(f"Client {cid}: {msg}", className="small mb-0") for cid, msg in failed])
    ], style={"textAlign": "left", "padding": "5px"})

    badge = dbc.Badge(
        label,
        color=color,
        pill=True,
        id="client-status-badge",
        style={"cursor": "pointer", "fontSize": "0.8rem"}
    )

    return html.Div([
        badge,
        dbc.Tooltip(
            tooltip_content,
            target="client-status-badge",
            placement="bottom",
            className="source-tooltip"
        )
    ], style={"display": "inline-block", "marginLeft": "10px"})
