import dash_bootstrap_components as dbc
from dash import html

TONE_COLORS = {
    "total": "#2255FF",
    "verified": "#0488BB",
    "pending": "#ffa502",
    "not-verified": "#696969",
    "incomplete": "#8064A2",
    "positive": "#0488BB",
    "negative": "#d63031",
    "warning": "#ffa502",
}

def create_kpi_card(title, value, subtext=None, tone=None):
    """
    KPI card with a coloured left border.
    """
    color = TONE_COLORS.get(tone, "#4C6A92")

    card_content = [
        html.Div(title, className="text-muted small mb-1", style={'fontSize': '0.75rem', 'fontWeight': '500'}),
        html.H4(value, className="mb-1", style={'fontWeight': '600', 'fontSize': '1.4rem'}),
    ]

    # Force a placeholder if subtext is missing to maintain height
    card_content.append(
        html.Div(
            subtext or " ",
            style={
                'fontSize': '0.8rem',
                'fontWeight': '500',
                'color': '#6c757d' if subtext else 'transparent'
            }
        )
    )

    return dbc.Card(
        dbc.CardBody(card_content, className="p-2"),
        className="shadow-sm",
        style={
            'borderLeft': f'4px solid {color}',
            'height': '100%'
        }
    )
