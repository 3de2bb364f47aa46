"""Tests for the presentation layer helpers."""

import plotly.graph_objects as go
from dash import html

import dash_wrappers as dw
from components.client_status_badge import create_client_status_badge
from report_formatting import fmt_count, fmt_pct, format_service_name, truncate_label
from usage_engine import FunnelStage, aggregate

REPORTS = {
    "1": {
        "total_count": 1000,
        "verfied": 700,
        "not_verified": 200,
        "pending": 100,
        "client_name": "Alpha",
        "services_count": {
            "document_capture": {"total": 900, "verfied": 800, "not_verified": 100},
            "ocr_extraction": {"total": 0},
        },
    },
    "2": None,
    "3": {
        "total_count": 500,
        "verified": 250,
        "not_verified": 200,
        "incomplete": 4,
        "services_count": {
            "fingerprint_capture": {"total": 400, "matched_applicants": 300, "not_matched_applicants": 100},
        },
    },
}


class TestFormatting:
    def test_service_name(self):
        assert format_service_name("document_capture") == "Document Capture"
        assert format_service_name("Total Applications") == "Total Applications"
        assert format_service_name("ocr") == "Ocr"

    def test_counts_and_percentages(self):
        assert fmt_count(1234567) == "1,234,567"
        assert fmt_count(None) == "0"
        assert fmt_pct(37.5) == "37.5%"

    def test_truncate(self):
        assert truncate_label("Short") == "Short"
        assert truncate_label("A very long service name here") == "A very long servic..."


class TestViewModels:
    def test_summary_cards_hide_zero_incomplete(self):
        cards = dw.get_summary_cards(aggregate({"1": REPORTS["1"]}))
        assert [c["label"] for c in cards] == ["Total Applications", "Verified", "Pending", "Not Verified"]

    def test_summary_cards_show_incomplete(self):
        cards = dw.get_summary_cards(dw.get_overall_report(REPORTS))
        assert cards[-1] == {"key": "incomplete", "label": "Incomplete", "value": "4"}
        assert cards[0]["value"] == "1,500"

    def test_client_funnels_skip_absent_clients(self):
        funnels = dw.get_client_funnels(REPORTS)
        assert [(cid, title) for cid, title, _ in funnels] == [
            (1, "Client 1 Funnel - Alpha"),
            (3, "Client 3 Funnel - Unknown"),
        ]
        assert funnels[1][2].total_count == 500

    def test_service_details(self):
        details = dw.get_service_details(dw.get_overall_report(REPORTS))
        assert [d["name"] for d in details] == ["document_capture", "fingerprint_capture"]
        doc, fingerprint = details
        assert doc["verified_rate"] == 88.9
        assert ("Not Verified", "100") in doc["metrics"]
        assert fingerprint["verified_rate"] is None
        assert fingerprint["metrics"] == [
            ("Total", "400"), ("Matched Applicants", "300"), ("Not Matched Applicants", "100"),
        ]

    def test_conversion_cards(self):
        cards = dw.get_conversion_cards(dw.get_overall_report(REPORTS))
        assert [c["value"] for c in cards] == ["63.3%", "36.7%", "6.7%"]
        assert cards[0]["desc"] == "950 of 1,500 applications"

    def test_breakdown_rows(self):
        rows = dw.get_service_breakdown_rows(dw.get_overall_report(REPORTS))
        assert rows[0]["Service"] == "Document Capture"
        assert rows[0]["Client"] == "Client 1"
        assert dw.get_service_breakdown_rows(aggregate({})) == []

    def test_service_sections(self):
        sections = dw.get_service_sections(dw.get_overall_report(REPORTS))
        assert sections[0]["label"] == "Document Capture"
        assert sections[0]["clients"][0]["verified_pct"] == 89

    def test_section_and_grid_percentages_agree(self):
        aggregated = aggregate({"1": {"services_count": {"face_match": {"total": 8, "verified": 1}}}})
        section_pct = dw.get_service_sections(aggregated)[0]["clients"][0]["verified_pct"]
        grid_pct = dw.get_service_breakdown_rows(aggregated)[0]["Verified %"]
        assert section_pct == grid_pct == 13

    def test_client_status(self):
        status = dw.get_client_status(REPORTS, {"2": "Failed to fetch data for client 2. Status: 500"})
        assert status["loaded"] == [1, 3]
        assert status["failed"] == [(2, "Failed to fetch data for client 2. Status: 500")]
        assert status["complete"] is False


class TestFigures:
    def test_totals_chart(self):
        fig = dw.get_totals_chart(dw.get_overall_report(REPORTS))
        assert isinstance(fig, go.Figure)
        assert list(fig.data[0].y) == [950, 400]

    def test_dropoff_chart_keeps_zero_stages(self):
        fig = dw.get_dropoff_chart(dw.get_overall_report(REPORTS), theme="dark")
        assert [t.name for t in fig.data] == ["Verified", "Pending", "Drop-Off"]
        assert list(fig.data[0].y) == ["Total Applications", "Document Capture", "Fingerprint Captur...", "Ocr Extraction"]
        assert fig.layout.barmode == "stack"

    def test_funnel_chart_skips_zero_stages(self):
        fig = dw.get_funnel_chart(dw.get_overall_report(REPORTS))
        funnel = fig.data[0]
        assert list(funnel.x) == [1500, 900, 400]
        assert funnel.text[1] == "Document Capture: 900 | ↓ 40.0% (600 lost)"

    def test_funnel_chart_empty(self):
        fig = dw.get_funnel_chart(aggregate({}))
        assert len(fig.data) == 0

    def test_funnel_label_without_drop(self):
        assert dw.get_funnel_label(FunnelStage(name="Total Applications", value=10)) == "Total Applications: 10"
        stage = FunnelStage(name="ocr", value=12, drop_off_count=-2, drop_off_percentage=-20.0)
        assert dw.get_funnel_label(stage) == "Ocr: 12"


class TestClientStatusBadge:
    def test_nothing_fetched(self):
        badge = create_client_status_badge(dw.get_client_status({}, {}))
        assert isinstance(badge, html.Div)
        assert badge.children is None

    def test_partial(self):
        badge = create_client_status_badge(dw.get_client_status(REPORTS, {"2": "boom"}))
        assert badge.children[0].children == "2/3 Clients"
        assert badge.children[0].color == "warning"

    def test_complete(self):
        reports = {"1": {}, "2": {}, "3": {}}
        badge = create_client_status_badge(dw.get_client_status(reports, {}))
        assert badge.children[0].children == "All Clients Loaded"
