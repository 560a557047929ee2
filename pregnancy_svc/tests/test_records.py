"""
Tests for the signed-in user's record endpoints.
"""
from io import BytesIO

from PIL import Image

from conftest import PATIENT_HEADERS


# =============================================================================
# History
# =============================================================================

def test_list_records_empty(client):
    """A new user has no history."""
    response = client.get("/api/v1/records", headers=PATIENT_HEADERS)
    assert response.status_code == 200
    assert response.json() == []


def test_list_records_newest_first(client, make_record):
    first = make_record()
    second = make_record()

    response = client.get("/api/v1/records", headers=PATIENT_HEADERS)

    assert response.status_code == 200
    assert [r["id"] for r in response.json()] == [second.id, first.id]


def test_list_records_only_own(client, make_record):
    make_record(user_id="someone-else")

    response = client.get("/api/v1/records", headers=PATIENT_HEADERS)

    assert response.json() == []


def test_list_records_mixed_legacy_and_current(client, make_record):
    """Old urgency-only records render next to scored ones."""
    make_record(ai_response={"urgency": "Medium", "brief_summary": "قديم"})
    make_record(ai_response={"riskScores": {"overallRisk": 0.8}, "brief_summary": "جديد"})

    data = client.get("/api/v1/records", headers=PATIENT_HEADERS).json()

    assert data[0]["riskDisplay"] == {"label": "High", "style": "high", "scoreText": "80%"}
    assert data[1]["riskDisplay"] == {"label": "Medium", "style": "neutral", "scoreText": ""}
    assert data[1]["aiResponse"]["riskScores"] is None


# =============================================================================
# Home summary
# =============================================================================

def test_latest_without_records(client):
    response = client.get("/api/v1/records/latest", headers=PATIENT_HEADERS)
    assert response.status_code == 200
    assert response.json() is None


def test_latest_returns_newest(client, make_record):
    make_record(ai_response={"riskScores": {"overallRisk": 0.1}, "brief_summary": "a"})
    newest = make_record(ai_response={"riskScores": {"overallRisk": 0.55}, "brief_summary": "b"})

    data = client.get("/api/v1/records/latest", headers=PATIENT_HEADERS).json()

    assert data["id"] == newest.id
    assert data["riskDisplay"]["label"] == "Moderate"
    assert data["aiResponse"]["brief_summary"] == "b"


# =============================================================================
# PDF report
# =============================================================================

def test_report_pdf(client):
    buffer = BytesIO()
    Image.new("RGB", (800, 1200), "white").save(buffer, format="PNG")
    buffer.seek(0)

    response = client.post(
        "/api/v1/records/report.pdf",
        files={"file": ("report.png", buffer, "image/png")},
        headers=PATIENT_HEADERS
    )

    assert response.status_code == 200
    assert response.headers["content-type"] == "application/pdf"
    assert 'filename="Medical_Report.pdf"' in response.headers["content-disposition"]
    assert response.content.startswith(b"%PDF")


def test_report_pdf_unreadable_image(client):
    response = client.post(
        "/api/v1/records/report.pdf",
        files={"file": ("report.png", BytesIO(b"not a png"), "image/png")},
        headers=PATIENT_HEADERS
    )
    assert response.status_code == 415
