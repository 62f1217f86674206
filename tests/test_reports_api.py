from app.core.config import settings
from app.routers import reports
from app.utils import pdf_report


def test_health(client):
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert response.json()["timestamp"].endswith("+00:00")


def test_financial_report(client, sample_payload):
    response = client.post("/api/reports/financial", json=sample_payload)
    assert response.status_code == 200
    data = response.json()
    analytics = data["analytics"]
    assert data["currency"] == "USD"
    assert analytics["total_costs"] == 140.5
    assert analytics["total_expenses"] == 50
    assert analytics["total_budgets"] == 300
    assert [row["category"] for row in analytics["budget_vs_actual"]] == ["software", "travel"]
    assert len(analytics["monthly_trend"]) == 6
    assert analytics["monthly_trend"][-1]["month"] == "Jan 2025"
    assert data["health"]["over_budget_categories"] == 0


def test_financial_report_for_project(client, sample_payload):
    response = client.post("/api/reports/financial", params={"project_id": "p1"}, json=sample_payload)
    analytics = response.json()["analytics"]
    assert analytics["total_costs"] == 100
    assert analytics["total_expenses"] == 50
    assert analytics["total_budgets"] == 200
    assert analytics["budget_utilization"] == 75
    assert analytics["budget_vs_actual"] == [
        {"category": "software", "budgeted": 200, "actual": 150, "variance": -50, "percentage": 75}
    ]


def test_financial_report_unassigned(client, sample_payload):
    response = client.post("/api/reports/financial", params={"project_id": "unassigned"}, json=sample_payload)
    analytics = response.json()["analytics"]
    assert analytics["total_costs"] == 40.5
    assert analytics["total_expenses"] == 0
    assert analytics["top_categories"] == [{"category": "travel", "total": 40.5, "count": 1}]


def test_empty_payload(client):
    response = client.post("/api/reports/financial", json={})
    assert response.status_code == 200
    analytics = response.json()["analytics"]
    assert analytics["budget_utilization"] == 0
    assert analytics["budget_vs_actual"] == []
    assert analytics["top_categories"] == []
    assert len(analytics["monthly_trend"]) == 6


def test_invalid_payload(client):
    response = client.post("/api/reports/financial", json={"costs": "nope"})
    assert response.status_code == 422


def test_insights(client, sample_payload):
    response = client.post("/api/reports/insights", params={"project_id": "p1"}, json=sample_payload)
    assert response.status_code == 200
    titles = [insight["title"] for insight in response.json()["insights"]]
    assert titles == ["High Spending Category"]


def test_report_is_cached_per_project(client, sample_payload):
    client.post("/api/reports/financial", json=sample_payload)
    client.post("/api/reports/financial", json=sample_payload)
    client.post("/api/reports/financial", params={"project_id": "p1"}, json=sample_payload)
    assert len(reports.report_cache) == 2

    response = client.delete("/api/reports/cache", params={"project_id": "p1"})
    assert response.json() == {"invalidated": 1}
    assert len(reports.report_cache) == 1


def test_pdf_download(client, sample_payload):
    response = client.post(
        "/api/reports/financial/pdf",
        params={"title": "Financial Report", "include_insights": True},
        json=sample_payload,
    )
    assert response.status_code == 200
    assert response.headers["content-type"] == "application/pdf"
    assert "Financial_Report_" in response.headers["content-disposition"]
    assert response.content.startswith(b"%PDF")


def test_pdf_upload(client, sample_payload, monkeypatch):
    uploads = []

    def fake_upload(content, key, content_type="application/pdf"):
        uploads.append(key)
        return f"https://bucket/{key}"

    monkeypatch.setattr(settings, "REPORTS_UPLOAD_TO_S3", True)
    monkeypatch.setattr(pdf_report, "upload_report", fake_upload)
    response = client.post("/api/reports/financial/pdf", params={"project_id": "p1"}, json=sample_payload)
    assert response.status_code == 200
    assert response.json()["pdf_report_url"] == f"https://bucket/{uploads[0]}"
    assert uploads[0].startswith("reports/p1/")


def test_pdf_upload_failure(client, sample_payload, monkeypatch):
    monkeypatch.setattr(settings, "REPORTS_UPLOAD_TO_S3", True)
    monkeypatch.setattr(pdf_report, "upload_report", lambda *args, **kwargs: None)
    response = client.post("/api/reports/financial/pdf", json=sample_payload)
    assert response.status_code == 500


def test_csv_download(client, sample_payload):
    response = client.post("/api/reports/financial/csv", json=sample_payload)
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    lines = response.text.splitlines()
    assert lines[0] == "category,costs,expenses,budgets,total"
    assert "software,100,50,200,150" in lines


def test_blank_project_id_means_all_projects(client, sample_payload):
    fresh = client.post("/api/reports/financial", params={"project_id": ""}, json=sample_payload).json()
    assert fresh["project_id"] is None
    assert fresh["analytics"]["total_costs"] == 140.5

    client.post("/api/reports/financial", json=sample_payload)
    cached = client.post("/api/reports/financial", params={"project_id": "  "}, json=sample_payload).json()
    assert cached["analytics"] == fresh["analytics"]
    assert len(reports.report_cache) == 1


def test_lenient_records_do_not_fail_the_report(client):
    payload = {"expenses": [{"id": 1.5, "name": 42, "amount": 10, "isActive": None}]}
    response = client.post("/api/reports/financial", json=payload)
    assert response.status_code == 200
    assert response.json()["analytics"]["total_expenses"] == 10


def test_trend_includes_budgets(client, sample_payload):
    sample_payload["budgets"][0]["startDate"] = "2024-12-01"
    analytics = client.post("/api/reports/financial", json=sample_payload).json()["analytics"]
    assert [m["budgets"] for m in analytics["monthly_trend"][-2:]] == [200, 200]
