"""
test_api.py: Endpoint tests for the FastAPI app.

The module-level stores are swapped for stores backed by FakeSupabaseClient,
so no request leaves the process.
"""

import pytest
from fastapi.testclient import TestClient

from api import main
from api import supabase_store
from api.supabase_store import PricingStore, SubmissionStore


@pytest.fixture
def client(fake_supabase, monkeypatch):
    monkeypatch.setattr(supabase_store, "pricing_store", PricingStore(fake_supabase))
    monkeypatch.setattr(supabase_store, "submission_store", SubmissionStore(fake_supabase))
    main.pricing_cache.clear()
    yield TestClient(main.app)
    main.pricing_cache.clear()


def _request(**overrides):
    body = {
        "project_type": "renovation",
        "dimensions": {"length": 10, "width": 8, "height": 9},
        "electrical_fixtures": ["ledMirror"],
        "plumbing_requirement": "complete",
        "additional_fixtures": ["vanity"],
        "timeline": "standard",
        "brand_id": "brand2",
        "customer": {
            "name": "Asha Rao",
            "email": "asha@example.com",
            "phone": "9876543210",
            "location": "Pune",
        },
    }
    body.update(overrides)
    return body


# Seeded pricing: tile 90, labor 100, plumbing 60/sq ft + 2000, ledMirror 200, vanity 500, brand2 1200
# tiles 112 x 90 = 10080, labor 404 x 100 = 40400, plumbing 2000 + 4800 = 6800
SEEDED_SUBTOTAL = 10080 + 40400 + 6800 + 200 + 500 + 1200


class TestHealth:

    def test_root(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_health(self, client):
        assert client.get("/health").json()["version"] == main.API_VERSION


class TestPricing:

    def test_pricing_snapshot(self, client):
        data = client.get("/api/v1/pricing").json()
        assert data["using_defaults"] is False
        assert data["rates"]["tileCostPerUnit"] == 90
        assert data["electrical_fixtures"]["ledMirror"]["price"] == 200
        assert data["brands"]["brand1"]["premium_price"] == 1500

    def test_session_snapshot_is_reused(self, client, fake_supabase):
        client.get("/api/v1/pricing", params={"session_id": "abc"})
        fake_supabase.tables["settings"][0]["settings"]["tileCostPerUnit"] = 500

        same_session = client.get("/api/v1/pricing", params={"session_id": "abc"}).json()
        new_session = client.get("/api/v1/pricing", params={"session_id": "xyz"}).json()
        assert same_session["rates"]["tileCostPerUnit"] == 90
        assert new_session["rates"]["tileCostPerUnit"] == 500

    def test_end_session_refetches(self, client, fake_supabase):
        client.get("/api/v1/pricing", params={"session_id": "abc"})
        fake_supabase.tables["settings"][0]["settings"]["tileCostPerUnit"] = 500
        assert client.delete("/api/v1/pricing/abc").json()["ended"] is True
        data = client.get("/api/v1/pricing", params={"session_id": "abc"}).json()
        assert data["rates"]["tileCostPerUnit"] == 500

    def test_store_down_uses_defaults(self, client, fake_supabase):
        fake_supabase.fail("settings")
        data = client.get("/api/v1/pricing").json()
        assert data["using_defaults"] is True
        assert data["rates"]["tileCostPerUnit"] == 80


class TestEstimate:

    def test_estimate(self, client):
        response = client.post("/api/v1/estimate", json=_request())
        assert response.status_code == 200
        data = response.json()
        assert data["using_defaults"] is False
        assert data["unknown_selections"] == {}
        assert data["breakdown"]["totalTilingCost"] == 50480
        assert data["breakdown"]["plumbingPrice"] == 6800
        assert data["breakdown"]["total"] == SEEDED_SUBTOTAL

    def test_flexible_discount(self, client):
        data = client.post("/api/v1/estimate", json=_request(timeline="flexible")).json()
        assert data["breakdown"]["timelineDiscount"] == pytest.approx(SEEDED_SUBTOTAL * 0.05)

    def test_height_defaults_to_rate_setting(self, client, fake_supabase):
        fake_supabase.tables["settings"][0]["settings"]["wallHeight"] = 8
        data = client.post("/api/v1/estimate", json=_request(dimensions={"length": 10, "width": 8})).json()
        assert data["breakdown"]["wallArea"] == 288

    def test_unknown_ids_reported(self, client):
        data = client.post(
            "/api/v1/estimate",
            json=_request(electrical_fixtures=["ledMirror", "oldFan"], brand_id="gone"),
        ).json()
        assert data["unknown_selections"] == {"electrical": ["oldFan"], "brand": ["gone"]}
        assert data["breakdown"]["electricalFixturesPrice"] == 200
        assert data["breakdown"]["brandPremium"] == 0

    def test_missing_plumbing_is_422(self, client):
        response = client.post("/api/v1/estimate", json=_request(plumbing_requirement=None))
        assert response.status_code == 422
        assert "plumbing_requirement" in response.json()["detail"]

    def test_missing_timeline_is_422(self, client):
        body = _request()
        del body["timeline"]
        response = client.post("/api/v1/estimate", json=body)
        assert response.status_code == 422
        assert "timeline" in response.json()["detail"]

    def test_tile_counts_are_integers(self, client):
        breakdown = client.post("/api/v1/estimate", json=_request()).json()["breakdown"]
        assert breakdown["tileQuantityWithBreakage"] == 112
        assert isinstance(breakdown["tileQuantityWithBreakage"], int)
        assert isinstance(breakdown["tileQuantityInitial"], int)

    def test_infinite_rate_setting_uses_defaults(self, client, fake_supabase):
        fake_supabase.tables["settings"][0]["settings"]["breakagePct"] = "inf"
        data = client.post("/api/v1/estimate", json=_request()).json()
        assert data["using_defaults"] is True
        assert data["breakdown"]["tileQuantityWithBreakage"] == 112

    def test_huge_dimensions_are_422(self, client):
        response = client.post("/api/v1/estimate", json=_request(dimensions={"length": 1e200, "width": 1e200}))
        assert response.status_code == 422

    def test_zero_dimension_is_422(self, client):
        response = client.post("/api/v1/estimate", json=_request(dimensions={"length": 0, "width": 8}))
        assert response.status_code == 422

    def test_unknown_plumbing_value_is_422(self, client):
        response = client.post("/api/v1/estimate", json=_request(plumbing_requirement="partial"))
        assert response.status_code == 422

    def test_compare_timelines(self, client):
        data = client.post("/api/v1/compare-timelines", json=_request()).json()
        assert data["standard"] == SEEDED_SUBTOTAL
        assert data["flexible"] == pytest.approx(SEEDED_SUBTOTAL * 0.95)


class TestSubmissions:

    def test_create_and_list(self, client, fake_supabase):
        response = client.post("/api/v1/submissions", json=_request())
        assert response.status_code == 201
        created = response.json()
        assert created["id"] == "1"
        assert created["status"] == "new"
        assert created["estimate_amount"] == SEEDED_SUBTOTAL
        assert created["form_data"]["brandSelection"] == "brand2"
        assert fake_supabase.tables["submissions"][0]["customer_details"]["name"] == "Asha Rao"

        listed = client.get("/api/v1/submissions").json()
        assert [s["id"] for s in listed] == ["1"]

    def test_status_update_and_filter(self, client):
        client.post("/api/v1/submissions", json=_request())
        client.post("/api/v1/submissions", json=_request())

        response = client.patch("/api/v1/submissions/2/status", json={"status": "qualified"})
        assert response.status_code == 200
        assert response.json() == {"id": "2", "status": "qualified"}

        qualified = client.get("/api/v1/submissions", params={"status": "qualified"}).json()
        assert [s["id"] for s in qualified] == ["2"]

    def test_update_missing_submission_is_404(self, client):
        response = client.patch("/api/v1/submissions/42/status", json={"status": "contacted"})
        assert response.status_code == 404

    def test_invalid_status_is_422(self, client):
        response = client.patch("/api/v1/submissions/1/status", json={"status": "archived"})
        assert response.status_code == 422

    def test_store_failure_is_502(self, client, fake_supabase):
        fake_supabase.fail("submissions")
        assert client.post("/api/v1/submissions", json=_request()).status_code == 502
        assert client.get("/api/v1/submissions").status_code == 502
        assert client.get("/api/v1/dashboard").status_code == 502

    def test_invalid_submission_not_saved(self, client, fake_supabase):
        response = client.post("/api/v1/submissions", json=_request(plumbing_requirement=None))
        assert response.status_code == 422
        assert "submissions" not in fake_supabase.tables

    def test_dashboard(self, client):
        client.post("/api/v1/submissions", json=_request())
        client.post("/api/v1/submissions", json=_request(timeline="flexible"))
        client.patch("/api/v1/submissions/1/status", json={"status": "contacted"})

        data = client.get("/api/v1/dashboard").json()
        assert data["total_submissions"] == 2
        assert data["by_status"]["contacted"] == 1
        assert data["by_status"]["new"] == 1
        assert data["total_estimate_amount"] == pytest.approx(SEEDED_SUBTOTAL * 1.95)


def test_generate_pdf(client):
    response = client.post("/api/v1/generate-pdf", json=_request())
    assert response.status_code == 200
    assert response.headers["content-type"] == "application/pdf"
    assert 'filename="Asha Rao_estimate.pdf"' in response.headers["content-disposition"]
    assert response.content.startswith(b"%PDF")
