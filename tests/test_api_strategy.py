"""
Strategy API tests.

Tests cover:
  - create / list / get / update / archive / restore / delete
  - capability checks: masked 404 on strategy routes, 403 otherwise
  - interview PATCH with optimistic version
  - completion split
  - phase advance and administrative reset
"""

import pytest


@pytest.fixture()
def created(client, auth_headers):
    res = client.post("/api/v1/strategies", headers=auth_headers(),
                      json={"brand_name": "Bonnet Rouge", "sector": "Agroalimentaire",
                            "interview_data": {"A1": "Le Sage"}})
    assert res.status_code == 201
    return res.get_json()


class TestCrud:
    def test_create_returns_pillars(self, created):
        assert created["phase"] == "fiche"
        assert created["phase_title"] == "Fiche de Marque"
        assert len(created["pillars"]) == 8
        assert created["user_id"] == "user-1"

    def test_create_validation(self, client, auth_headers):
        res = client.post("/api/v1/strategies", headers=auth_headers(), json={"sector": "x"})
        assert res.status_code == 400
        body = res.get_json()
        assert body["code"] == "ERR_VALIDATION"
        assert body["details"] == {"brand_name": "required"}

    def test_create_rejects_non_object_body(self, client, auth_headers):
        res = client.post("/api/v1/strategies", headers=auth_headers(), json=["x"])
        assert res.status_code == 400

    def test_client_role_cannot_create(self, client, auth_headers):
        res = client.post("/api/v1/strategies", headers=auth_headers(role="CLIENT_RETAINER"),
                          json={"brand_name": "x"})
        assert res.status_code == 403
        assert res.get_json()["code"] == "ERR_FORBIDDEN"

    def test_list_paginates(self, client, auth_headers, created):
        client.post("/api/v1/strategies", headers=auth_headers(), json={"brand_name": "Second"})
        res = client.get("/api/v1/strategies?limit=1", headers=auth_headers())
        body = res.get_json()
        assert body["total"] == 2
        assert len(body["items"]) == 1
        assert "pillars" not in body["items"][0]

    def test_get_and_update(self, client, auth_headers, created):
        url = f"/api/v1/strategies/{created['id']}"
        assert client.get(url, headers=auth_headers()).status_code == 200
        res = client.patch(url, headers=auth_headers(), json={"sector": "Laitier", "phase": "cockpit"})
        body = res.get_json()
        assert body["sector"] == "Laitier"
        assert body["phase"] == "fiche"

    def test_update_rejects_non_string_fields(self, client, auth_headers, created):
        url = f"/api/v1/strategies/{created['id']}"
        res = client.patch(url, headers=auth_headers(), json={"brand_name": 5})
        assert res.status_code == 400
        body = res.get_json()
        assert body["code"] == "ERR_VALIDATION"
        assert body["details"] == {"brand_name": "must be a string"}
        assert client.get(url, headers=auth_headers()).get_json()["brand_name"] == "Bonnet Rouge"

    def test_other_owner_gets_404(self, client, auth_headers, created):
        res = client.get(f"/api/v1/strategies/{created['id']}", headers=auth_headers(user_id="user-2"))
        assert res.status_code == 404
        assert res.get_json()["error"] == "Strategy not found"

    def test_missing_capability_is_masked(self, client, auth_headers, created):
        res = client.get(f"/api/v1/strategies/{created['id']}",
                         headers=auth_headers(role="CLIENT_STATIC"))
        assert res.status_code == 404

    def test_archive_restore_delete(self, client, auth_headers, created):
        url = f"/api/v1/strategies/{created['id']}"
        assert client.post(f"{url}/archive", headers=auth_headers()).get_json()["side_status"] == "archived"
        assert client.get("/api/v1/strategies", headers=auth_headers()).get_json()["total"] == 0

        assert client.delete(url, headers=auth_headers()).status_code == 200
        assert client.get(url, headers=auth_headers()).status_code == 404

        restored = client.post(f"{url}/restore", headers=auth_headers()).get_json()
        assert restored["side_status"] == "active"
        assert client.get(url, headers=auth_headers()).status_code == 200


class TestInterview:
    def test_patch_with_version(self, client, auth_headers, created):
        url = f"/api/v1/strategies/{created['id']}/interview"
        res = client.patch(url, headers=auth_headers(),
                           json={"values": {"A2": "Acte 1", "A1": None}, "expected_version": 0})
        assert res.status_code == 200
        assert res.get_json() == {
            "id": created["id"], "interview_data": {"A2": "Acte 1"}, "interview_version": 1,
        }

        stale = client.patch(url, headers=auth_headers(),
                             json={"values": {"A2": "Acte 2"}, "expected_version": 0})
        assert stale.status_code == 409
        assert stale.get_json()["details"] == {"expected_version": 0, "actual_version": 1}

    def test_patch_validation(self, client, auth_headers, created):
        url = f"/api/v1/strategies/{created['id']}/interview"
        assert client.patch(url, headers=auth_headers(), json={}).status_code == 400
        assert client.patch(url, headers=auth_headers(),
                            json={"values": {"A1": "x"}, "expected_version": "0"}).status_code == 400
        res = client.patch(url, headers=auth_headers(), json={"values": {"X9": "x"}})
        assert res.get_json()["details"] == {"unknown_ids": ["X9"]}

    def test_completion(self, client, auth_headers, created):
        body = client.get(f"/api/v1/strategies/{created['id']}/completion",
                          headers=auth_headers()).get_json()
        assert body["filled"] == ["A1"]
        assert len(body["empty"]) == 25
        assert body["total"] == 26
        assert body["completion_pct"] == 4


class TestPhase:
    def test_advance(self, client, auth_headers, created):
        url = f"/api/v1/strategies/{created['id']}/phase/advance"
        res = client.post(url, headers=auth_headers(), json={"from_phase": "fiche"})
        assert res.status_code == 200
        assert res.get_json()["phase"] == "market-study"

        again = client.post(url, headers=auth_headers(), json={"from_phase": "fiche"})
        assert again.status_code == 400
        body = again.get_json()
        assert body["code"] == "ERR_INVALID_PHASE"
        assert body["details"] == {"required_phase": "fiche", "actual_phase": "market-study"}

    def test_advance_requires_from_phase(self, client, auth_headers, created):
        res = client.post(f"/api/v1/strategies/{created['id']}/phase/advance",
                          headers=auth_headers(), json={})
        assert res.status_code == 400

    def test_reset_is_admin_only(self, client, auth_headers, created):
        url = f"/api/v1/strategies/{created['id']}/phase/reset"
        assert client.post(url, headers=auth_headers(), json={"phase": "cockpit"}).status_code == 403

        res = client.post(url, headers=auth_headers(role="ADMIN", user_id="admin-9"),
                          json={"phase": "cockpit"})
        assert res.status_code == 200
        assert res.get_json()["phase"] == "cockpit"

    def test_reset_unknown_phase(self, client, auth_headers, created):
        res = client.post(f"/api/v1/strategies/{created['id']}/phase/reset",
                          headers=auth_headers(role="admin"), json={"phase": "launch"})
        assert res.status_code == 400
