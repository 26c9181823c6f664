"""
Market study API tests.

Tests cover:
  - get before/after ensure
  - complete / skip transitions and double submission
  - complete-standalone
  - manual data add / remove and validation
  - uploaded files with text cap
"""

import pytest


@pytest.fixture()
def strategy(client, auth_headers):
    res = client.post("/api/v1/strategies", headers=auth_headers(), json={"brand_name": "Bonnet Rouge"})
    return res.get_json()


def _url(strategy, suffix=""):
    return f"/api/v1/strategies/{strategy['id']}/market-study{suffix}"


class TestRecord:
    def test_get_then_ensure(self, client, auth_headers, strategy):
        assert client.get(_url(strategy), headers=auth_headers()).get_json() is None

        first = client.post(_url(strategy), headers=auth_headers()).get_json()
        second = client.post(_url(strategy), headers=auth_headers()).get_json()
        assert first["status"] == "pending"
        assert first["id"] == second["id"]
        assert first["manual_data"] == {"entries": []}
        assert client.get(_url(strategy), headers=auth_headers()).get_json()["id"] == first["id"]

    def test_other_owner(self, client, auth_headers, strategy):
        res = client.post(_url(strategy), headers=auth_headers(user_id="user-2"))
        assert res.status_code == 404


class TestTransitions:
    def test_complete_twice(self, client, auth_headers, strategy):
        client.post(f"/api/v1/strategies/{strategy['id']}/phase/advance",
                    headers=auth_headers(), json={"from_phase": "fiche"})

        res = client.post(_url(strategy, "/complete"), headers=auth_headers())
        assert res.status_code == 200
        assert res.get_json()["phase"] == "audit-t"
        assert client.get(_url(strategy), headers=auth_headers()).get_json()["status"] == "complete"

        again = client.post(_url(strategy, "/complete"), headers=auth_headers())
        assert again.status_code == 400
        body = again.get_json()
        assert "'market-study'" in body["error"] and "'audit-t'" in body["error"]

    def test_skip_creates_and_marks_study(self, client, auth_headers, strategy):
        client.post(f"/api/v1/strategies/{strategy['id']}/phase/advance",
                    headers=auth_headers(), json={"from_phase": "fiche"})
        res = client.post(_url(strategy, "/skip"), headers=auth_headers())
        body = res.get_json()
        assert body["phase"] == "audit-t"
        assert body["phase_title"] == "Audit Track"
        assert client.get(_url(strategy), headers=auth_headers()).get_json()["status"] == "skipped"

    def test_skip_wrong_phase(self, client, auth_headers, strategy):
        res = client.post(_url(strategy, "/skip"), headers=auth_headers())
        assert res.status_code == 400
        assert res.get_json()["details"]["actual_phase"] == "fiche"

    def test_complete_standalone(self, client, auth_headers, strategy):
        missing = client.post(_url(strategy, "/complete-standalone"), headers=auth_headers())
        assert missing.status_code == 404
        assert missing.get_json()["error"] == "MarketStudy not found"

        client.post(_url(strategy), headers=auth_headers())
        res = client.post(_url(strategy, "/complete-standalone"), headers=auth_headers())
        assert res.get_json()["status"] == "complete"
        phase = client.get(f"/api/v1/strategies/{strategy['id']}", headers=auth_headers()).get_json()["phase"]
        assert phase == "fiche"


class TestManualData:
    ENTRY = {"title": "Prix moyen", "content": "1 200 FCFA la boîte", "category": "external",
             "sourceType": "terrain"}

    def test_add_and_remove(self, client, auth_headers, strategy):
        res = client.post(_url(strategy, "/manual-data"), headers=auth_headers(), json=self.ENTRY)
        assert res.status_code == 201
        entries = res.get_json()["manual_data"]["entries"]
        assert len(entries) == 1
        entry = entries[0]
        assert entry["category"] == "external"
        assert entry["id"] and entry["addedAt"]

        client.post(_url(strategy, "/manual-data"), headers=auth_headers(),
                    json={**self.ENTRY, "title": "Second"})
        res = client.delete(_url(strategy, f"/manual-data/{entry['id']}"), headers=auth_headers())
        titles = [e["title"] for e in res.get_json()["manual_data"]["entries"]]
        assert titles == ["Second"]

    def test_invalid_category(self, client, auth_headers, strategy):
        res = client.post(_url(strategy, "/manual-data"), headers=auth_headers(),
                          json={**self.ENTRY, "category": "rumour"})
        assert res.status_code == 400

    def test_missing_title(self, client, auth_headers, strategy):
        res = client.post(_url(strategy, "/manual-data"), headers=auth_headers(),
                          json={**self.ENTRY, "title": ""})
        assert res.status_code == 400
        assert res.get_json()["details"] == {"title": "required"}

    def test_remove_without_study(self, client, auth_headers, strategy):
        res = client.delete(_url(strategy, "/manual-data/abc"), headers=auth_headers())
        assert res.status_code == 404


class TestUploadedFiles:
    def test_append_with_cap(self, app, client, auth_headers, strategy):
        res = client.post(_url(strategy, "/uploaded-files"), headers=auth_headers(),
                          json={"fileName": "etude.pdf", "fileType": "application/pdf",
                                "extractedText": "x" * (app.config["UPLOAD_TEXT_MAX_CHARS"] + 10)})
        assert res.status_code == 201
        files = res.get_json()["uploaded_files"]
        assert files[0]["fileName"] == "etude.pdf"
        assert len(files[0]["extractedText"]) == app.config["UPLOAD_TEXT_MAX_CHARS"]

    def test_default_type_and_required_name(self, client, auth_headers, strategy):
        ok = client.post(_url(strategy, "/uploaded-files"), headers=auth_headers(),
                         json={"fileName": "notes.txt", "extractedText": "hello"})
        assert ok.get_json()["uploaded_files"][0]["fileType"] == "text/plain"
        bad = client.post(_url(strategy, "/uploaded-files"), headers=auth_headers(),
                          json={"extractedText": "hello"})
        assert bad.status_code == 400
