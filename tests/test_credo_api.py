"""
Integration tests for /credo.
"""
from datetime import date

from app.schemas.credo import CredoPracticeValue
from app.services.credo import replace_day, summary_for_range

DAY = "2026-02-16"  # a Monday


def put_day(client, auth, values, day=DAY):
    return client.put("/credo/practices", json={"date": day, "values": values}, headers=auth)


class TestItems:
    def test_catalog_has_eleven_items_in_order(self, client):
        r = client.get("/credo/items")
        assert r.status_code == 200
        items = r.json()
        assert len(items) == 11
        assert [i["order"] for i in items] == list(range(1, 12))
        assert items[0]["id"] == "credo-1"
        assert {"id", "order", "category", "title", "description"} <= set(items[0])


class TestPractices:
    def test_save_and_read_back(self, client, auth):
        r = put_day(client, auth, {
            "credo-1": {"done": True, "note": "  planned at 7am "},
            "credo-2": {"done": False},
        })
        assert r.status_code == 200
        assert r.json() == {"ok": True, "saved": 2}

        r = client.get("/credo/practices", params={"date": DAY}, headers=auth)
        body = r.json()
        assert body["date"] == DAY
        assert body["values"]["credo-1"] == {
            "credoId": "credo-1", "date": DAY, "done": True, "note": "planned at 7am",
        }
        assert body["values"]["credo-2"]["done"] is False

    def test_resubmit_replaces_whole_day(self, client, auth):
        put_day(client, auth, {"credo-1": {"done": True}, "credo-2": {"done": True}})
        put_day(client, auth, {"credo-3": {"done": True}})
        values = client.get("/credo/practices", params={"date": DAY}, headers=auth).json()["values"]
        assert set(values) == {"credo-3"}

    def test_other_days_untouched(self, client, auth):
        put_day(client, auth, {"credo-1": {"done": True}}, day="2026-02-17")
        put_day(client, auth, {"credo-2": {"done": True}})
        values = client.get("/credo/practices", params={"date": "2026-02-17"}, headers=auth).json()["values"]
        assert set(values) == {"credo-1"}

    def test_empty_day(self, client, auth):
        body = client.get("/credo/practices", params={"date": DAY}, headers=auth).json()
        assert body["values"] == {}

    def test_unknown_item_rejected_and_nothing_written(self, client, auth):
        put_day(client, auth, {"credo-1": {"done": True}})
        r = put_day(client, auth, {"credo-2": {"done": True}, "credo-42": {"done": True}})
        assert r.status_code == 422
        body = r.json()
        assert body["code"] == "UNKNOWN_CREDO_ITEM"
        assert body["details"]["credo_ids"] == ["credo-42"]
        values = client.get("/credo/practices", params={"date": DAY}, headers=auth).json()["values"]
        assert set(values) == {"credo-1"}

    def test_empty_values_rejected(self, client, auth):
        r = put_day(client, auth, {})
        assert r.status_code == 422
        assert r.json()["code"] == "VALIDATION_ERROR"

    def test_note_too_long_rejected(self, client, auth):
        r = put_day(client, auth, {"credo-1": {"done": True, "note": "x" * 1001}})
        assert r.status_code == 422


class TestSummary:
    def test_rate_ranking_and_missing(self, client, auth):
        put_day(client, auth, {"credo-1": {"done": True}, "credo-2": {"done": True, "note": "calm"}})
        put_day(client, auth, {"credo-2": {"done": True}}, day="2026-02-17")

        r = client.get("/credo/summary", params={"from": "2026-02-16", "to": "2026-02-22"}, headers=auth)
        assert r.status_code == 200
        body = r.json()
        assert body["practicedCount"] == 3
        assert body["practicedRate"] == 18
        assert [(x["id"], x["count"]) for x in body["ranking"]] == [("credo-2", 2), ("credo-1", 1)]
        assert len(body["missing"]) == 9
        assert body["highlights"] == ["calm"]

    def test_range_is_inclusive(self, client, auth):
        put_day(client, auth, {"credo-1": {"done": True}}, day="2026-02-22")
        body = client.get("/credo/summary", params={"from": "2026-02-22", "to": "2026-02-22"}, headers=auth).json()
        assert body["practicedCount"] == 1

    def test_inverted_range_is_422(self, client, auth):
        r = client.get("/credo/summary", params={"from": "2026-02-22", "to": "2026-02-16"}, headers=auth)
        assert r.status_code == 422
        assert r.json()["code"] == "INVALID_DATE_RANGE"

    def test_defaults_to_current_week(self, client, auth):
        r = client.get("/credo/summary", headers=auth)
        assert r.status_code == 200
        assert r.json()["practicedRate"] == 0


class TestService:
    def test_replace_day_returns_count(self, db, user):
        saved = replace_day(db, user.id, date(2026, 2, 16), {
            "credo-5": CredoPracticeValue(done=True),
            "credo-6": CredoPracticeValue(done=False, note="next time"),
        })
        assert saved == 2
        summary = summary_for_range(db, user.id, date(2026, 2, 16), date(2026, 2, 16))
        assert [r.id for r in summary.ranking] == ["credo-5"]
        assert summary.highlights == ["next time"]
