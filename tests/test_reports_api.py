"""
Integration tests for /reports/weekly with a fake LLM.
"""
from app.services.llm import strip_code_fences

REPORT = {
    "conditionSummary": "Slept well and kept the morning plan.",
    "activitySummary": "Two hours of math across the week.",
    "aiAnalysis": "Short sessions work best.",
    "nextWeekFocus": ["Start with 5 minutes", "Review notes on Friday", 3],
    "supporterExport": "Please praise the small wins.",
}


def generate(client, auth, week_start="2024-01-10"):
    return client.post("/reports/weekly/generate", json={"weekStart": week_start}, headers=auth)


class TestGenerate:
    def test_generate_stores_report(self, client, auth, fake_llm):
        fake_llm.json_payload = REPORT
        r = generate(client, auth)
        assert r.status_code == 200, r.text
        body = r.json()
        report = body["report"]
        assert report["weekStart"] == "2024-01-08"
        assert report["conditionSummary"] == REPORT["conditionSummary"]
        assert report["nextWeekFocus"] == ["Start with 5 minutes", "Review notes on Friday"]

        context = body["context"]
        assert context["weekStart"] == "2024-01-08"
        assert context["weekEnd"] == "2024-01-14"
        assert len(context["summary"]["daily"]) == 7
        assert context["conditionHighlights"] == ["No credo practice logged this week"]

        call = fake_llm.calls[-1]
        assert call["kind"] == "json"
        assert call["max_tokens"] == 900
        assert call["temperature"] == 0.45
        assert "Week: 2024-01-08 to 2024-01-14" in call["messages"][1]["content"]

    def test_regenerate_overwrites(self, client, auth, fake_llm):
        fake_llm.json_payload = REPORT
        first = generate(client, auth).json()["report"]
        fake_llm.json_payload = {**REPORT, "aiAnalysis": "Changed."}
        second = generate(client, auth).json()["report"]
        assert second["id"] == first["id"]
        assert second["aiAnalysis"] == "Changed."

    def test_context_includes_week_data(self, client, auth, fake_llm):
        fake_llm.json_payload = REPORT
        client.post("/tasks", json={"title": "Algebra", "dueDate": "2024-01-09"}, headers=auth)
        client.put("/credo/practices", json={
            "date": "2024-01-09", "values": {"credo-4": {"done": True, "note": "in bed by 11"}},
        }, headers=auth)
        context = generate(client, auth).json()["context"]
        assert context["summary"]["statusCounts"]["total"] == 1
        assert context["summary"]["topTasks"][0]["title"] == "Algebra"
        assert context["credoSummary"]["practicedRate"] == 9
        assert context["conditionHighlights"] == ["in bed by 11", "Health: Screens off before bed"]

    def test_llm_failure_is_502_and_nothing_stored(self, client, auth, fake_llm):
        fake_llm.fail()
        r = generate(client, auth)
        assert r.status_code == 502
        assert r.json()["code"] == "AI_GENERATION_FAILED"
        r = client.get("/reports/weekly", params={"weekStart": "2024-01-10"}, headers=auth)
        assert r.json()["report"] is None

    def test_non_object_payload_is_502(self, client, auth, fake_llm):
        fake_llm.json_payload = ["not", "an", "object"]
        assert generate(client, auth).status_code == 502

    def test_non_string_fields_are_coerced(self, client, auth, fake_llm):
        fake_llm.json_payload = {**REPORT, "aiAnalysis": {"point": 1}, "nextWeekFocus": "one"}
        report = generate(client, auth).json()["report"]
        assert report["aiAnalysis"] == '{"point": 1}'
        assert report["nextWeekFocus"] == []

    def test_body_is_optional(self, client, auth, fake_llm):
        fake_llm.json_payload = REPORT
        r = client.post("/reports/weekly/generate", headers=auth)
        assert r.status_code == 200


class TestRead:
    def test_no_report_yet(self, client, auth):
        r = client.get("/reports/weekly", params={"weekStart": "2024-01-14"}, headers=auth)
        assert r.status_code == 200
        body = r.json()
        assert body["report"] is None
        assert body["context"]["weekLabel"] == "2024-01-08 to 2024-01-14"

    def test_reports_are_per_user(self, client, auth, register, fake_llm):
        fake_llm.json_payload = REPORT
        generate(client, auth)
        other = register("Ren")
        r = client.get("/reports/weekly", params={"weekStart": "2024-01-10"}, headers=other)
        assert r.json()["report"] is None


class TestExport:
    def test_export_markdown(self, client, auth, fake_llm):
        fake_llm.json_payload = REPORT
        generate(client, auth)
        r = client.get("/reports/weekly/export", params={"weekStart": "2024-01-12"}, headers=auth)
        assert r.status_code == 200
        assert r.headers["content-type"].startswith("text/markdown")
        assert 'filename="weekly-report-2024-01-08.md"' in r.headers["content-disposition"]
        text = r.text
        assert text.startswith("# Weekly report (2024-01-08 to 2024-01-14)")
        for heading in ("## Condition and credo", "## Activity summary", "## AI analysis",
                        "## Next week focus", "## Message for supporters"):
            assert heading in text
        assert "- Start with 5 minutes" in text
        assert "- 2024-01-08 (01/08): 0m" in text

    def test_export_without_report_is_404(self, client, auth):
        r = client.get("/reports/weekly/export", params={"weekStart": "2024-01-10"}, headers=auth)
        assert r.status_code == 404
        assert r.json()["code"] == "REPORT_NOT_FOUND"


class TestCodeFences:
    def test_strips_json_fence(self):
        assert strip_code_fences('```json\n{"a": 1}\n```') == '{"a": 1}'

    def test_plain_text_untouched(self):
        assert strip_code_fences('{"a": 1}') == '{"a": 1}'
