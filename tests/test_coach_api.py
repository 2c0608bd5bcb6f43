"""
Integration tests for /coach: chat with fallback, history retention, plans.
"""
from datetime import date
from types import SimpleNamespace

from app.core.config import settings
from app.services.coach import (
    CoachContext,
    fallback_plan,
    fallback_reply,
    match_task_id,
)
from app.services.weekly_aggregator import summarize_credo

PLAN = {
    "date": "2026-02-20",
    "focus": "Algebra",
    "tasks": [
        {"title": "Warm-up: Math workbook p.10", "durationMinutes": 10, "timeSlot": "19:00-19:10"},
        {"title": "Essay outline", "durationMinutes": 30, "timeSlot": "19:15-19:45", "note": "draft"},
    ],
    "coachMessage": "One page at a time.",
}


def chat(client, auth, message):
    r = client.post("/coach/chat", json={"message": message}, headers=auth)
    assert r.status_code == 200, r.text
    return r.json()


class TestChat:
    def test_reply_from_llm(self, client, auth, fake_llm):
        fake_llm.text = "  Try ten minutes of vocabulary first.  "
        body = chat(client, auth, "I can't focus today")
        assert body["userMessage"]["role"] == "user"
        assert body["userMessage"]["message"] == "I can't focus today"
        assert body["assistantMessage"]["role"] == "assistant"
        assert body["assistantMessage"]["message"] == "Try ten minutes of vocabulary first."

        call = fake_llm.calls[-1]
        assert call["kind"] == "chat"
        assert call["max_tokens"] == 500
        assert call["messages"][0]["role"] == "system"
        assert call["messages"][-1] == {"role": "user", "content": "I can't focus today"}

    def test_prior_turns_sent_as_history(self, client, auth, fake_llm):
        chat(client, auth, "first")
        chat(client, auth, "second")
        roles = [m["role"] for m in fake_llm.calls[-1]["messages"]]
        assert roles == ["system", "user", "assistant", "user"]

    def test_llm_error_falls_back(self, client, auth, fake_llm):
        fake_llm.fail()
        body = chat(client, auth, "Help me plan my week please")
        assert body["assistantMessage"]["message"] == fallback_reply("Help me plan my week please")

    def test_unconfigured_llm_falls_back_without_calling(self, client, auth, fake_llm):
        fake_llm.configured = False
        body = chat(client, auth, "hello")
        assert body["assistantMessage"]["message"].startswith('Let\'s think about "hello"')
        assert fake_llm.calls == []

    def test_empty_reply_falls_back(self, client, auth, fake_llm):
        fake_llm.text = "   "
        body = chat(client, auth, "hello")
        assert body["assistantMessage"]["message"] == fallback_reply("hello")

    def test_blank_message_rejected(self, client, auth):
        r = client.post("/coach/chat", json={"message": "   "}, headers=auth)
        assert r.status_code == 422

    def test_too_long_message_rejected(self, client, auth):
        r = client.post("/coach/chat", json={"message": "x" * 2001}, headers=auth)
        assert r.status_code == 422


class TestHistory:
    def test_history_oldest_first(self, client, auth):
        chat(client, auth, "one")
        chat(client, auth, "two")
        messages = client.get("/coach/chat", headers=auth).json()["messages"]
        assert [(m["role"], m["message"]) for m in messages][::2] == [("user", "one"), ("user", "two")]
        assert len(messages) == 4

    def test_history_window(self, client, auth, monkeypatch):
        monkeypatch.setattr(settings, "CHAT_MAX_HISTORY", 2)
        chat(client, auth, "one")
        chat(client, auth, "two")
        messages = client.get("/coach/chat", headers=auth).json()["messages"]
        assert [m["role"] for m in messages] == ["user", "assistant"]
        assert messages[0]["message"] == "two"

    def test_retention_trims_oldest(self, client, auth, monkeypatch):
        monkeypatch.setattr(settings, "CHAT_MAX_KEEP", 4)
        for text in ("one", "two", "three"):
            chat(client, auth, text)
        messages = client.get("/coach/chat", headers=auth).json()["messages"]
        assert len(messages) == 4
        assert [m["message"] for m in messages if m["role"] == "user"] == ["two", "three"]

    def test_history_is_per_user(self, client, auth, register):
        chat(client, auth, "mine")
        other = register("Ren")
        assert client.get("/coach/chat", headers=other).json()["messages"] == []


class TestPlan:
    def test_plan_from_llm_links_tasks(self, client, auth, fake_llm):
        task = client.post("/tasks", json={"title": "Math workbook", "dueDate": "2026-02-20"},
                           headers=auth).json()["task"]
        fake_llm.json_payload = PLAN
        r = client.post("/coach/plan", json={"date": "2026-02-20"}, headers=auth)
        assert r.status_code == 200, r.text
        plan = r.json()["plan"]
        assert plan["date"] == "2026-02-20"
        assert plan["focus"] == "Algebra"
        assert plan["tasks"][0]["taskId"] == task["id"]
        assert plan["tasks"][1]["taskId"] is None

        call = fake_llm.calls[-1]
        assert call["max_tokens"] == 1000
        assert f"[ID: {task['id']}] Math workbook" in call["messages"][1]["content"]

    def test_invalid_plan_falls_back(self, client, auth, fake_llm):
        fake_llm.json_payload = {**PLAN, "tasks": []}
        plan = client.post("/coach/plan", json={"date": "2026-02-20"}, headers=auth).json()["plan"]
        assert plan["date"] == "2026-02-20"
        assert [t["durationMinutes"] for t in plan["tasks"]] == [5, 15, 5]

    def test_llm_error_falls_back(self, client, auth, fake_llm):
        fake_llm.fail()
        r = client.post("/coach/plan", json={"date": "2026-02-20"}, headers=auth)
        assert r.status_code == 200
        assert len(r.json()["plan"]["tasks"]) == 3

    def test_fallback_uses_profile(self, client, auth, fake_llm):
        fake_llm.configured = False
        client.put("/settings/profile", json={
            "weeklyGoal": "Chapter 3", "activeHours": "evening", "coachTone": "logical",
        }, headers=auth)
        plan = client.post("/coach/plan", headers=auth).json()["plan"]
        assert plan["focus"] == 'Weekly goal "Chapter 3"'
        assert [t["timeSlot"] for t in plan["tasks"]] == ["19:00-19:05", "19:30-19:45", "20:00-20:05"]
        assert plan["coachMessage"].startswith("Hi Aki, your credo practice rate is 0%.")
        assert fake_llm.calls == []


class TestPlanHelpers:
    def context(self, **kw):
        base = dict(name=None, weekly_goal=None, active_hours=None, coach_tone=None,
                    credo_summary=summarize_credo([]))
        base.update(kw)
        return CoachContext(**base)

    def test_fallback_defaults(self):
        plan = fallback_plan(self.context(), date(2026, 2, 20), None)
        assert plan.day == "2026-02-20"
        assert plan.focus == "Keep the small actions going"
        assert plan.tasks[0].time_slot == "12:00-12:05"
        assert plan.tasks[2].title == "Write a 5-minute reflection on today"
        assert plan.coach_message.startswith("Hi there,")

    def test_fallback_focus_prefers_top_credo(self):
        logs = [SimpleNamespace(credo_id="credo-7", day=date(2026, 2, 16), done=True, note="")]
        plan = fallback_plan(self.context(credo_summary=summarize_credo(logs), weekly_goal="x"),
                             date(2026, 2, 20), "I keep getting distracted")
        assert plan.focus == "50 minutes of focus plus a 10-minute break"
        assert "I keep getting distr..." in plan.tasks[2].title

    def test_match_task_id(self):
        tasks = [SimpleNamespace(id=3, title="English essay"), SimpleNamespace(id=4, title="Math")]
        assert match_task_id("Finish the English essay intro", tasks) == 3
        assert match_task_id("math", tasks) == 4
        assert match_task_id("Stretching", tasks) is None

    def test_fallback_reply_truncates(self):
        reply = fallback_reply("a" * 40)
        assert '"' + "a" * 30 + '..."' in reply
