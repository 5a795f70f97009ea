"""Testes de integração dos endpoints HTTP do hearing."""

from __future__ import annotations

import json

from sales_hearing.application.topics import OPENING_QUESTION

SUGGESTIONS = ["製造業の案件", "新規開拓", "既存顧客の更新", "紹介案件"]


def _start(client, **body):
    response = client.post("/hearing/start", json=body)
    assert response.status_code == 200
    return response.json()


class TestStartEndpoint:
    def test_start_without_llm(self, client) -> None:
        payload = _start(client)

        assert payload["turnIndex"] == 0
        assert payload["question"] == OPENING_QUESTION
        assert payload["totalTurns"] == 9
        assert payload["suggestions"] == []
        assert payload["suggestionsAvailable"] is False
        assert payload["askedQuestions"] == [OPENING_QUESTION]

    def test_start_prefills_from_reference(self, client) -> None:
        payload = _start(
            client,
            referenceData={"project": "工場DX", "location": "大阪本社"},
            dataSource="meeting",
        )

        assert payload["initialSlots"]["project"] == "工場DX"
        assert payload["initialSlots"]["location"] == "大阪本社"

    def test_start_with_suggestions(self, client_factory, scripted_llm) -> None:
        scripted_llm.reply("suggestions", json.dumps({"suggestions": SUGGESTIONS}))

        with client_factory(scripted_llm) as client:
            payload = _start(client)

        assert payload["suggestions"] == SUGGESTIONS
        assert payload["suggestionsAvailable"] is True


class TestAnswerEndpoint:
    def test_answer_advances_turn(self, client) -> None:
        session = _start(client)

        response = client.post(
            "/hearing/answer",
            json={
                "sessionId": session["sessionId"],
                "turnIndex": 0,
                "answer": "ABC社の件で、予算は約1000万円です",
            },
        )

        assert response.status_code == 200
        payload = response.json()
        assert payload["completed"] is False
        assert payload["turnIndex"] == 1
        assert payload["slots"]["budget"] == "約1000万円"
        assert len(payload["askedQuestions"]) == 2
        assert payload["question"] == payload["askedQuestions"][-1]

    def test_stale_turn_index_conflict(self, client) -> None:
        session = _start(client)
        body = {"sessionId": session["sessionId"], "turnIndex": 0, "answer": "新規案件です"}
        assert client.post("/hearing/answer", json=body).status_code == 200

        response = client.post("/hearing/answer", json=body)

        assert response.status_code == 409
        detail = response.json()["detail"]
        assert detail["error"] == "turn_conflict"
        assert detail["expected_turn_index"] == 1
        assert detail["received_turn_index"] == 0

    def test_stop_request_completes(self, client) -> None:
        session = _start(client)

        response = client.post(
            "/hearing/answer",
            json={"sessionId": session["sessionId"], "turnIndex": 0, "answer": "これで以上です"},
        )

        payload = response.json()
        assert payload["completed"] is True
        assert payload["completionReason"] == "stop_requested"

        again = client.post(
            "/hearing/answer",
            json={"sessionId": session["sessionId"], "turnIndex": 0, "answer": "追加です"},
        )
        assert again.status_code == 409
        assert again.json()["detail"]["error"] == "session_completed"

    def test_unknown_session(self, client) -> None:
        response = client.post(
            "/hearing/answer",
            json={"sessionId": "missing", "turnIndex": 3, "answer": "はい"},
        )

        assert response.status_code == 404
        assert response.json()["detail"] == "session_not_found"

    def test_rehydrates_unknown_session(self, client) -> None:
        response = client.post(
            "/hearing/answer",
            json={
                "sessionId": "restored-session",
                "turnIndex": 1,
                "answer": "予算は500万円です",
                "currentSlots": {"customer": "株式会社ABC"},
                "askedQuestions": [OPENING_QUESTION, "どちらのお客様ですか？"],
            },
        )

        assert response.status_code == 200
        payload = response.json()
        assert payload["turnIndex"] == 2
        assert payload["slots"]["customer"] == "株式会社ABC"

    def test_missing_answer_is_rejected(self, client) -> None:
        session = _start(client)

        response = client.post(
            "/hearing/answer", json={"sessionId": session["sessionId"], "turnIndex": 0}
        )

        assert response.status_code == 422

    def test_blank_answer_is_rejected_without_advancing(self, client) -> None:
        session = _start(client)

        response = client.post(
            "/hearing/answer",
            json={"sessionId": session["sessionId"], "turnIndex": 0, "answer": "   "},
        )

        assert response.status_code == 422
        snapshot = client.get(f"/hearing/{session['sessionId']}").json()
        assert snapshot["turnIndex"] == 0
        assert snapshot["conversationHistory"] == []


class TestSuggestionsEndpoint:
    def test_unavailable_without_llm(self, client) -> None:
        response = client.post(
            "/hearing/suggestions", json={"currentQuestion": OPENING_QUESTION}
        )

        assert response.status_code == 502
        assert response.json()["detail"]["error"] == "suggestions_unavailable"

    def test_returns_suggestions(self, client_factory, scripted_llm) -> None:
        scripted_llm.reply("suggestions", json.dumps({"suggestions": SUGGESTIONS}))

        with client_factory(scripted_llm) as client:
            response = client.post(
                "/hearing/suggestions",
                json={
                    "currentQuestion": OPENING_QUESTION,
                    "conversationHistory": [{"question": "Q", "answer": "A"}],
                },
            )

        assert response.status_code == 200
        payload = response.json()
        assert payload["suggestions"] == SUGGESTIONS
        assert "allowMultiple" in payload
        assert "questionType" in payload


class TestCorrectTextEndpoint:
    def test_rule_based_correction(self, client) -> None:
        response = client.post("/hearing/correct-text", json={"text": "えっと予算は1000万円です"})

        assert response.status_code == 200
        assert response.json()["correctedText"] == "予算は1000万円です。"


class TestSessionEndpoint:
    def test_get_session_snapshot(self, client) -> None:
        session = _start(client)
        client.post(
            "/hearing/answer",
            json={"sessionId": session["sessionId"], "turnIndex": 0, "answer": "新規案件です"},
        )

        response = client.get(f"/hearing/{session['sessionId']}")

        assert response.status_code == 200
        payload = response.json()
        assert payload["status"] == "active"
        assert payload["turnIndex"] == 1
        assert payload["conversationHistory"][0]["answer"] == "新規案件です"

    def test_get_missing_session(self, client) -> None:
        assert client.get("/hearing/missing").status_code == 404
