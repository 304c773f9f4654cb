"""Integration tests for debate routes."""

import pytest

TOPIC = "Social media does more harm than good"


def _auth(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def owner(signup):
    return signup(email="a@x.com", username="alice")


@pytest.fixture
def stranger(signup):
    return signup(email="b@x.com", username="bob")


@pytest.fixture
def ai_debate(client, owner) -> str:
    response = client.post(
        "/api/debates",
        json={"topic": TOPIC, "format": "one_v_one_ai", "settings": {"maxRounds": 5, "aiSide": "for"}},
        headers=_auth(owner[1]),
    )
    assert response.status_code == 201, response.text
    return response.json()["data"]["debate"]["id"]


@pytest.fixture
def human_debate(client, owner) -> str:
    response = client.post(
        "/api/debates",
        json={"topic": TOPIC, "format": "one_v_one_human", "createRoom": True},
        headers=_auth(owner[1]),
    )
    assert response.status_code == 201, response.text
    return response.json()["data"]["debate"]["id"]


class TestCreateDebate:
    """Test cases for POST /api/debates."""

    def test_ai_debate_has_ai_opponent(self, client, owner, ai_debate):
        data = client.get(f"/api/debates/{ai_debate}").json()["data"]

        assert data["status"] == "waiting"
        assert data["settings"]["maxRounds"] == 5
        assert data["settings"]["aiSide"] == "for"
        roles = {(p["role"], p["isAi"]) for p in data["participants"]}
        assert roles == {("proposer", False), ("opposer", True)}
        assert data["room"] is None

    def test_human_debate_with_room(self, client, owner):
        response = client.post(
            "/api/debates",
            json={"topic": TOPIC, "format": "one_v_one_human", "createRoom": True},
            headers=_auth(owner[1]),
        )

        body = response.json()
        assert body["message"] == "Debate created successfully"
        assert body["data"]["participant"]["role"] == "proposer"
        room = body["data"]["room"]
        assert len(room["inviteCode"]) == 8
        assert client.get(f"/api/rooms/invite/{room['inviteCode']}").status_code == 200

    def test_ai_debate_never_opens_room(self, client, owner):
        response = client.post(
            "/api/debates",
            json={"topic": TOPIC, "format": "one_v_one_ai", "createRoom": True},
            headers=_auth(owner[1]),
        )

        assert response.json()["data"]["room"] is None

    @pytest.mark.parametrize(
        "payload",
        [
            {"topic": "too short", "format": "one_v_one_ai"},
            {"topic": TOPIC, "format": "debate_club"},
            {"topic": TOPIC, "format": "one_v_one_ai", "settings": {"maxRounds": 11}},
        ],
    )
    def test_invalid(self, client, owner, payload):
        response = client.post("/api/debates", json=payload, headers=_auth(owner[1]))

        assert response.status_code == 400
        assert response.json()["error"] == "Validation failed"

    def test_requires_auth(self, client):
        assert client.post("/api/debates", json={"topic": TOPIC, "format": "one_v_one_ai"}).status_code == 401


class TestListAndGet:
    def test_list_own_debates_newest_first(self, client, owner, stranger):
        ids = []
        for i in range(2):
            response = client.post(
                "/api/debates", json={"topic": f"{TOPIC} #{i}", "format": "free_form"}, headers=_auth(owner[1])
            )
            ids.append(response.json()["data"]["debate"]["id"])
        client.post("/api/debates", json={"topic": TOPIC, "format": "free_form"}, headers=_auth(stranger[1]))

        data = client.get("/api/debates", headers=_auth(owner[1])).json()["data"]

        assert data["total"] == 2
        assert {d["id"] for d in data["debates"]} == set(ids)

    def test_get_unknown(self, client):
        response = client.get("/api/debates/00000000-0000-0000-0000-000000000000")

        assert response.status_code == 404
        assert response.json()["error"] == "Debate not found"

    def test_get_with_room_link(self, client, human_debate):
        data = client.get(f"/api/debates/{human_debate}").json()["data"]
        assert data["room"]["inviteCode"]


class TestAIRespond:
    """Test cases for POST /api/debates/{id}/ai-respond."""

    def test_round_recorded(self, client, owner, ai_debate, mock_ai_client):
        response = client.post(
            f"/api/debates/{ai_debate}/ai-respond",
            json={"round": 1, "humanStatement": "It fuels polarization."},
            headers=_auth(owner[1]),
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["aiStatement"].startswith("Respectfully")
        assert data["humanMessage"]["metadata"]["speaker"] == "human"
        assert data["aiMessage"]["metadata"]["moderator"]["finalScore"] == 8
        call = mock_ai_client.respond_calls[0]
        assert call["topic"] == TOPIC
        assert call["ai_side"] == "for"
        assert call["history"] == []

        debate = client.get(f"/api/debates/{ai_debate}").json()["data"]
        assert debate["status"] == "in_progress"
        assert debate["startedAt"] is not None
        assert len(debate["messages"]) == 2

    def test_history_sent_on_next_round(self, client, owner, ai_debate, mock_ai_client):
        for round_number in (1, 2):
            client.post(
                f"/api/debates/{ai_debate}/ai-respond",
                json={"round": round_number, "humanStatement": f"Point {round_number}"},
                headers=_auth(owner[1]),
            )

        history = mock_ai_client.respond_calls[1]["history"]
        assert [h["speaker"] for h in history] == ["human", "ai"]
        assert history[0]["statement"] == "Point 1"
        current = client.get(f"/api/debates/{ai_debate}").json()["data"]["currentRound"]
        assert current == 2

    def test_only_for_ai_debates(self, client, owner, human_debate):
        response = client.post(
            f"/api/debates/{human_debate}/ai-respond",
            json={"round": 1, "humanStatement": "Hi"},
            headers=_auth(owner[1]),
        )

        assert response.status_code == 400
        assert response.json()["error"] == "This endpoint is only for AI debates"

    def test_non_participant(self, client, stranger, ai_debate):
        response = client.post(
            f"/api/debates/{ai_debate}/ai-respond",
            json={"round": 1, "humanStatement": "Hi"},
            headers=_auth(stranger[1]),
        )

        assert response.status_code == 403
        assert response.json()["error"] == "You are not a participant"

    def test_ai_failure(self, client, owner, ai_debate, mock_ai_client):
        mock_ai_client.fail_with = "AI API error: 503 - overloaded"

        response = client.post(
            f"/api/debates/{ai_debate}/ai-respond",
            json={"round": 1, "humanStatement": "Hi"},
            headers=_auth(owner[1]),
        )

        assert response.status_code == 500
        assert response.json() == {"success": False, "error": "AI service error: AI API error: 503 - overloaded"}
        assert client.get(f"/api/debates/{ai_debate}").json()["data"]["messages"] == []

    @pytest.mark.parametrize("moderator", ["n/a", ["x"], 5])
    def test_malformed_moderator(self, client, owner, ai_debate, mock_ai_client, moderator):
        async def respond(**kwargs):
            return {"aiStatement": "Counterpoint.", "moderator": moderator}

        mock_ai_client.respond = respond

        response = client.post(
            f"/api/debates/{ai_debate}/ai-respond",
            json={"round": 1, "humanStatement": "Hi"},
            headers=_auth(owner[1]),
        )

        assert response.status_code == 500
        assert response.json() == {
            "success": False,
            "error": "AI service error: Response has malformed moderator",
        }
        assert client.get(f"/api/debates/{ai_debate}").json()["data"]["messages"] == []

    def test_missing_moderator(self, client, owner, ai_debate, mock_ai_client):
        async def respond(**kwargs):
            return {"aiStatement": "Counterpoint."}

        mock_ai_client.respond = respond

        response = client.post(
            f"/api/debates/{ai_debate}/ai-respond",
            json={"round": 1, "humanStatement": "Hi"},
            headers=_auth(owner[1]),
        )

        assert response.status_code == 200
        assert response.json()["data"]["aiMessage"]["metadata"]["speaker"] == "ai"
        assert "moderator" not in response.json()["data"]["aiMessage"]["metadata"]


class TestScoreRound:
    def test_score_round(self, client, owner, ai_debate, mock_ai_client):
        response = client.post(f"/api/debates/{ai_debate}/score-round", json={"round": 1}, headers=_auth(owner[1]))

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["roundWinner"] == "ai"
        assert data["keyInsights"] == ["Stronger sourcing from the AI side"]
        assert mock_ai_client.score_calls[0]["round"] == 1

    def test_creator_only(self, client, stranger, ai_debate):
        response = client.post(
            f"/api/debates/{ai_debate}/score-round", json={"round": 1}, headers=_auth(stranger[1])
        )

        assert response.status_code == 403
        assert response.json()["error"] == "Only debate creator can score rounds"

    def test_scoring_failure(self, client, owner, ai_debate, mock_ai_client):
        mock_ai_client.fail_with = "Score API error: 500 - boom"

        response = client.post(f"/api/debates/{ai_debate}/score-round", json={"round": 1}, headers=_auth(owner[1]))

        assert response.status_code == 500
        assert response.json()["error"] == "Scoring service error: Score API error: 500 - boom"


class TestMessages:
    """Test cases for POST /api/debates/{id}/messages."""

    def test_first_message_starts_debate(self, client, owner, human_debate):
        response = client.post(
            f"/api/debates/{human_debate}/messages",
            json={"content": "Opening statement here", "audioUrl": "https://cdn.example.com/a.webm"},
            headers=_auth(owner[1]),
        )

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Message sent"
        assert body["data"]["message"]["metadata"]["wordCount"] == 3
        assert body["data"]["message"]["round"] == 1
        assert client.get(f"/api/debates/{human_debate}").json()["data"]["status"] == "in_progress"

    def test_non_participant(self, client, stranger, human_debate):
        response = client.post(
            f"/api/debates/{human_debate}/messages", json={"content": "Hi"}, headers=_auth(stranger[1])
        )

        assert response.status_code == 403

    def test_invalid_audio_url(self, client, owner, human_debate):
        response = client.post(
            f"/api/debates/{human_debate}/messages",
            json={"content": "Hi", "audioUrl": "nope"},
            headers=_auth(owner[1]),
        )

        assert response.status_code == 400
        assert response.json()["details"][0]["message"] == "Invalid audio URL"

    def test_completed_debate_rejects_messages(self, client, owner, human_debate):
        client.post(f"/api/debates/{human_debate}/end", headers=_auth(owner[1]))

        response = client.post(
            f"/api/debates/{human_debate}/messages", json={"content": "Too late"}, headers=_auth(owner[1])
        )

        assert response.status_code == 400
        assert response.json()["error"] == "Debate is not active"


class TestEndAndDelete:
    def test_end_closes_room(self, client, owner, human_debate):
        invite = client.get(f"/api/debates/{human_debate}").json()["data"]["room"]["inviteCode"]

        response = client.post(f"/api/debates/{human_debate}/end", headers=_auth(owner[1]))

        assert response.status_code == 200
        assert response.json()["message"] == "Debate ended"
        assert response.json()["data"]["debate"]["status"] == "completed"
        assert client.get(f"/api/rooms/invite/{invite}").status_code == 404

    def test_end_creator_only(self, client, stranger, human_debate):
        response = client.post(f"/api/debates/{human_debate}/end", headers=_auth(stranger[1]))

        assert response.status_code == 403
        assert response.json()["error"] == "Only creator can end debate"

    def test_delete(self, client, owner, ai_debate):
        response = client.delete(f"/api/debates/{ai_debate}", headers=_auth(owner[1]))

        assert response.status_code == 200
        assert response.json()["message"] == "Debate deleted"
        assert client.get(f"/api/debates/{ai_debate}").status_code == 404

    def test_delete_creator_only(self, client, stranger, ai_debate):
        response = client.delete(f"/api/debates/{ai_debate}", headers=_auth(stranger[1]))

        assert response.status_code == 403
        assert response.json()["error"] == "Only creator can delete"
