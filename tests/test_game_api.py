from __future__ import annotations

from app.errors import GenerationError


def _start(client, **payload) -> dict:
    body = {"theme": "medieval-fantasy", "character_name": "Rogan", **payload}
    res = client.post("/game/start", json=body)
    assert res.status_code == 201, res.text
    return res.json()


def test_healthcheck(client) -> None:
    res = client.get("/healthcheck")
    assert res.status_code == 200
    assert res.json() == {"status": "ok"}


def test_list_themes(client) -> None:
    res = client.get("/game/themes")
    assert res.status_code == 200
    themes = res.json()
    assert {t["id"] for t in themes} >= {"medieval-fantasy", "cyberpunk"}
    assert all({"id", "name", "description", "icon"} <= set(t) for t in themes)


def test_start_then_action_then_state(client, generator, turn) -> None:
    generator.queue(turn(itemsFound=["Rusty Dagger"]))
    data = _start(client)
    assert data["inventory"] == ["Rusty Dagger"]
    assert data["turn_count"] == 0
    assert len(data["choices"]) == 3

    generator.queue(turn(narration="You head north.", statChanges={"experience": 15}))
    res = client.post("/game/action", json={"session_id": data["session_id"], "action": "Go north"})
    assert res.status_code == 200, res.text
    step = res.json()
    assert step["narration"] == "You head north."
    assert step["turn_count"] == 1
    assert step["stats"]["experience"] == 15
    assert step["deltas"]["stat_changes"] == {"experience": 15}

    res = client.get(f"/game/state/{data['session_id']}")
    assert res.status_code == 200
    state = res.json()
    assert state["phase"] == "active"
    assert [t["player_action"] for t in state["story_history"]] == ["Go north", None]


def test_start_with_unknown_theme_is_422(client) -> None:
    res = client.post("/game/start", json={"theme": "jazz-age", "character_name": "Rogan"})
    assert res.status_code == 422


def test_start_without_theme_is_422(client) -> None:
    res = client.post("/game/start", json={"character_name": "Rogan"})
    assert res.status_code == 422


def test_blank_action_is_422(client) -> None:
    data = _start(client)
    res = client.post("/game/action", json={"session_id": data["session_id"], "action": "  "})
    assert res.status_code == 422


def test_unknown_session_is_404(client) -> None:
    res = client.post("/game/action", json={"session_id": "missing", "action": "Go"})
    assert res.status_code == 404
    assert client.get("/game/state/missing").status_code == 404


def test_generation_failure_is_502(client, failing) -> None:
    data = _start(client)
    failing("bad json")
    res = client.post("/game/action", json={"session_id": data["session_id"], "action": "Go"})
    assert res.status_code == 502
    assert "Failed to generate story" in res.json()["detail"]

    state = client.get(f"/game/state/{data['session_id']}").json()
    assert state["turn_count"] == 0


def test_retryable_failure_is_503(client, generator) -> None:
    generator.queue(GenerationError("upstream overloaded", retryable=True))
    res = client.post("/game/start", json={"theme": "medieval-fantasy", "character_name": "Rogan"})
    assert res.status_code == 503


def test_game_over_hides_choices(client, generator, turn) -> None:
    data = _start(client)
    generator.queue(turn(statChanges={"health": -500}))
    res = client.post("/game/action", json={"session_id": data["session_id"], "action": "Poke the dragon"})
    body = res.json()
    assert body["is_game_over"] is True
    assert body["choices"] == []
    assert body["stats"]["health"] == 0

    state = client.get(f"/game/state/{data['session_id']}").json()
    assert state["phase"] == "game_over"
