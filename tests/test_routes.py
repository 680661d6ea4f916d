"""Tests for the FastAPI service (backend.app) with stub collaborators."""

import pytest
from fastapi.testclient import TestClient

from backend.app import create_app
from backend.settings import Settings
from throne_saga.errors import StoryGenerationError
from throne_saga.models import HistoryEntry, SaveFile
from throne_saga.story import fallback_node

from stubs import StubImages, StubStory, make_character, make_node


def _client(tmp_path, story=None, images=None, **settings) -> TestClient:
    app = create_app(
        data_dir=tmp_path,
        settings=Settings(**settings),
        story=story or StubStory(),
        images=images or StubImages(),
    )
    return TestClient(app)


def _character_json(**overrides) -> dict:
    return make_character(**overrides).model_dump(mode="json")


def _save_json(name: str = "Jon", **node_kw) -> dict:
    save = SaveFile(
        character=make_character(name=name),
        history=[HistoryEntry.narrative("Snow.")],
        current_scene=make_node(**node_kw),
        turn_count=3,
        last_saved=1000,
    )
    return save.model_dump(mode="json", by_alias=True)


# ── Health ──────────────────────────────────────────────────


def test_healthz(tmp_path):
    resp = _client(tmp_path, text_model="gemini-x").get("/healthz")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok", "textModel": "gemini-x", "imageModel": "gemini-2.5-flash-image"}


# ── Story ───────────────────────────────────────────────────


def test_story_start(tmp_path):
    node = make_node(speaker="Ned", dialogue="Winter.")
    story = StubStory(start=node)
    resp = _client(tmp_path, story=story).post("/api/story/start", json={"character": _character_json()})
    assert resp.status_code == 200
    assert resp.json()["speaker"] == "Ned"
    assert story.start_calls[0].name == "Jon"


def test_story_start_failure_is_500(tmp_path):
    story = StubStory(start=StoryGenerationError("no"))
    resp = _client(tmp_path, story=story).post("/api/story/start", json={"character": _character_json()})
    assert resp.status_code == 500
    assert resp.json() == {"error": "Failed to generate starting scene"}


def test_story_start_invalid_body_is_400(tmp_path):
    resp = _client(tmp_path).post("/api/story/start", json={"character": {"name": "Jon", "house": "Bolton"}})
    assert resp.status_code == 400
    assert resp.json()["error"].startswith("Invalid request")
    assert "character.house" in resp.json()["error"]


def test_story_turn(tmp_path):
    story = StubStory(turns=[make_node(health_change=-10)])
    body = {
        "character": _character_json(),
        "history": [{"type": "narrative", "text": "Snow."}, {"type": "choice", "text": "Go"}],
        "lastChoice": "Go",
        "turnCount": 2,
        "maxTurns": 20,
    }
    resp = _client(tmp_path, story=story).post("/api/story/turn", json=body)
    assert resp.status_code == 200
    assert resp.json()["health_change"] == -10
    call = story.turn_calls[0]
    assert call["last_choice"] == "Go"
    assert call["turn_count"] == 2
    assert call["max_turns"] == 20
    assert call["history"][1] == HistoryEntry.choice("Go")


def test_story_turn_default_max_turns(tmp_path):
    story = StubStory(turns=[make_node()])
    body = {"character": _character_json(), "history": [], "lastChoice": "Go", "turnCount": 2}
    _client(tmp_path, story=story).post("/api/story/turn", json=body)
    assert story.turn_calls[0]["max_turns"] == 15


def test_story_turn_fallback_passes_through(tmp_path):
    story = StubStory(turns=[fallback_node()])
    body = {"character": _character_json(), "history": [], "lastChoice": "Go", "turnCount": 2}
    resp = _client(tmp_path, story=story).post("/api/story/turn", json=body)
    assert resp.status_code == 200
    assert resp.json()["options"] == [{"id": "retry", "text": "Try again"}]


def test_story_turn_unexpected_failure_returns_fallback(tmp_path):
    story = StubStory(turns=[RuntimeError("boom")])
    body = {"character": _character_json(), "history": [], "lastChoice": "Go", "turnCount": 2}
    resp = _client(tmp_path, story=story).post("/api/story/turn", json=body)
    assert resp.status_code == 200
    assert resp.json() == fallback_node().model_dump(mode="json")


def test_story_start_unexpected_failure_is_500(tmp_path):
    story = StubStory(start=RuntimeError("boom"))
    resp = _client(tmp_path, story=story).post("/api/story/start", json={"character": _character_json()})
    assert resp.status_code == 500
    assert resp.json() == {"error": "Failed to generate starting scene"}


@pytest.mark.parametrize("body", [
    {"history": [], "lastChoice": "Go", "turnCount": 2},
    {"character": {"name": "Jon", "house": "Stark"}, "history": [], "lastChoice": "", "turnCount": 2},
    {"character": {"name": "Jon", "house": "Stark"}, "history": "nope", "lastChoice": "Go", "turnCount": 2},
])
def test_story_turn_invalid_body_is_400(tmp_path, body):
    resp = _client(tmp_path).post("/api/story/turn", json=body)
    assert resp.status_code == 400
    assert "error" in resp.json()


# ── Images ──────────────────────────────────────────────────


def test_scene_image(tmp_path):
    resp = _client(tmp_path).post("/api/images/scene", json={"visualDescription": "A weirwood"})
    assert resp.status_code == 200
    assert resp.json() == {"image": "data:image/png;base64,SCENE#A weirwood"}


def test_portrait_failure_degrades_to_null(tmp_path):
    images = StubImages(portrait=RuntimeError("quota"))
    resp = _client(tmp_path, images=images).post("/api/images/portrait", json={"name": "Varys"})
    assert resp.status_code == 200
    assert resp.json() == {"image": None}


def test_image_missing_field_is_400(tmp_path):
    resp = _client(tmp_path).post("/api/images/scene", json={})
    assert resp.status_code == 400


# ── Saves ───────────────────────────────────────────────────


def test_saves_crud(tmp_path):
    client = _client(tmp_path)
    assert client.get("/api/saves").json() == []

    resp = client.put("/api/saves/Jon", json=_save_json())
    assert resp.status_code == 200
    assert resp.json() == {"ok": True}

    saves = client.get("/api/saves").json()
    assert [s["character"]["name"] for s in saves] == ["Jon"]
    assert client.get("/api/saves/Jon").json()["turnCount"] == 3

    assert client.delete("/api/saves/Jon").status_code == 200
    assert client.get("/api/saves/Jon").status_code == 404


def test_save_written_to_data_dir(tmp_path):
    _client(tmp_path).put("/api/saves/Jon", json=_save_json())
    assert (tmp_path / "got_saves_v2.json").is_file()


def test_get_missing_save_is_404(tmp_path):
    resp = _client(tmp_path).get("/api/saves/Nobody")
    assert resp.status_code == 404
    assert resp.json() == {"error": "Save not found"}


def test_delete_missing_save_is_404(tmp_path):
    assert _client(tmp_path).delete("/api/saves/Nobody").status_code == 404


def test_put_save_name_mismatch_is_400(tmp_path):
    resp = _client(tmp_path).put("/api/saves/Arya", json=_save_json("Jon"))
    assert resp.status_code == 400


def test_put_finished_game_is_400(tmp_path):
    resp = _client(tmp_path).put("/api/saves/Jon", json=_save_json(is_game_over=True))
    assert resp.status_code == 400
    assert resp.json() == {"error": "Finished games cannot be saved"}
