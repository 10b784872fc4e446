import pytest
from fastapi.testclient import TestClient

from warpstore.config import Settings
from warpstore.main import create_app
from warpstore.storage import StorageError
from warpstore.warp import EulerDirection, Vector3, WarpBuilder, WarpType

PLAYER = {"X-Player-Id": "player-1"}
STRANGER = {"X-Player-Id": "player-9"}


@pytest.fixture
def settings(db_path):
    return Settings(SQLITE_PATH=str(db_path), MAX_PRIVATE_WARPS=1)


@pytest.fixture
def client(settings, embedded, spawn_builder):
    embedded.create(spawn_builder.add_invited_player("player-2").build())
    app = create_app(settings, data_connection=embedded)
    with TestClient(app) as client:
        yield client


def test_health_check(client):
    response = client.get("/")

    assert response.status_code == 200
    assert response.json()["status"] == "online"


def test_list_warps(client):
    response = client.get("/api/v1/warps/", headers=STRANGER)

    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 1
    assert body["items"][0]["name"] == "spawn"
    assert body["items"][0]["invited_players"] is None


def test_get_warp_shows_invitations_to_creator(client):
    response = client.get("/api/v1/warps/spawn", headers=PLAYER)

    assert response.status_code == 200
    assert response.json()["invited_players"] == ["player-2"]
    assert response.json()["position"] == {"x": 0.0, "y": 64, "z": 0.0}


def test_unknown_warp(client):
    response = client.get("/api/v1/warps/nowhere")

    assert response.status_code == 404
    assert response.json()["detail"] == "There is no warp named 'nowhere'."


def test_info(client):
    response = client.get("/api/v1/warps/spawn/info", headers={**PLAYER, "Accept-Language": "de-DE,de;q=0.9"})

    assert response.status_code == 200
    assert response.json()["text"].startswith("Informationen zu 'spawn':")


def test_privatize_and_publicize(client, embedded):
    response = client.post("/api/v1/warps/spawn/private", headers=PLAYER)

    assert response.status_code == 200
    assert response.json()["message"] == "'spawn' is now private."
    assert embedded.load_all()["spawn"].type == WarpType.PRIVATE

    assert client.get("/api/v1/warps/spawn", headers=STRANGER).status_code == 403
    assert client.post("/api/v1/warps/spawn/visit", headers=STRANGER).status_code == 403
    assert client.post("/api/v1/warps/spawn/visit", headers={"X-Player-Id": "player-2"}).status_code == 200

    response = client.post("/api/v1/warps/spawn/public", headers=PLAYER)
    assert response.json()["warp"]["type"] == "public"


def test_stranger_may_not_modify(client):
    response = client.post("/api/v1/warps/spawn/private", headers=STRANGER)

    assert response.status_code == 403
    assert response.json()["detail"] == "You are not allowed to modify 'spawn'."


def test_private_limit(client, embedded):
    home = WarpBuilder("home", "player-1", "overworld", Vector3(x=5, y=70, z=5), EulerDirection(yaw=0, pitch=0))
    embedded.create(home.set_type(WarpType.PRIVATE).build())
    client.app.state.warp_service.reload()

    response = client.post("/api/v1/warps/spawn/private", headers=PLAYER)

    assert response.status_code == 409
    assert response.json()["detail"] == "You have reached your limit of 1 private warps."


def test_visit(client, embedded):
    response = client.post("/api/v1/warps/spawn/visit", headers=STRANGER)

    assert response.status_code == 200
    assert response.json()["welcome_text"] == "Welcome to 'spawn'!"
    assert response.json()["warp"]["visits"] == 1
    assert embedded.load_all()["spawn"].visits == 1


def test_welcome_message(client, embedded):
    response = client.put(
        "/api/v1/warps/spawn/welcome-message", headers=PLAYER, json={"welcome_message": "Hi from %creator%"}
    )

    assert response.status_code == 200
    assert embedded.load_all()["spawn"].welcome_message == "Hi from %creator%"


def test_welcome_message_too_long(client):
    response = client.put("/api/v1/warps/spawn/welcome-message", headers=PLAYER, json={"welcome_message": "x" * 101})

    assert response.status_code == 422


def test_storage_failure_is_reported_generically(client, embedded, monkeypatch):
    def refuse(warp):
        raise StorageError("Warp Publicize failed")

    monkeypatch.setattr(embedded, "update_visibility", refuse)

    response = client.post("/api/v1/warps/spawn/private", headers=PLAYER)

    assert response.status_code == 503
    assert response.json() == {"detail": "Storage unavailable"}
