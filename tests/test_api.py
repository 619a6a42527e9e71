import pytest

from game_import.api import create_app
from game_import.auth import TokenAuthorizer
from game_import.importing.handlers.bgg import BGGThing
from tests.fakes import FakeBGG


@pytest.fixture
def client(orchestrator):
    app = create_app(orchestrator)
    app.config["TESTING"] = True
    return app.test_client()


def test_bulk_import_requires_token(client, store):
    response = client.post("/bulk-import", json={"mode": "csv", "csv_data": "title\nCatan\n"})

    assert response.status_code == 401
    assert response.get_json() == {"success": False, "error": "Missing authorization header"}
    assert store.count_rows("games") == 0


def test_bulk_import_requires_admin(client, store):
    token = TokenAuthorizer(store).issue_token("member-1", admin=False)

    response = client.post("/bulk-import", json={"mode": "csv", "csv_data": "title\nCatan\n"},
                           headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 403
    assert response.get_json()["error"] == "Admin access required"


def test_auth_is_checked_before_the_body(client):
    response = client.post("/bulk-import", data="not json", headers={"Authorization": "Bearer nope"})
    assert response.status_code == 401


def test_bulk_import_csv(client, auth_header):
    response = client.post(
        "/bulk-import",
        json={"mode": "csv", "csv_data": "title,min_players,max_players\nWingspan,1,5\n"},
        headers={"Authorization": auth_header},
    )

    body = response.get_json()
    assert response.status_code == 200
    assert body["success"] is True
    assert body["imported"] == 1
    assert body["failed"] == 0
    assert body["games"][0]["title"] == "Wingspan"
    assert body["rate_limited"] is False


@pytest.mark.parametrize("payload, message", [
    ({"mode": "csv"}, "CSV data is required"),
    ({"mode": "bgg_links", "bgg_links": []}, "At least one BGG link is required"),
])
def test_bulk_import_missing_input(client, auth_header, payload, message):
    response = client.post("/bulk-import", json=payload, headers={"Authorization": auth_header})
    assert response.status_code == 400
    assert response.get_json() == {"success": False, "error": message}


def test_bulk_import_unknown_mode(client, auth_header):
    response = client.post("/bulk-import", json={"mode": "fax"}, headers={"Authorization": auth_header})
    assert response.status_code == 400
    assert response.get_json()["error"].startswith("mode:")


def test_bulk_import_non_object_body(client, auth_header):
    response = client.post("/bulk-import", json=["csv"], headers={"Authorization": auth_header})
    assert response.status_code == 400
    assert response.get_json()["error"] == "Request body must be a JSON object"


def test_game_import_from_bgg_link(client, auth_header, scraper):
    scraper.add_bgg_page("13", "Catan")

    response = client.post(
        "/game-import",
        json={"url": "https://boardgamegeek.com/boardgame/13/catan", "location_room": "Den"},
        headers={"Authorization": auth_header},
    )

    body = response.get_json()
    assert response.status_code == 200
    assert body["imported"] == 1
    assert body["games"][0]["title"] == "Catan"


def test_game_import_rejects_bad_url(client, auth_header):
    response = client.post("/game-import", json={"url": "boardgamegeek.com"}, headers={"Authorization": auth_header})
    assert response.status_code == 400
    assert response.get_json()["error"] == "URL must start with http:// or https://"


def test_bgg_lookup(make_orchestrator):
    bgg = FakeBGG(things={"13": BGGThing(bgg_id="13", title="Catan", min_players=3, max_players=4)})
    client = create_app(make_orchestrator(bgg=bgg)).test_client()

    found = client.post("/bgg-lookup", json={"url": "https://boardgamegeek.com/boardgame/13/catan"})
    failed = client.post("/bgg-lookup", json={"bgg_id": 99})
    invalid = client.post("/bgg-lookup", json={"url": "catan"})
    missing = client.post("/bgg-lookup", json={})

    assert found.status_code == 200
    assert found.get_json()["data"]["title"] == "Catan"
    assert found.get_json()["data"]["max_players"] == 4
    assert failed.status_code == 502
    assert invalid.status_code == 400
    assert missing.status_code == 400
