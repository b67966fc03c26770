# tests/test_api/test_watchlist_routes.py

from datetime import datetime


API = "/api/v1/watchlist"
ME = {"X-User-ID": "10"}
SOMEONE_ELSE = {"X-User-ID": "11"}


def _film(client, title="Ran"):
    r = client.post(
        "/api/v1/films",
        json={
            "title": title,
            "year": 1985,
            "runtime": "162 mins",
            "genres": ["drama", "war"],
            "image": "https://img.example.com/ran.webp",
        },
    )
    assert r.status_code == 201, r.text
    return r.json()


def test_user_header_is_required(client):
    assert client.get(API).status_code == 422
    assert client.get(API, headers={"X-User-ID": "0"}).status_code == 422


def test_add_embeds_film_and_applies_defaults(client):
    film = _film(client)
    r = client.post(API, json={"film_id": film["id"], "notes": "big screen"}, headers=ME)
    assert r.status_code == 201, r.text
    body = r.json()
    assert body["film"]["title"] == "Ran"
    assert body["film"]["runtime"] == "162 mins"
    assert (body["priority"], body["watched"], body["watched_at"], body["user_id"]) == (5, False, None, 10)
    assert r.headers["location"] == f"{API}/{body['id']}"


def test_add_unknown_film_is_404(client):
    assert client.post(API, json={"film_id": 999}, headers=ME).status_code == 404


def test_add_twice_is_409_duplicate(client):
    film = _film(client)
    client.post(API, json={"film_id": film["id"]}, headers=ME)
    r = client.post(API, json={"film_id": film["id"]}, headers=ME)
    assert r.status_code == 409
    assert r.json()["details"] == {"constraint": "watchlist_user_film_unique"}


def test_patch_rating_marks_watched_then_unwatch_clears(client):
    film = _film(client)
    entry = client.post(API, json={"film_id": film["id"]}, headers=ME).json()

    r = client.patch(f"{API}/{entry['id']}", json={"rating": 9}, headers=ME)
    assert r.status_code == 200, r.text
    rated = r.json()
    assert (rated["watched"], rated["rating"], rated["version"]) == (True, 9, 2)
    assert rated["watched_at"] is not None

    r = client.patch(f"{API}/{entry['id']}", json={"watched": False}, headers=ME)
    cleared = r.json()
    assert (cleared["watched"], cleared["watched_at"], cleared["rating"]) == (False, None, None)


def test_entries_are_private_to_their_owner(client):
    film = _film(client)
    entry = client.post(API, json={"film_id": film["id"]}, headers=ME).json()
    assert client.get(f"{API}/{entry['id']}", headers=SOMEONE_ELSE).status_code == 404
    assert client.delete(f"{API}/{entry['id']}", headers=SOMEONE_ELSE).status_code == 404
    assert client.get(API, headers=SOMEONE_ELSE).json()["metadata"]["total_records"] == 0


def test_list_filters_and_sort(client):
    a = _film(client, "Ran")
    b = _film(client, "Ikiru")
    client.post(API, json={"film_id": a["id"], "priority": 2}, headers=ME)
    client.post(API, json={"film_id": b["id"], "priority": 9, "rating": 10}, headers=ME)

    r = client.get(API, params={"watched": "true"}, headers=ME)
    assert [e["film"]["title"] for e in r.json()["watchlist"]] == ["Ikiru"]

    r = client.get(API, params={"sort": "priority"}, headers=ME)
    assert [e["priority"] for e in r.json()["watchlist"]] == [2, 9]
    assert r.headers["x-total-count"] == "2"

    r = client.get(API, params={"sort": "title"}, headers=ME)
    assert r.status_code == 422
    assert r.json()["details"] == {"sort": "title"}


def test_delete_entry(client):
    film = _film(client)
    entry = client.post(API, json={"film_id": film["id"]}, headers=ME).json()
    r = client.delete(f"{API}/{entry['id']}", headers=ME)
    assert r.json() == {"message": "watchlist entry successfully deleted"}
    assert client.get(f"{API}/{entry['id']}", headers=ME).status_code == 404


def test_patch_stamps_watched_at_with_the_repository_clock(client, clock):
    film = _film(client)
    entry = client.post(API, json={"film_id": film["id"]}, headers=ME).json()
    clock.advance(hours=2)

    r = client.patch(f"{API}/{entry['id']}", json={"watched": True}, headers=ME)
    assert r.status_code == 200, r.text
    stamped = datetime.fromisoformat(r.json()["watched_at"].replace("Z", "+00:00"))
    assert stamped == clock.now
