# tests/test_api/test_films_routes.py

import uuid

API = "/api/v1/films"

CASABLANCA = {
    "title": "Casablanca",
    "year": 1942,
    "runtime": "102 mins",
    "genres": ["drama", "romance"],
    "directors": ["Michael Curtiz"],
    "actors": ["Ingrid Bergman", "Humphrey Bogart"],
    "image": "https://img.example.com/casablanca.jpg",
}


def _create(client, **overrides):
    r = client.post(API, json={**CASABLANCA, **overrides})
    assert r.status_code == 201, r.text
    return r.json()


def test_create_returns_film_with_wire_runtime(client):
    r = client.post(API, json=CASABLANCA)
    assert r.status_code == 201
    body = r.json()
    assert r.headers["location"] == f"{API}/{body['id']}"
    assert body["runtime"] == "102 mins"
    assert body["version"] == 1
    assert body["actors"] == ["Humphrey Bogart", "Ingrid Bergman"]


def test_create_validation_errors_are_problem_json(client):
    r = client.post(API, json={**CASABLANCA, "runtime": "102", "genres": []})
    assert r.status_code == 422
    assert r.headers["content-type"].startswith("application/problem+json")
    fields = {tuple(e["loc"])[-1] for e in r.json()["errors"]}
    assert {"runtime", "genres"} <= fields


def test_get_missing_is_404_problem(client):
    r = client.get(f"{API}/77")
    assert r.status_code == 404
    body = r.json()
    assert body["status"] == 404
    assert body["details"] == {"resource": "film", "id": 77}
    assert body["request_id"] == r.headers["x-request-id"]


def test_list_filters_and_counts(client):
    _create(client)
    _create(client, title="Notorious", year=1946, runtime="101 mins", genres=["thriller"], directors=["Alfred Hitchcock"])
    r = client.get(API, params={"genres": "thriller,noir", "page_size": 5})
    assert r.status_code == 200
    body = r.json()
    assert [f["title"] for f in body["films"]] == ["Notorious"]
    assert body["metadata"] == {
        "current_page": 1,
        "page_size": 5,
        "first_page": 1,
        "last_page": 1,
        "total_records": 1,
    }
    assert r.headers["x-total-count"] == "1"


def test_list_sort_and_title(client):
    _create(client)
    _create(client, title="Casablanca Express", year=1989)
    r = client.get(API, params={"title": "casablanca", "sort": "-year"})
    assert [f["year"] for f in r.json()["films"]] == [1989, 1942]


def test_list_unknown_sort_is_422_naming_token(client):
    r = client.get(API, params={"sort": "id,bogus"})
    assert r.status_code == 422
    assert r.json()["details"] == {"sort": "bogus"}


def test_list_page_bounds_are_validated_upstream(client):
    assert client.get(API, params={"page": 0}).status_code == 422
    assert client.get(API, params={"page_size": 101}).status_code == 422


def test_patch_merges_and_bumps_version(client):
    film = _create(client)
    r = client.patch(f"{API}/{film['id']}", json={"title": "Casablanca (Restored)", "genres": ["drama"]})
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["title"] == "Casablanca (Restored)"
    assert body["genres"] == ["drama"]
    assert body["directors"] == ["Michael Curtiz"]
    assert body["version"] == 2


def test_patch_with_stale_expected_version_is_409(client):
    film = _create(client)
    client.patch(f"{API}/{film['id']}", json={"rating": 8.1})
    r = client.patch(f"{API}/{film['id']}", json={"rating": 9.0}, headers={"X-Expected-Version": "1"})
    assert r.status_code == 409


def test_patch_that_breaks_a_rule_is_422(client):
    film = _create(client)
    r = client.patch(f"{API}/{film['id']}", json={"genres": ["a", "b", "c", "d", "e", "f"]})
    assert r.status_code == 422


def test_delete_then_404(client):
    film = _create(client)
    r = client.delete(f"{API}/{film['id']}")
    assert r.status_code == 200
    assert r.json() == {"message": "film successfully deleted"}
    assert client.delete(f"{API}/{film['id']}").status_code == 404
    assert client.delete(f"{API}/0").status_code == 404


def test_request_id_is_generated_or_echoed(client):
    generated = client.get("/healthz").headers["x-request-id"]
    assert uuid.UUID(generated).version == 4
    supplied = str(uuid.uuid4())
    assert client.get("/healthz", headers={"X-Request-ID": supplied}).headers["x-request-id"] == supplied
    assert client.get("/healthz", headers={"X-Request-ID": "not-a-uuid"}).headers["x-request-id"] != "not-a-uuid"
