"""
Plant catalog API tests.

Exercises ``/api/plants`` through the Flask test client with an in-memory
database and signed session tokens.
"""

import pytest

from app import create_app


def _add(client, headers, **fields):
    body = {"scientific_name": "Monstera deliciosa", **fields}
    return client.post("/api/plants", json=body, headers=headers)


# ========================== Create ==========================================


def test_add_plant_returns_201(client, auth_headers, sample_plant, plant_repo):
    response = client.post("/api/plants", json=sample_plant, headers=auth_headers)

    assert response.status_code == 201
    body = response.get_json()
    assert body["success"] is True
    assert set(body["plant"]) == {"id", "scientific_name", "common_name", "added_at"}
    stored = plant_repo.get_plant(body["plant"]["id"])
    assert stored["synonyms"] == ["Philodendron pertusum"]
    assert stored["metadata"] == {"source": "trefle"}


def test_add_plant_empty_body_is_rejected(client, auth_headers, plant_repo):
    response = client.post("/api/plants", json={}, headers=auth_headers)

    assert response.status_code == 400
    assert response.get_json() == {"error": "scientific_name is required"}
    assert plant_repo.count() == 0


def test_add_plant_blank_name_is_rejected(client, auth_headers, plant_repo):
    response = _add(client, auth_headers, scientific_name="   ")
    assert response.status_code == 400
    assert response.get_json()["error"] == "scientific_name is required"
    assert plant_repo.count() == 0


def test_add_plant_non_json_body(client, auth_headers):
    response = client.post("/api/plants", data="not json", content_type="application/json", headers=auth_headers)
    assert response.status_code == 400
    assert response.get_json()["error"] == "Invalid JSON body"

    response = client.post("/api/plants", json=["scientific_name"], headers=auth_headers)
    assert response.status_code == 400


@pytest.mark.parametrize(
    "metadata",
    [[1, 2], "text", {"blob": "x" * 20_000}],
)
def test_add_plant_invalid_metadata(client, auth_headers, metadata, plant_repo):
    response = _add(client, auth_headers, metadata=metadata)
    assert response.status_code == 400
    assert response.get_json()["error"] == "Invalid metadata"
    assert plant_repo.count() == 0


def test_add_plant_synonyms_must_be_a_list(client, auth_headers):
    response = _add(client, auth_headers, synonyms="Foo")
    assert response.status_code == 400
    assert response.get_json()["error"] == "synonyms must be a list of strings"


def test_add_plant_cleans_loose_values(client, auth_headers, plant_repo):
    response = _add(
        client,
        auth_headers,
        scientific_name="  Ficus lyrata  ",
        common_name="",
        year="1894",
        trefle_id="-4",
        perenual_id="77",
        notes="n" * 6000,
        metadata=None,
        owner="ignored",
    )

    assert response.status_code == 201
    plant = plant_repo.get_plant(response.get_json()["plant"]["id"])
    assert plant["scientific_name"] == "Ficus lyrata"
    assert plant["common_name"] is None
    assert plant["year"] == 1894
    assert plant["trefle_id"] is None
    assert plant["perenual_id"] == 77
    assert len(plant["notes"]) == 5000
    assert plant["metadata"] == {}


# ========================== Authentication ==================================


def test_write_without_credential_is_401(client, plant_repo):
    response = _add(client, {})
    assert response.status_code == 401
    assert response.get_json() == {"error": "Unauthorized"}
    assert plant_repo.count() == 0


def test_write_with_invalid_token_is_401(client, make_token):
    expired = make_token(expires_in=-60)
    forged = make_token(secret="not-the-real-secret-0123456789abcdef")

    for token in ("garbage", expired, forged):
        response = _add(client, {"Authorization": f"Bearer {token}"})
        assert response.status_code == 401


def test_session_cookie_authenticates(client, make_token):
    response = _add(client, {"Cookie": f"theme=dark; __session={make_token('user_cookie')}"})
    assert response.status_code == 201


def test_missing_auth_secret_is_a_server_error(config_overrides, db_handler, kv_store, trefle_client, perenual_client, photo_store, make_token):
    app = create_app(
        dict(config_overrides, auth_secret_key=None),
        database=db_handler,
        kv_store=kv_store,
        trefle=trefle_client,
        perenual=perenual_client,
        photo_store=photo_store,
    )
    client = app.test_client()

    response = _add(client, {"Authorization": f"Bearer {make_token()}"})
    assert response.status_code == 500
    assert response.get_json() == {"error": "An error occurred"}

    # No credential at all is still a plain 401
    assert _add(client, {}).status_code == 401


# ========================== Rate limiting ===================================


def test_writes_are_limited_per_user(client, auth_headers, make_token):
    for _ in range(10):
        assert _add(client, auth_headers).status_code == 201

    response = _add(client, auth_headers)
    assert response.status_code == 429
    assert response.get_json() == {"error": "Too many requests. Please try again later."}

    other_user = {"Authorization": f"Bearer {make_token('user_other')}"}
    assert _add(client, other_user).status_code == 201


def test_reads_are_limited_per_ip(client, limiter):
    limiter.config.ip_limit = 2
    headers = {"X-Forwarded-For": "203.0.113.9"}

    assert client.get("/api/plants/list", headers=headers).status_code == 200
    assert client.get("/api/plants/list", headers=headers).status_code == 200
    assert client.get("/api/plants/list", headers=headers).status_code == 429
    assert client.get("/api/plants/list", headers={"X-Forwarded-For": "203.0.113.10"}).status_code == 200


# ========================== Update ==========================================


def test_update_replaces_the_record(client, auth_headers, sample_plant, plant_repo):
    plant_id = client.post("/api/plants", json=sample_plant, headers=auth_headers).get_json()["plant"]["id"]

    response = client.put(
        "/api/plants/update",
        json={"id": plant_id, "scientific_name": "Monstera deliciosa", "nickname": "Monty"},
        headers=auth_headers,
    )

    assert response.status_code == 200
    body = response.get_json()
    assert body["success"] is True
    assert body["plant"]["id"] == plant_id
    assert body["plant"]["updated_at"]
    stored = plant_repo.get_plant(plant_id)
    assert stored["nickname"] == "Monty"
    assert stored["common_name"] is None
    assert stored["synonyms"] is None
    assert stored["metadata"] == {}


def test_update_accepts_patch(client, auth_headers):
    plant_id = _add(client, auth_headers).get_json()["plant"]["id"]
    response = client.patch(
        "/api/plants/update",
        json={"id": str(plant_id), "scientific_name": "Monstera adansonii"},
        headers=auth_headers,
    )
    assert response.status_code == 200
    assert response.get_json()["plant"]["scientific_name"] == "Monstera adansonii"


def test_update_missing_plant_is_404(client, auth_headers):
    response = client.put(
        "/api/plants/update",
        json={"id": 999999, "scientific_name": "Ghost"},
        headers=auth_headers,
    )
    assert response.status_code == 404
    assert response.get_json() == {"error": "Plant not found"}


@pytest.mark.parametrize("plant_id", [None, 0, "abc", -3])
def test_update_requires_a_valid_id(client, auth_headers, plant_id):
    body = {"scientific_name": "Ficus"}
    if plant_id is not None:
        body["id"] = plant_id
    response = client.put("/api/plants/update", json=body, headers=auth_headers)
    assert response.status_code == 400
    assert response.get_json() == {"error": "Plant ID required"}


def test_update_requires_credential(client):
    response = client.put("/api/plants/update", json={"id": 1, "scientific_name": "Ficus"})
    assert response.status_code == 401


# ========================== Reads ===========================================


def test_get_plant(client, auth_headers, sample_plant):
    plant_id = client.post("/api/plants", json=sample_plant, headers=auth_headers).get_json()["plant"]["id"]

    response = client.get(f"/api/plants/get?id={plant_id}")

    assert response.status_code == 200
    plant = response.get_json()["plant"]
    assert plant["id"] == plant_id
    assert plant["scientific_name"] == "Monstera deliciosa"
    assert plant["metadata"] == {"source": "trefle"}


def test_get_missing_plant_is_404(client):
    response = client.get("/api/plants/get?id=999999")
    assert response.status_code == 404
    assert response.get_json() == {"error": "Plant not found"}


@pytest.mark.parametrize("query", ["", "?id=", "?id=abc", "?id=0", "?id=-1", "?id=1.5", "?id=1%0A"])
def test_get_plant_invalid_id(client, query):
    response = client.get(f"/api/plants/get{query}")
    assert response.status_code == 400
    assert response.get_json() == {"error": "Invalid plant ID"}


def test_list_plants_newest_first(client, auth_headers, db_handler):
    first = _add(client, auth_headers, scientific_name="Aloe vera").get_json()["plant"]["id"]
    second = _add(client, auth_headers, scientific_name="Begonia rex").get_json()["plant"]["id"]
    db = db_handler.get_db()
    db.execute("UPDATE Plants SET added_at = '2020-01-01T00:00:00+00:00' WHERE id = ?", (first,))
    db.commit()

    response = client.get("/api/plants/list")

    assert response.status_code == 200
    assert [p["id"] for p in response.get_json()["plants"]] == [second, first]


def test_list_empty(client):
    response = client.get("/api/plants/list")
    assert response.status_code == 200
    assert response.get_json() == {"plants": []}


# ========================== Errors and headers ==============================


def test_wrong_method_is_405(client):
    response = client.get("/api/plants")
    assert response.status_code == 405
    assert response.get_json() == {"error": "Method not allowed"}


def test_unknown_route_is_404(client):
    response = client.get("/api/plants/nope")
    assert response.status_code == 404
    assert response.get_json() == {"error": "Resource not found"}


def test_repository_failure_is_generic_500(client, plant_repo, monkeypatch):
    def boom():
        raise RuntimeError("database is on fire at /var/lib/secret.db")

    monkeypatch.setattr(plant_repo, "list_plants", boom)
    response = client.get("/api/plants/list")

    assert response.status_code == 500
    assert response.get_json() == {"error": "An error occurred"}


def test_security_headers(client):
    response = client.get("/api/plants/list")
    assert response.headers["X-Content-Type-Options"] == "nosniff"
    assert response.headers["X-Frame-Options"] == "DENY"
    assert response.headers["Cache-Control"] == "no-store"
