"""
Photo upload and serving tests.
"""

import io

import pytest

from app.blueprints.api.plants.photos import photo_key

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


def _upload(client, headers, *, data=PNG_BYTES, filename="leaf.png", content_type="image/png", plant_id="5"):
    form = {}
    if data is not None:
        form["photo"] = (io.BytesIO(data), filename, content_type)
    if plant_id is not None:
        form["plantId"] = plant_id
    return client.post(
        "/api/plants/upload-photo",
        data=form,
        headers=headers,
        content_type="multipart/form-data",
    )


def test_photo_key_format():
    assert photo_key(5, "leaf.PNG", 1700000000000) == "plant-5-1700000000000.png"
    assert photo_key(5, "no-extension", 1) == "plant-5-1.jpg"
    assert photo_key(5, None, 1) == "plant-5-1.jpg"
    assert photo_key(5, "weird.p/ng", 1) == "plant-5-1.jpg"


def test_upload_and_serve_round_trip(client, auth_headers):
    response = _upload(client, auth_headers)

    assert response.status_code == 200
    body = response.get_json()
    assert body["success"] is True
    assert body["blobKey"].startswith("plant-5-")
    assert body["blobKey"].endswith(".png")
    assert body["imageUrl"] == body["blobUrl"] == f"https://plants.example/api/photos/{body['blobKey']}"

    served = client.get(f"/api/photos/{body['blobKey']}")
    assert served.status_code == 200
    assert served.data == PNG_BYTES
    assert served.mimetype == "image/png"
    assert served.headers["Cache-Control"] == "public, max-age=31536000, immutable"


def test_upload_requires_credential(client):
    response = _upload(client, {})
    assert response.status_code == 401


def test_upload_without_file(client, auth_headers):
    response = _upload(client, auth_headers, data=None)
    assert response.status_code == 400
    assert response.get_json() == {"error": "No file provided"}


@pytest.mark.parametrize("plant_id", [None, "", "abc", "0"])
def test_upload_invalid_plant_id(client, auth_headers, plant_id):
    response = _upload(client, auth_headers, plant_id=plant_id)
    assert response.status_code == 400
    assert response.get_json() == {"error": "Invalid plant ID"}


def test_upload_rejects_non_images(client, auth_headers):
    response = _upload(client, auth_headers, data=b"%PDF-1.7", filename="doc.pdf", content_type="application/pdf")
    assert response.status_code == 400
    assert response.get_json() == {"error": "Invalid file type. Only JPEG, PNG, WebP, and GIF are allowed."}


def test_upload_too_large(client, auth_headers):
    oversized = b"\xff\xd8" + b"\x00" * (5 * 1024 * 1024)
    response = _upload(client, auth_headers, data=oversized, filename="big.jpg", content_type="image/jpeg")
    assert response.status_code == 400
    assert response.get_json() == {"error": "File too large. Maximum size is 5MB."}


def test_upload_far_beyond_request_limit(client, auth_headers):
    oversized = b"\x00" * (7 * 1024 * 1024)
    response = _upload(client, auth_headers, data=oversized, filename="huge.jpg", content_type="image/jpeg")
    assert response.status_code == 400
    assert response.get_json() == {"error": "File too large. Maximum size is 5MB."}


def test_upload_with_session_cookie(client, make_token):
    response = _upload(client, {"Cookie": f"__session={make_token('user_photo')}"}, filename="x.webp", content_type="image/webp")
    assert response.status_code == 200
    assert response.get_json()["blobKey"].endswith(".webp")


def test_serve_missing_photo(client):
    response = client.get("/api/photos/plant-1-1.jpg")
    assert response.status_code == 404
    assert response.get_json() == {"error": "Photo not found"}


@pytest.mark.parametrize("key", ["..%2Fsecret", "plant-1-1.jpg.meta.json", "a/b.jpg"])
def test_serve_rejects_unsafe_keys(client, key):
    response = client.get(f"/api/photos/{key}")
    assert response.status_code == 404


def test_serve_uses_last_path_segment(client, auth_headers):
    key = _upload(client, auth_headers).get_json()["blobKey"]

    response = client.get(f"/api/photos/gallery/{key}")

    assert response.status_code == 200
    assert response.data == PNG_BYTES
