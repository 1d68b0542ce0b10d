"""Tests for travel creation, partial updates, sharing and removal."""

import pytest
from fastapi.testclient import TestClient

from conftest import (
    PNG_BYTES,
    create_travel,
    photo_payload,
    point_payload,
    register,
    travel_payload,
    uploaded_files,
)
from travel_api.config import Settings
from travel_api.services.storage import PhotoStorage


@pytest.fixture(name='user')
def user_fixture(client: TestClient):
    return register(client)


# ============== Create ==============


def test_create_travel_stores_points_and_photos(client: TestClient, user, settings: Settings) -> None:
    payload = travel_payload(points=[
        point_payload("Louvre", photos=[photo_payload()]),
        point_payload("Orsay", type=None, departureTime=None),
    ])

    travel = create_travel(client, user["id"], payload)

    assert travel["title"] == "Paris"
    assert travel["user_id"] == user["id"]
    assert travel["likes_count"] == 0
    assert travel["tags"] == []
    assert [p["name"] for p in travel["points"]] == ["Louvre", "Orsay"]

    louvre, orsay = travel["points"]
    assert louvre["departure_time"] == "10:00:00"
    assert louvre["coordinates"]["lat"] == pytest.approx(48.8606)
    assert orsay["type"] == "attraction"
    assert orsay["departure_time"] is None

    photo_path = louvre["photos"][0]["file_path"]
    assert photo_path.startswith("uploads/")
    assert photo_path.endswith(".png")
    assert (settings.content_root / photo_path).read_bytes() == PNG_BYTES


def test_create_travel_defaults_title_from_date(client: TestClient, user) -> None:
    travel = create_travel(client, user["id"], travel_payload(title=None, date="2024-05-01"))

    assert travel["title"] == "Trip 2024-05-01"


def test_create_travel_photo_without_extension_gets_jpg(client: TestClient, user) -> None:
    payload = travel_payload(points=[point_payload(photos=[photo_payload(file_name="camera")])])

    travel = create_travel(client, user["id"], payload)

    assert travel["points"][0]["photos"][0]["file_path"].endswith(".jpg")


def test_create_travel_without_points_is_bad_request(client: TestClient, user) -> None:
    response = client.post(f"/api/users/{user['id']}/travels", json=travel_payload(points=[]))

    assert response.status_code == 400
    assert response.json()["detail"] == "At least one point is required"


def test_create_travel_unknown_user_not_found(client: TestClient) -> None:
    response = client.post("/api/users/999/travels", json=travel_payload())

    assert response.status_code == 404
    assert response.json()["detail"] == "User with id 999 not found"


def test_create_travel_bad_departure_time_names_value(client: TestClient, user, settings: Settings) -> None:
    payload = travel_payload(points=[
        point_payload(photos=[photo_payload()]),
        point_payload("Orsay", departureTime="25:99"),
    ])

    response = client.post(f"/api/users/{user['id']}/travels", json=payload)

    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid departure time format: 25:99"
    # Validation runs before any file is written
    assert uploaded_files(settings) == []


def test_create_travel_oversized_photo_names_file(client: TestClient, user, settings: Settings) -> None:
    big = b"\0" * (5 * 1024 * 1024 + 1)
    payload = travel_payload(points=[point_payload(photos=[photo_payload(big, file_name="huge.png")])])

    response = client.post(f"/api/users/{user['id']}/travels", json=payload)

    assert response.status_code == 400
    assert response.json()["detail"] == "Photo huge.png exceeds 5MB limit"
    assert uploaded_files(settings) == []


def test_create_travel_invalid_base64(client: TestClient, user) -> None:
    bad_photo = {"id": 0, "fileName": "x.png", "base64Content": "data:image/png;base64,@@not base64@@"}
    payload = travel_payload(points=[point_payload(photos=[bad_photo])])

    response = client.post(f"/api/users/{user['id']}/travels", json=payload)

    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid base64 format for photo"


# ============== Partial update ==============


def _two_point_travel(client: TestClient, user) -> dict:
    payload = travel_payload(points=[
        point_payload("Louvre", photos=[photo_payload()]),
        point_payload("Orsay", photos=[photo_payload(file_name="orsay.png")]),
    ])
    return create_travel(client, user["id"], payload)


def test_patch_title_only_keeps_points(client: TestClient, user) -> None:
    travel = _two_point_travel(client, user)

    response = client.patch(f"/api/travels/{travel['id']}", json={"title": "Paris again"})

    assert response.status_code == 200
    body = response.json()
    assert body["title"] == "Paris again"
    assert [p["id"] for p in body["points"]] == [p["id"] for p in travel["points"]]


def test_patch_blank_title_keeps_title(client: TestClient, user) -> None:
    travel = _two_point_travel(client, user)

    response = client.patch(f"/api/travels/{travel['id']}", json={"title": "", "date": None})

    assert response.json()["title"] == "Paris"
    assert response.json()["date"] == travel["date"]


def test_patch_removes_omitted_point_and_its_files(client: TestClient, user, settings: Settings) -> None:
    travel = _two_point_travel(client, user)
    louvre, orsay = travel["points"]
    louvre_file = settings.content_root / louvre["photos"][0]["file_path"]
    assert louvre_file.exists()

    response = client.patch(
        f"/api/travels/{travel['id']}",
        json={"points": [{"id": orsay["id"]}]},
    )

    assert response.status_code == 200
    assert [p["id"] for p in response.json()["points"]] == [orsay["id"]]
    assert not louvre_file.exists()
    assert (settings.content_root / orsay["photos"][0]["file_path"]).exists()

    points = client.get(f"/api/points/{travel['id']}").json()
    assert [p["id"] for p in points] == [orsay["id"]]


def test_patch_adds_new_point_with_photo(client: TestClient, user, settings: Settings) -> None:
    travel = _two_point_travel(client, user)
    louvre, orsay = travel["points"]
    new_point = point_payload("Sainte-Chapelle", photos=[photo_payload(file_name="glass.png")])
    new_point["id"] = 0

    response = client.patch(
        f"/api/travels/{travel['id']}",
        json={"points": [{"id": louvre["id"]}, {"id": orsay["id"]}, new_point]},
    )

    assert response.status_code == 200
    points = response.json()["points"]
    assert [p["name"] for p in points] == ["Louvre", "Orsay", "Sainte-Chapelle"]
    added = points[2]
    assert added["id"] not in (louvre["id"], orsay["id"])
    assert added["coordinates"]["lon"] == pytest.approx(2.3376)
    assert (settings.content_root / added["photos"][0]["file_path"]).exists()
    assert len(uploaded_files(settings)) == 3


def test_patch_new_point_requires_coordinates(client: TestClient, user) -> None:
    travel = _two_point_travel(client, user)

    response = client.patch(
        f"/api/travels/{travel['id']}",
        json={"points": [{"id": 0, "name": "Nowhere"}]},
    )

    assert response.status_code == 400
    assert response.json()["detail"] == "Coordinates are required for new point"
    assert len(client.get(f"/api/points/{travel['id']}").json()) == 2


def test_patch_empty_points_is_bad_request(client: TestClient, user) -> None:
    travel = _two_point_travel(client, user)

    response = client.patch(f"/api/travels/{travel['id']}", json={"points": []})

    assert response.status_code == 400
    assert response.json()["detail"] == "At least one point is required"


def test_patch_invalid_time_changes_nothing(client: TestClient, user, settings: Settings) -> None:
    travel = _two_point_travel(client, user)
    louvre, orsay = travel["points"]
    files_before = uploaded_files(settings)

    response = client.patch(
        f"/api/travels/{travel['id']}",
        json={
            "title": "Should not stick",
            "points": [
                {"id": louvre["id"], "photos": [{"id": louvre["photos"][0]["id"]}, photo_payload()]},
                {"id": orsay["id"], "arrivalTime": "later"},
            ],
        },
    )

    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid arrival time format: later"
    assert uploaded_files(settings) == files_before
    assert client.get(f"/api/travel/{travel['id']}").json()[0]["title"] == "Paris"


def test_patch_oversized_photo_names_file_and_changes_nothing(
    client: TestClient, user, settings: Settings
) -> None:
    travel = _two_point_travel(client, user)
    louvre, orsay = travel["points"]
    files_before = uploaded_files(settings)
    big = b"\0" * (5 * 1024 * 1024 + 1)

    response = client.patch(
        f"/api/travels/{travel['id']}",
        json={
            "title": "Should not stick",
            "points": [
                {"id": louvre["id"], "photos": [photo_payload(big, file_name="huge.png")]},
                {"id": orsay["id"], "name": "Renamed"},
            ],
        },
    )

    assert response.status_code == 400
    assert response.json()["detail"] == "Photo huge.png exceeds 5MB limit"
    assert uploaded_files(settings) == files_before
    points = client.get(f"/api/points/{travel['id']}").json()
    assert [p["name"] for p in points] == ["Louvre", "Orsay"]
    assert [p["photos"] for p in points] == [louvre["photos"], orsay["photos"]]
    assert client.get(f"/api/travel/{travel['id']}").json()[0]["title"] == "Paris"


def test_patch_point_fields(client: TestClient, user) -> None:
    travel = _two_point_travel(client, user)
    louvre, orsay = travel["points"]

    response = client.patch(
        f"/api/travels/{travel['id']}",
        json={
            "points": [
                {
                    "id": louvre["id"],
                    "name": "Musée du Louvre",
                    "address": "",
                    "note": "",
                    "arrivalTime": "09:30",
                    "duration": 7200,
                    "coordinates": {"lat": 48.861, "lon": 2.336},
                },
                {"id": orsay["id"], "note": None},
            ],
        },
    )

    assert response.status_code == 200
    updated_louvre, updated_orsay = response.json()["points"]
    assert updated_louvre["name"] == "Musée du Louvre"
    assert updated_louvre["address"] == louvre["address"]
    assert updated_louvre["note"] == ""
    assert updated_louvre["arrival_time"] == "09:30:00"
    assert updated_louvre["duration"] == 7200
    assert updated_louvre["coordinates"]["lat"] == pytest.approx(48.861)
    assert updated_orsay["note"] == "Arrive early"


def test_patch_reorders_points(client: TestClient, user) -> None:
    travel = _two_point_travel(client, user)
    louvre, orsay = travel["points"]

    response = client.patch(
        f"/api/travels/{travel['id']}",
        json={"points": [{"id": orsay["id"]}, {"id": louvre["id"]}]},
    )

    assert [p["id"] for p in response.json()["points"]] == [orsay["id"], louvre["id"]]
    points = client.get(f"/api/points/{travel['id']}").json()
    assert [p["id"] for p in points] == [orsay["id"], louvre["id"]]


def test_patch_empty_photos_deletes_point_photos(client: TestClient, user, settings: Settings) -> None:
    travel = _two_point_travel(client, user)
    louvre, orsay = travel["points"]

    response = client.patch(
        f"/api/travels/{travel['id']}",
        json={"points": [{"id": louvre["id"], "photos": []}, {"id": orsay["id"]}]},
    )

    assert response.status_code == 200
    updated_louvre, updated_orsay = response.json()["points"]
    assert updated_louvre["photos"] == []
    assert len(updated_orsay["photos"]) == 1
    assert not (settings.content_root / louvre["photos"][0]["file_path"]).exists()


def test_patch_null_photos_keeps_point_photos(client: TestClient, user) -> None:
    travel = _two_point_travel(client, user)
    louvre, orsay = travel["points"]

    response = client.patch(
        f"/api/travels/{travel['id']}",
        json={"points": [{"id": louvre["id"], "photos": None}, {"id": orsay["id"]}]},
    )

    assert response.json()["points"][0]["photos"] == louvre["photos"]


def test_patch_tags_null_clears_and_list_replaces(client: TestClient, user) -> None:
    travel = _two_point_travel(client, user)
    travel_id = travel["id"]

    tagged = client.patch(f"/api/travels/{travel_id}", json={"tags": ["museums", "art", "museums"]})
    assert tagged.json()["tags"] == ["museums", "art", "museums"]

    untouched = client.patch(f"/api/travels/{travel_id}", json={"title": "Paris"})
    assert untouched.json()["tags"] == ["museums", "art", "museums"]

    cleared = client.patch(f"/api/travels/{travel_id}", json={"tags": None})
    assert cleared.json()["tags"] == []


def test_patch_unknown_travel_not_found(client: TestClient) -> None:
    response = client.patch("/api/travels/404", json={"title": "x"})

    assert response.status_code == 404


def test_patch_persistence_failure_removes_new_files(
    client: TestClient, user, settings: Settings, monkeypatch
) -> None:
    travel = _two_point_travel(client, user)
    louvre, orsay = travel["points"]
    files_before = uploaded_files(settings)
    real_save = PhotoStorage.save
    calls = []

    async def failing_save(self, photo):
        calls.append(photo.file_name)
        if len(calls) == 2:
            raise OSError("disk full")
        return await real_save(self, photo)

    monkeypatch.setattr(PhotoStorage, "save", failing_save)

    response = client.patch(
        f"/api/travels/{travel['id']}",
        json={
            "points": [
                {"id": louvre["id"], "photos": [photo_payload(file_name="a.png")]},
                {"id": orsay["id"], "photos": [photo_payload(file_name="b.png")]},
            ],
        },
    )

    assert response.status_code == 500
    assert response.json() == {
        "type": "about:blank",
        "title": "An error occurred: disk full",
        "status": 500,
    }
    assert uploaded_files(settings) == files_before
    points = client.get(f"/api/points/{travel['id']}").json()
    assert [len(p["photos"]) for p in points] == [1, 1]


# ============== Share ==============


def test_share_sets_and_clears_tags(client: TestClient, user) -> None:
    travel = _two_point_travel(client, user)

    shared = client.put(
        f"/api/travels/{travel['id']}/share", json={"tags": ["food", "food", "art"]}
    )
    assert shared.status_code == 200
    assert shared.content == b""
    assert client.get(f"/api/travel/{travel['id']}").json()[0]["tags"] == ["food", "food", "art"]

    cleared = client.put(f"/api/travels/{travel['id']}/share", json={"tags": None})
    assert cleared.status_code == 200
    assert cleared.content == b""
    assert client.get(f"/api/travel/{travel['id']}").json()[0]["tags"] == []


def test_share_unknown_travel_not_found(client: TestClient) -> None:
    response = client.put("/api/travels/42/share", json={"tags": ["x"]})

    assert response.status_code == 404


def test_share_unknown_high_id_is_server_error(client: TestClient) -> None:
    response = client.put("/api/travels/9001/share", json={"tags": ["x"]})

    assert response.status_code == 500


# ============== Reads and delete ==============


def test_get_travel_is_idempotent(client: TestClient, user) -> None:
    travel = _two_point_travel(client, user)

    first = client.get(f"/api/travel/{travel['id']}")
    second = client.get(f"/api/travel/{travel['id']}")

    assert first.status_code == 200
    assert first.json() == second.json()
    assert len(first.json()) == 1
    assert "points" not in first.json()[0]


def test_get_unknown_travel_is_empty_list(client: TestClient) -> None:
    response = client.get("/api/travel/12345")

    assert response.status_code == 200
    assert response.json() == []


def test_user_routes_include_coordinates_and_photos(client: TestClient, user) -> None:
    _two_point_travel(client, user)
    other = register(client, email="ben@example.com", username="ben")
    create_travel(client, other["id"])

    routes = client.get(f"/api/routes/{user['id']}").json()

    assert len(routes) == 1
    point = routes[0]["points"][0]
    assert set(point["coordinates"]) == {"id", "lat", "lon"}
    assert point["photos"][0]["file_path"].startswith("uploads/")


def test_delete_travel_removes_files(client: TestClient, user, settings: Settings) -> None:
    travel = _two_point_travel(client, user)
    assert len(uploaded_files(settings)) == 2

    response = client.delete(f"/api/routes/{travel['id']}")

    assert response.status_code == 200
    assert uploaded_files(settings) == []
    assert client.get(f"/api/travel/{travel['id']}").json() == []
    assert client.delete(f"/api/routes/{travel['id']}").status_code == 404
