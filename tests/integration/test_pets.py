from petlov.extensions import db
from petlov.models.adoption import Adoption
from petlov.models.pet import Pet, PetImage


def _pet_payload(**overrides):
    payload = {
        "name": "Luna",
        "type": "Cat",
        "age": "3 years",
        "size": "small",
        "sex": "female",
        "description": "Quiet cat that loves naps on the sofa.",
        "vaccinated": True,
    }
    payload.update(overrides)
    return payload


def test_list_pets_is_public_and_filtered(client, make_pet):
    make_pet("Thor", type="dog")
    make_pet("Mia", type="cat", size="small")
    make_pet("Bidu", type="cat", status="adopted")

    rv = client.get("/api/pets?type=cat&status=available")
    assert rv.status_code == 200
    body = rv.get_json()
    assert body["success"] is True
    assert [p["name"] for p in body["data"]] == ["Mia"]
    assert body["pagination"]["total_count"] == 1


def test_list_pets_paginates(client, make_pet):
    for i in range(5):
        make_pet(f"Pet {i}")

    rv = client.get("/api/pets?page=2&limit=2")
    body = rv.get_json()
    assert rv.status_code == 200
    assert len(body["data"]) == 2
    assert body["pagination"] == {
        "current_page": 2,
        "total_pages": 3,
        "total_count": 5,
        "has_next_page": True,
        "has_prev_page": True,
        "limit": 2,
    }


def test_list_pets_rejects_bad_filters(client):
    rv = client.get("/api/pets?type=dragon")
    assert rv.status_code == 400
    assert rv.get_json()["success"] is False

    rv = client.get("/api/pets?limit=500")
    assert rv.status_code == 400


def test_get_pet_not_found(client):
    rv = client.get("/api/pets/123")
    assert rv.status_code == 404
    assert rv.get_json()["error"]["message"] == "Pet not found"


def test_create_pet_requires_admin(client, make_user, auth_headers):
    rv = client.post("/api/pets", json=_pet_payload())
    assert rv.status_code == 401

    staff = make_user("staff@example.com")
    rv = client.post("/api/pets", json=_pet_payload(), headers=auth_headers(staff))
    assert rv.status_code == 403


def test_create_pet_with_images(client, admin_headers):
    payload = _pet_payload(
        images=[
            {"url": "data:image/png;base64,AAAA", "type": "image/png"},
            {"url": "https://cdn.example.com/luna-2.jpg", "name": "luna-2.jpg"},
        ]
    )
    rv = client.post("/api/pets", json=payload, headers=admin_headers)
    assert rv.status_code == 201

    data = rv.get_json()["data"]
    assert data["type"] == "cat"
    assert data["status"] == "available"
    assert data["color"] == "Not informed"
    assert data["vaccinated"] is True
    assert data["neutered"] is False
    assert data["created_by"]["email"] == "admin@example.com"
    assert data["primary_image"] == "data:image/png;base64,AAAA"
    assert [img["is_primary"] for img in data["images"]] == [True, False]
    assert data["images"][1]["filename"] == "luna-2.jpg"


def test_create_pet_validation_errors(client, admin_headers):
    rv = client.post(
        "/api/pets", json=_pet_payload(size="huge", description="short"), headers=admin_headers
    )
    assert rv.status_code == 400
    fields = {d["field"] for d in rv.get_json()["error"]["details"]}
    assert fields == {"size", "description"}


def test_update_pet_partial(client, admin_headers, make_pet):
    pet_id = make_pet("Thor", temperament="Calm")

    rv = client.put(
        f"/api/pets/{pet_id}",
        json={"name": "Thor II", "weight": 12.5, "temperament": ""},
        headers=admin_headers,
    )
    assert rv.status_code == 200
    data = rv.get_json()["data"]
    assert data["name"] == "Thor II"
    assert data["weight"] == 12.5
    assert data["temperament"] is None
    assert data["type"] == "dog"


def test_update_missing_pet(client, admin_headers):
    rv = client.put("/api/pets/42", json={"name": "Ghost"}, headers=admin_headers)
    assert rv.status_code == 404


def test_patch_pet_status(client, admin_headers, make_pet):
    pet_id = make_pet()

    rv = client.patch(f"/api/pets/{pet_id}/status", json={"status": "in_process"}, headers=admin_headers)
    assert rv.status_code == 200
    assert db.session.get(Pet, pet_id).status == "in_process"

    rv = client.patch(f"/api/pets/{pet_id}/status", json={"status": "lost"}, headers=admin_headers)
    assert rv.status_code == 400
    assert "available" in rv.get_json()["error"]["details"]["valid_options"]

    rv = client.patch("/api/pets/999/status", json={"status": "available"}, headers=admin_headers)
    assert rv.status_code == 404


def test_delete_pet_removes_images(client, admin_headers):
    rv = client.post(
        "/api/pets",
        json=_pet_payload(images=[{"url": "https://cdn.example.com/a.jpg"}]),
        headers=admin_headers,
    )
    pet_id = rv.get_json()["data"]["id"]

    rv = client.delete(f"/api/pets/{pet_id}", headers=admin_headers)
    assert rv.status_code == 200
    assert db.session.get(Pet, pet_id) is None
    assert PetImage.query.filter_by(pet_id=pet_id).count() == 0


def test_delete_pet_with_adoption_history(client, admin_headers, make_pet, make_candidate):
    pet_id = make_pet()
    cand = make_candidate("c@example.com")
    db.session.add(Adoption(pet_id=pet_id, candidate_id=cand, status="returned"))
    db.session.commit()

    rv = client.delete(f"/api/pets/{pet_id}", headers=admin_headers)
    assert rv.status_code == 409
    assert db.session.get(Pet, pet_id) is not None


def test_pet_stats(client, admin_headers, make_pet):
    make_pet("A", type="dog")
    make_pet("B", type="cat", status="adopted")

    rv = client.get("/api/pets/stats", headers=admin_headers)
    data = rv.get_json()["data"]
    assert data["total"] == 2
    assert data["by_status"]["adopted"] == 1
    assert data["by_type"] == {"dog": 1, "cat": 1, "other": 0}


def test_null_weight_is_accepted(client, admin_headers, make_pet):
    rv = client.post("/api/pets", json=_pet_payload(weight=None), headers=admin_headers)
    assert rv.status_code == 201
    assert rv.get_json()["data"]["weight"] is None

    pet_id = make_pet("Thor", weight=20.0)
    rv = client.put(f"/api/pets/{pet_id}", json={"weight": None}, headers=admin_headers)
    assert rv.status_code == 200
    assert rv.get_json()["data"]["weight"] is None
