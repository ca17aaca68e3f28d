from conftest import auth, image_part, restaurant_fields


def test_create_restaurant(client, provision, storage):
    user = provision("auth0|owner")

    response = client.post(
        "/api/my/restaurant",
        data=restaurant_fields(),
        files=image_part(),
        headers=auth("auth0|owner"),
    )

    assert response.status_code == 201
    body = response.json()
    assert body["_id"]
    assert body["user"] == user["_id"]
    assert body["restaurantName"] == "Casa Manila"
    assert body["deliveryPrice"] == 50
    assert body["estimatedDeliveryTime"] == 30
    assert body["cuisines"] == ["Filipino", "Seafood"]
    assert [item["name"] for item in body["menuItems"]] == ["Adobo", "Sinigang"]
    assert body["menuItems"][1]["price"] == 220.5
    assert all(item["_id"] for item in body["menuItems"])
    assert body["imageUrl"].startswith("http://images.test/")
    assert body["lastUpdated"]
    assert len(storage.images) == 1


def test_second_restaurant_is_conflict(client, create_restaurant):
    create_restaurant("auth0|owner")

    response = client.post(
        "/api/my/restaurant",
        data=restaurant_fields(name="Another"),
        files=image_part(),
        headers=auth("auth0|owner"),
    )

    assert response.status_code == 409
    assert response.json() == {"message": "User restaurant already exists"}


def test_create_requires_image(client, provision):
    provision("auth0|owner")

    response = client.post(
        "/api/my/restaurant",
        data=restaurant_fields(),
        headers=auth("auth0|owner"),
    )

    assert response.status_code == 400
    assert response.json()["message"] == "Image file is required"


def test_create_rejects_non_image_upload(client, provision):
    provision("auth0|owner")

    response = client.post(
        "/api/my/restaurant",
        data=restaurant_fields(),
        files=image_part(content_type="text/plain", data=b"hello"),
        headers=auth("auth0|owner"),
    )

    assert response.status_code == 400


def test_create_rejects_oversized_image(client, provision, settings):
    provision("auth0|owner")

    response = client.post(
        "/api/my/restaurant",
        data=restaurant_fields(),
        files=image_part(data=b"\x00" * (settings.max_image_bytes + 1)),
        headers=auth("auth0|owner"),
    )

    assert response.status_code == 400


def test_create_validates_fields(client, provision):
    provision("auth0|owner")

    response = client.post(
        "/api/my/restaurant",
        data=restaurant_fields(cuisines=(), delivery_price="abc"),
        files=image_part(),
        headers=auth("auth0|owner"),
    )

    assert response.status_code == 400
    body = response.json()
    fields = {error["loc"][0] for error in body["errors"]}
    assert {"cuisines", "deliveryPrice"} <= fields


def test_create_without_token_is_401(client):
    response = client.post(
        "/api/my/restaurant",
        data=restaurant_fields(),
        files=image_part(),
    )

    assert response.status_code == 401


def test_image_upload_failure_is_500(client, provision, storage):
    provision("auth0|owner")
    storage.fail_uploads = True

    response = client.post(
        "/api/my/restaurant",
        data=restaurant_fields(),
        files=image_part(),
        headers=auth("auth0|owner"),
    )

    assert response.status_code == 500
    assert client.get("/api/my/restaurant", headers=auth("auth0|owner")).status_code == 404


def test_get_my_restaurant(client, create_restaurant):
    created = create_restaurant("auth0|owner")

    response = client.get("/api/my/restaurant", headers=auth("auth0|owner"))

    assert response.status_code == 200
    body = response.json()
    assert body["_id"] == created["_id"]
    assert body["menuItems"] == created["menuItems"]
    assert body["cuisines"] == created["cuisines"]


def test_get_my_restaurant_when_none(client, provision):
    provision("auth0|owner")

    response = client.get("/api/my/restaurant", headers=auth("auth0|owner"))

    assert response.status_code == 404
    assert response.json() == {"message": "Restaurant not found"}


def test_update_overwrites_fields_and_keeps_menu_ids(client, create_restaurant):
    created = create_restaurant("auth0|owner")
    adobo_id = created["menuItems"][0]["_id"]
    sinigang_id = created["menuItems"][1]["_id"]

    response = client.put(
        "/api/my/restaurant",
        data=restaurant_fields(
            name="Casa Cebu",
            city="Cebu",
            cuisines=("Filipino",),
            menu=(("Adobo", 200), ("Lechon", 450)),
            menu_ids=(adobo_id, None),
        ),
        headers=auth("auth0|owner"),
    )

    assert response.status_code == 200
    body = response.json()
    assert body["_id"] == created["_id"]
    assert body["restaurantName"] == "Casa Cebu"
    assert body["city"] == "Cebu"
    assert body["cuisines"] == ["Filipino"]
    assert body["menuItems"][0] == {"_id": adobo_id, "name": "Adobo", "price": 200}
    assert body["menuItems"][1]["name"] == "Lechon"
    assert body["menuItems"][1]["_id"] not in (adobo_id, sinigang_id)
    assert body["imageUrl"] == created["imageUrl"]
    assert body["lastUpdated"]


def test_update_replaces_image_when_sent(client, create_restaurant, storage):
    created = create_restaurant("auth0|owner")

    response = client.put(
        "/api/my/restaurant",
        data=restaurant_fields(),
        files=image_part(content_type="image/jpeg"),
        headers=auth("auth0|owner"),
    )

    assert response.status_code == 200
    assert response.json()["imageUrl"] != created["imageUrl"]
    assert len(storage.images) == 2


def test_update_without_restaurant_is_404(client, provision):
    provision("auth0|owner")

    response = client.put(
        "/api/my/restaurant",
        data=restaurant_fields(),
        headers=auth("auth0|owner"),
    )

    assert response.status_code == 404


def test_public_restaurant_detail(client, create_restaurant):
    created = create_restaurant("auth0|owner")

    response = client.get(f"/api/restaurant/{created['_id']}")

    assert response.status_code == 200
    assert response.json()["restaurantName"] == "Casa Manila"


def test_public_restaurant_detail_unknown(client):
    response = client.get("/api/restaurant/doesnotexist")

    assert response.status_code == 404
    assert response.json() == {"message": "Restaurant not found"}
