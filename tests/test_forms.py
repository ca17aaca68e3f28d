import io

import pytest
from starlette.datastructures import FormData, Headers, UploadFile

from app.core.exceptions import ValidationError
from app.forms import parse_restaurant_form, read_image, restaurant_form_to_dict


def make_upload(data: bytes, content_type: str, filename: str = "front.png") -> UploadFile:
    return UploadFile(
        file=io.BytesIO(data),
        filename=filename,
        headers=Headers({"content-type": content_type}),
    )


def test_bracketed_keys_become_lists():
    form = FormData([
        ("restaurantName", "Casa"),
        ("cuisines[1]", "Seafood"),
        ("cuisines[0]", "Filipino"),
        ("menuItems[1][name]", "Sinigang"),
        ("menuItems[0][name]", "Adobo"),
        ("menuItems[0][price]", "180"),
        ("menuItems[1][price]", "220"),
        ("menuItems[0][_id]", "abc"),
    ])

    data = restaurant_form_to_dict(form)

    assert data == {
        "restaurantName": "Casa",
        "cuisines": ["Filipino", "Seafood"],
        "menuItems": [
            {"name": "Adobo", "price": "180", "_id": "abc"},
            {"name": "Sinigang", "price": "220"},
        ],
    }


def test_repeated_cuisine_keys_keep_submission_order():
    form = FormData([("cuisines", "Thai"), ("cuisines", "Vegan"), ("cuisines[]", "Indian")])

    assert restaurant_form_to_dict(form)["cuisines"] == ["Thai", "Vegan", "Indian"]


def test_parse_restaurant_form_coerces_values():
    form = FormData([
        ("restaurantName", "Casa"),
        ("city", "Manila"),
        ("country", "Philippines"),
        ("deliveryPrice", "49.5"),
        ("estimatedDeliveryTime", "30"),
        ("cuisines[0]", "Filipino"),
        ("menuItems[0][name]", "Adobo"),
        ("menuItems[0][price]", "180"),
        ("menuItems[0][_id]", "abc"),
    ])

    parsed = parse_restaurant_form(form)

    assert parsed.delivery_price == 49.5
    assert parsed.estimated_delivery_time == 30
    assert parsed.cuisines == ["Filipino"]
    assert parsed.menu_items[0].id == "abc"
    assert parsed.menu_items[0].price == 180


def test_parse_restaurant_form_collects_errors():
    form = FormData([
        ("restaurantName", ""),
        ("city", "Manila"),
        ("country", "Philippines"),
        ("deliveryPrice", "-1"),
        ("estimatedDeliveryTime", "soon"),
        ("menuItems[0][name]", "Adobo"),
    ])

    with pytest.raises(ValidationError) as excinfo:
        parse_restaurant_form(form)

    locations = {tuple(error["loc"]) for error in excinfo.value.errors}
    assert ("restaurantName",) in locations
    assert ("deliveryPrice",) in locations
    assert ("estimatedDeliveryTime",) in locations
    assert ("cuisines",) in locations
    assert ("menuItems", 0, "price") in locations


async def test_read_image_accepts_images():
    image = await read_image(make_upload(b"png-bytes", "image/png"), max_bytes=100, required=True)

    assert image.data == b"png-bytes"
    assert image.content_type == "image/png"
    assert image.filename == "front.png"


async def test_read_image_optional_when_absent():
    assert await read_image(None, max_bytes=100, required=False) is None


async def test_read_image_required_when_absent():
    with pytest.raises(ValidationError, match="required"):
        await read_image(None, max_bytes=100, required=True)


async def test_read_image_rejects_other_types():
    with pytest.raises(ValidationError):
        await read_image(make_upload(b"%PDF", "application/pdf"), max_bytes=100, required=True)


async def test_read_image_rejects_large_files():
    with pytest.raises(ValidationError):
        await read_image(make_upload(b"x" * 101, "image/jpeg"), max_bytes=100, required=True)
