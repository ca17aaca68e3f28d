"""
Multipart Form Parsing

Restaurant create/update requests arrive as multipart/form-data because
they carry an image. Array fields use the bracket notation browsers produce
with FormData:

    cuisines[0]=Italian
    menuItems[0][name]=Margherita
    menuItems[0][price]=350
    menuItems[0][_id]=9f1c...        (updates only)
    imageFile=<binary>
"""

import re
from dataclasses import dataclass
from typing import Any, Optional

from fastapi.encoders import jsonable_encoder
from pydantic import ValidationError as PydanticValidationError
from starlette.datastructures import FormData, UploadFile

from app.core.exceptions import ValidationError
from app.schemas import RestaurantForm

CUISINE_KEY = re.compile(r"^cuisines(?:\[(\d*)\])?$")
MENU_ITEM_KEY = re.compile(r"^menuItems\[(\d+)\]\[(\w+)\]$")
SCALAR_FIELDS = (
    "restaurantName",
    "city",
    "country",
    "deliveryPrice",
    "estimatedDeliveryTime",
)


@dataclass
class ImageFile:
    """An uploaded image that passed the size and type checks."""
    data: bytes
    content_type: str
    filename: Optional[str] = None


def restaurant_form_to_dict(form: FormData) -> dict[str, Any]:
    """Collapse bracketed multipart keys into nested lists."""
    data: dict[str, Any] = {}
    cuisines: list[tuple[int, str]] = []
    menu_items: dict[int, dict[str, Any]] = {}

    for position, (key, value) in enumerate(form.multi_items()):
        if isinstance(value, UploadFile):
            continue

        if key in SCALAR_FIELDS:
            data[key] = value
            continue

        match = CUISINE_KEY.match(key)
        if match:
            index = int(match.group(1)) if match.group(1) else len(form) + position
            cuisines.append((index, value))
            continue

        match = MENU_ITEM_KEY.match(key)
        if match:
            menu_items.setdefault(int(match.group(1)), {})[match.group(2)] = value

    if cuisines:
        data["cuisines"] = [value for _, value in sorted(cuisines)]
    if menu_items:
        data["menuItems"] = [menu_items[index] for index in sorted(menu_items)]

    return data


def parse_restaurant_form(form: FormData) -> RestaurantForm:
    """
    Validate restaurant fields.

    Raises:
        ValidationError: With pydantic's error list attached
    """
    try:
        return RestaurantForm.model_validate(restaurant_form_to_dict(form))
    except PydanticValidationError as e:
        raise ValidationError(
            "Invalid restaurant data",
            errors=jsonable_encoder(e.errors(include_url=False)),
        )


async def read_image(
    value: Any,
    max_bytes: int,
    required: bool,
) -> Optional[ImageFile]:
    """
    Read the ``imageFile`` part.

    Returns:
        ImageFile, or None when no image was sent and none is required

    Raises:
        ValidationError: Missing required image, wrong type or too large
    """
    if not isinstance(value, UploadFile) or not value.filename:
        if required:
            raise ValidationError("Image file is required")
        return None

    content_type = value.content_type or ""
    if not content_type.startswith("image/"):
        raise ValidationError("Image file must be an image")

    data = await value.read()
    if len(data) > max_bytes:
        raise ValidationError(
            f"Image file must be {max_bytes // (1024 * 1024)}MB or smaller"
        )

    return ImageFile(data=data, content_type=content_type, filename=value.filename)
