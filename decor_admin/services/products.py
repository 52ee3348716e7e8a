"""Products and their images."""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Mapping, Optional

from ..extensions import db
from ..models import Category, Image, Product


class CatalogError(ValueError):
    """Raised when product or image data cannot be stored."""


def active_products():
    return Product.query.filter_by(is_deleted=False)


def active_images():
    return Image.query.filter_by(is_deleted=False)


def parse_price(value: Any) -> Decimal:
    """Read a price, falling back to zero for anything unusable."""

    if value is None or isinstance(value, bool):
        return Decimal("0")
    try:
        price = Decimal(str(value).strip())
    except InvalidOperation:
        return Decimal("0")
    if not price.is_finite():
        return Decimal("0")
    return price.quantize(Decimal("0.01"))


def create_image(data: Mapping[str, Any]) -> Image:
    url = str(data.get("url") or "").strip()
    if not url:
        raise CatalogError("La URL de la imagen es requerida")
    image = Image(title=str(data.get("title") or "").strip() or "Untitled", url=url)
    db.session.add(image)
    db.session.flush()
    return image


def delete_image(image: Image) -> None:
    for product in active_products().filter_by(image_id=image.id):
        product.image_id = None
    image.is_deleted = True


def create_product(data: Mapping[str, Any]) -> Product:
    name = str(data.get("name") or "").strip()
    if not name:
        raise CatalogError("El nombre del producto es requerido")
    product = Product(
        name=name,
        description=str(data.get("description") or "").strip() or None,
        price=parse_price(data.get("price")),
        image_id=_resolve_image_id(data.get("image_id", data.get("imageId"))),
        category_id=_resolve_category_id(data.get("category_id")),
    )
    db.session.add(product)
    db.session.flush()
    return product


def update_product(product: Product, data: Mapping[str, Any]) -> Product:
    if "name" in data:
        name = str(data.get("name") or "").strip()
        if not name:
            raise CatalogError("El nombre del producto es requerido")
        product.name = name
    if "description" in data:
        product.description = str(data.get("description") or "").strip() or None
    if "price" in data:
        product.price = parse_price(data.get("price"))
    if "image_id" in data or "imageId" in data:
        product.image_id = _resolve_image_id(data.get("image_id", data.get("imageId")))
    if "category_id" in data:
        product.category_id = _resolve_category_id(data.get("category_id"))
    return product


def delete_product(product: Product) -> None:
    product.is_deleted = True


def serialize_image(image: Image) -> Dict[str, Any]:
    return {"id": image.id, "title": image.title, "url": image.url}


def serialize_product(product: Product) -> Dict[str, Any]:
    return {
        "id": product.id,
        "name": product.name,
        "description": product.description,
        "price": float(product.price or 0),
        "image_id": product.image_id,
        "image_url": product.image.url if product.image and not product.image.is_deleted else None,
        "category_id": product.category_id,
    }


def _resolve_image_id(value: Any) -> Optional[int]:
    image_id = _parse_optional_id(value, "Imagen inválida")
    if image_id is not None and active_images().filter_by(id=image_id).first() is None:
        raise CatalogError("La imagen no existe")
    return image_id


def _resolve_category_id(value: Any) -> Optional[int]:
    category_id = _parse_optional_id(value, "Categoría inválida")
    if category_id is not None and (
        Category.query.filter_by(id=category_id, is_deleted=False).first() is None
    ):
        raise CatalogError("La categoría no existe")
    return category_id


def _parse_optional_id(value: Any, message: str) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise CatalogError(message) from exc
