"""JSON endpoints used by the storefront and by scripted catalogue updates."""

from typing import Any, Dict, Optional

from flask import Blueprint, current_app, jsonify, request
from flask_login import current_user, login_required
from werkzeug.exceptions import HTTPException

from ..extensions import db
from ..models import Image, Product
from ..services import categories as category_service
from ..services import products as product_service
from ..services.categories import CategoryError
from ..services.products import CatalogError
from ..utils.category_tree import ExpansionState, build_category_rows
from ..utils.pagination import get_page_args, serialize_page


bp = Blueprint("api", __name__, url_prefix="/api")


class ApiError(Exception):
    def __init__(self, message: str, status: int = 400) -> None:
        super().__init__(message)
        self.message = message
        self.status = status


@bp.errorhandler(ApiError)
def handle_api_error(exc: ApiError):
    return jsonify({"success": False, "message": exc.message}), exc.status


@bp.errorhandler(HTTPException)
def handle_http_error(exc: HTTPException):
    return jsonify({"success": False, "message": exc.description}), exc.code


# Categories


@bp.route("/categories")
@login_required
def list_categories():
    page, per_page = get_page_args(remember=False)
    query = category_service.filter_categories(
        active=_optional_bool("active"),
        visible=_optional_bool("visible"),
        parent_id=request.args.get("parent_id", type=int),
        search=request.args.get("search") or request.args.get("q"),
    )
    pagination = query.paginate(page=page, per_page=per_page, error_out=False)
    return jsonify(serialize_page(pagination, category_service.serialize_category))


@bp.route("/categories/tree")
@login_required
def category_tree():
    expansion = ExpansionState.from_query(request.args.get("expanded"))
    rows = build_category_rows(category_service.load_category_hierarchy(), expansion)
    payload = []
    for row in rows:
        item: Dict[str, Any] = {key: value for key, value in row.items() if key != "category"}
        item["parent_category_id"] = row["category"].parent_category_id
        payload.append(item)
    return jsonify({"rows": payload, "expanded": expansion.to_query()})


@bp.route("/categories/<int:category_id>")
@login_required
def get_category(category_id: int):
    category = category_service.get_category_or_404(category_id)
    return jsonify(category_service.serialize_category(category))


@bp.route("/categories", methods=["POST"])
@login_required
def create_category():
    try:
        category = category_service.create_category(_json_body())
    except CategoryError as exc:
        db.session.rollback()
        raise ApiError(str(exc)) from exc
    db.session.commit()
    current_app.logger.info("Category %s created via API by %s", category.id, current_user.username)
    return jsonify(category_service.serialize_category(category)), 201


@bp.route("/categories/<int:category_id>", methods=["PUT", "PATCH"])
@login_required
def update_category(category_id: int):
    category = category_service.get_category_or_404(category_id)
    try:
        category_service.update_category(category, _json_body())
    except CategoryError as exc:
        db.session.rollback()
        raise ApiError(str(exc)) from exc
    db.session.commit()
    current_app.logger.info("Category %s updated via API by %s", category.id, current_user.username)
    return jsonify(category_service.serialize_category(category))


@bp.route("/categories/<int:category_id>", methods=["DELETE"])
@login_required
def delete_category(category_id: int):
    if not current_user.is_admin:
        raise ApiError("Permisos insuficientes", 403)
    category = category_service.get_category_or_404(category_id)
    category_service.delete_category(category)
    db.session.commit()
    current_app.logger.info("Category %s deleted via API by %s", category.id, current_user.username)
    return "", 204


@bp.route("/categories/<int:category_id>/active", methods=["POST"])
@login_required
def set_category_active(category_id: int):
    category = category_service.get_category_or_404(category_id)
    category_service.set_active(category, category_service.read_bool(_json_body().get("active", True)))
    db.session.commit()
    return jsonify(category_service.serialize_category(category))


@bp.route("/categories/<int:category_id>/visible", methods=["POST"])
@login_required
def set_category_visible(category_id: int):
    category = category_service.get_category_or_404(category_id)
    category_service.set_visible(category, category_service.read_bool(_json_body().get("visible", True)))
    db.session.commit()
    return jsonify(category_service.serialize_category(category))


@bp.route("/categories/<int:category_id>/move-up", methods=["POST"])
@login_required
def move_category_up(category_id: int):
    return _move_category(category_id, -1)


@bp.route("/categories/<int:category_id>/move-down", methods=["POST"])
@login_required
def move_category_down(category_id: int):
    return _move_category(category_id, 1)


@bp.route("/categories/<int:category_id>/duplicate", methods=["POST"])
@login_required
def duplicate_category(category_id: int):
    category = category_service.get_category_or_404(category_id)
    copy = category_service.duplicate_category(category)
    db.session.commit()
    current_app.logger.info(
        "Category %s duplicated via API as %s by %s", category.id, copy.id, current_user.username
    )
    return jsonify(category_service.serialize_category(copy)), 201


def _move_category(category_id: int, offset: int):
    category = category_service.get_category_or_404(category_id)
    moved = category_service.move_category(category, offset)
    if moved:
        db.session.commit()
    return jsonify({"success": True, "moved": moved, "rank": category.rank})


# Images


@bp.route("/images")
@login_required
def list_images():
    images = product_service.active_images().order_by(Image.id).all()
    return jsonify([product_service.serialize_image(image) for image in images])


@bp.route("/images", methods=["POST"])
@login_required
def create_image():
    try:
        image = product_service.create_image(_json_body())
    except CatalogError as exc:
        raise ApiError(str(exc)) from exc
    db.session.commit()
    current_app.logger.info("Image %s created by %s", image.id, current_user.username)
    return jsonify(product_service.serialize_image(image)), 201


@bp.route("/images/<int:image_id>", methods=["DELETE"])
@login_required
def delete_image(image_id: int):
    image = product_service.active_images().filter_by(id=image_id).first()
    if image is None:
        raise ApiError("Imagen no encontrada", 404)
    product_service.delete_image(image)
    db.session.commit()
    current_app.logger.info("Image %s deleted by %s", image_id, current_user.username)
    return "", 204


# Products


@bp.route("/products")
@login_required
def list_products():
    products = product_service.active_products().order_by(Product.id).all()
    return jsonify([product_service.serialize_product(product) for product in products])


@bp.route("/products", methods=["POST"])
@login_required
def create_product():
    try:
        product = product_service.create_product(_json_body())
    except CatalogError as exc:
        db.session.rollback()
        raise ApiError(str(exc)) from exc
    db.session.commit()
    current_app.logger.info("Product %s created by %s", product.id, current_user.username)
    return jsonify(product_service.serialize_product(product)), 201


@bp.route("/products/<int:product_id>", methods=["PUT", "PATCH"])
@login_required
def update_product(product_id: int):
    product = _get_product(product_id)
    try:
        product_service.update_product(product, _json_body())
    except CatalogError as exc:
        db.session.rollback()
        raise ApiError(str(exc)) from exc
    db.session.commit()
    current_app.logger.info("Product %s updated by %s", product.id, current_user.username)
    return jsonify(product_service.serialize_product(product))


@bp.route("/products/<int:product_id>", methods=["DELETE"])
@login_required
def delete_product(product_id: int):
    product = _get_product(product_id)
    product_service.delete_product(product)
    db.session.commit()
    current_app.logger.info("Product %s deleted by %s", product_id, current_user.username)
    return "", 204


def _get_product(product_id: int):
    product = product_service.active_products().filter_by(id=product_id).first()
    if product is None:
        raise ApiError("Producto no encontrado", 404)
    return product


def _json_body() -> Dict[str, Any]:
    payload = request.get_json(silent=True)
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ApiError("Se esperaba un objeto JSON")
    return payload


def _optional_bool(name: str) -> Optional[bool]:
    value = request.args.get(name)
    if value is None or value == "":
        return None
    return category_service.read_bool(value)
