"""Category rules shared by the admin pages and the JSON API.

Helpers here change the session but never commit; callers decide when the
unit of work ends, the same way the views commit after their own changes.
"""

from __future__ import annotations

import re
import unicodedata
from typing import Any, Dict, List, Mapping, Optional

from ..constants import HANDLE_MAX_LENGTH
from ..extensions import db
from ..models import Category
from ..utils.category_tree import HierarchyNode, build_category_hierarchy


TRUE_VALUES = {"1", "true", "on", "yes", "y", "si", "sí"}
PARENT_KEYS = ("parent_category_id", "parent_id", "parent")
RANK_KEYS = ("rank", "position")
TEXT_FIELDS = ("description", "meta_title", "meta_description", "meta_keywords")


class CategoryError(ValueError):
    """Raised when submitted category data breaks a catalogue rule."""


def slugify(value: str) -> str:
    normalized = unicodedata.normalize("NFKD", value or "")
    ascii_value = normalized.encode("ascii", "ignore").decode("ascii").lower()
    slug = re.sub(r"[^a-z0-9]+", "-", ascii_value).strip("-")
    return slug[:HANDLE_MAX_LENGTH].strip("-")


def read_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    return str(value).strip().lower() in TRUE_VALUES


def active_categories():
    return Category.query.filter_by(is_deleted=False)


def get_category_or_404(category_id: int) -> Category:
    return active_categories().filter_by(id=category_id).first_or_404()


def load_category_hierarchy() -> List[HierarchyNode]:
    # id order is creation order, which is the tie-break for equal ranks
    return build_category_hierarchy(active_categories().order_by(Category.id).all())


def root_categories(exclude_id: Optional[int] = None) -> List[Category]:
    """Categories that may be chosen as a parent."""

    return [
        node["category"]
        for node in load_category_hierarchy()
        if node["category"].parent_category_id is None and node["category"].id != exclude_id
    ]


def filter_categories(
    active: Optional[bool] = None,
    visible: Optional[bool] = None,
    parent_id: Optional[int] = None,
    search: Optional[str] = None,
):
    query = active_categories()
    if active is not None:
        query = query.filter(Category.is_active.is_(active))
    if visible is not None:
        query = query.filter(Category.is_internal.is_(not visible))
    if parent_id is not None:
        query = query.filter(Category.parent_category_id == parent_id)
    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(
            db.or_(Category.name.ilike(pattern), Category.handle.ilike(pattern))
        )
    return query.order_by(Category.rank, Category.id)


def create_category(data: Mapping[str, Any]) -> Category:
    values = _clean_values(data, partial=False)
    parent_id = values.get("parent_category_id")
    _check_parent(None, parent_id)
    handle = values.get("handle") or slugify(values["name"]) or "categoria"
    _check_handle_available(handle, None)

    category = Category(
        name=values["name"],
        handle=handle,
        parent_category_id=parent_id,
        rank=values["rank"] if "rank" in values else _next_rank(parent_id),
        is_active=values.get("is_active", True),
        is_internal=values.get("is_internal", False),
    )
    for field in TEXT_FIELDS:
        setattr(category, field, values.get(field))
    db.session.add(category)
    db.session.flush()
    return category


def update_category(category: Category, data: Mapping[str, Any]) -> Category:
    values = _clean_values(data, partial=True)
    if "parent_category_id" in values:
        parent_id = values["parent_category_id"]
        _check_parent(category, parent_id)
        if parent_id != category.parent_category_id and "rank" not in values:
            values["rank"] = _next_rank(parent_id, exclude_id=category.id)
        category.parent_category_id = parent_id
    if "handle" in values:
        handle = values["handle"] or slugify(values.get("name", category.name)) or "categoria"
        _check_handle_available(handle, category.id)
        category.handle = handle
    for field in ("name", "rank", "is_active", "is_internal") + TEXT_FIELDS:
        if field in values:
            setattr(category, field, values[field])
    return category


def delete_category(category: Category) -> int:
    """Soft delete ``category`` and promote its children to roots.

    Returns the number of promoted children.
    """

    children = _children_of(category.id)
    first_rank = _next_rank(None, exclude_id=category.id)
    for offset, child in enumerate(children):
        child.parent_category_id = None
        child.rank = first_rank + offset
    category.is_deleted = True
    return len(children)


def set_active(category: Category, active: bool) -> Category:
    category.is_active = bool(active)
    return category


def set_visible(category: Category, visible: bool) -> Category:
    category.is_internal = not visible
    return category


def move_category(category: Category, offset: int) -> bool:
    """Swap ``category`` with the sibling ``offset`` places away in display order.

    Siblings are renumbered ``0..n-1`` first so duplicated ranks cannot make the
    swap a no-op. Returns ``False`` when the category is already at the edge.
    """

    siblings = _siblings_in_order(category.parent_category_id)
    index = next(i for i, item in enumerate(siblings) if item.id == category.id)
    target = index + offset
    if target < 0 or target >= len(siblings):
        return False
    siblings[index], siblings[target] = siblings[target], siblings[index]
    for rank, item in enumerate(siblings):
        item.rank = rank
    return True


def duplicate_category(category: Category) -> Category:
    """Copy ``category`` (without its children) right after it among its siblings."""

    handle = _free_copy_handle(category.handle)
    copy = Category(
        name=category.name,
        handle=handle,
        parent_category_id=category.parent_category_id,
        is_active=category.is_active,
        is_internal=category.is_internal,
    )
    for field in TEXT_FIELDS:
        setattr(copy, field, getattr(category, field))

    siblings = _siblings_in_order(category.parent_category_id)
    position = next(i for i, item in enumerate(siblings) if item.id == category.id)
    siblings.insert(position + 1, copy)
    for rank, item in enumerate(siblings):
        item.rank = rank
    db.session.add(copy)
    db.session.flush()
    return copy


def serialize_category(category: Category) -> Dict[str, Any]:
    return {
        "id": category.id,
        "name": category.name,
        "handle": category.handle,
        "description": category.description,
        "parent_category_id": category.parent_category_id,
        "rank": category.rank,
        "is_active": bool(category.is_active),
        "is_internal": bool(category.is_internal),
        "meta_title": category.meta_title,
        "meta_description": category.meta_description,
        "meta_keywords": category.meta_keywords,
        "created_at": category.created_at.isoformat() if category.created_at else None,
        "updated_at": category.updated_at.isoformat() if category.updated_at else None,
    }


def _clean_values(data: Mapping[str, Any], partial: bool) -> Dict[str, Any]:
    values: Dict[str, Any] = {}

    if "name" in data or not partial:
        name = str(data.get("name") or "").strip()
        if not name:
            raise CategoryError("El nombre de la categoría es requerido")
        values["name"] = name

    if "handle" in data:
        values["handle"] = slugify(str(data.get("handle") or ""))

    parent_key = next((key for key in PARENT_KEYS if key in data), None)
    if parent_key is not None:
        values["parent_category_id"] = _parse_optional_id(data.get(parent_key))

    rank_key = next((key for key in RANK_KEYS if key in data), None)
    if rank_key is not None and data.get(rank_key) not in (None, ""):
        try:
            values["rank"] = int(data.get(rank_key))
        except (TypeError, ValueError) as exc:
            raise CategoryError("El orden debe ser un número entero") from exc

    if "is_active" in data or "active" in data:
        values["is_active"] = read_bool(data.get("is_active", data.get("active")))
    if "is_internal" in data:
        values["is_internal"] = read_bool(data.get("is_internal"))
    elif "visible" in data:
        values["is_internal"] = not read_bool(data.get("visible"))

    for field in TEXT_FIELDS:
        if field in data:
            values[field] = str(data.get(field) or "").strip() or None
    return values


def _parse_optional_id(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise CategoryError("Categoría padre inválida") from exc


def _check_parent(category: Optional[Category], parent_id: Optional[int]) -> None:
    if parent_id is None:
        return
    if category is not None and parent_id == category.id:
        raise CategoryError("Una categoría no puede ser su propia categoría padre")
    parent = active_categories().filter_by(id=parent_id).first()
    if parent is None:
        raise CategoryError("La categoría padre no existe")
    if parent.parent_category_id is not None:
        raise CategoryError("Solo se permiten dos niveles de categorías")
    if category is not None and _children_of(category.id):
        raise CategoryError("Una categoría con subcategorías no puede tener categoría padre")


def _check_handle_available(handle: str, category_id: Optional[int]) -> None:
    query = active_categories().filter_by(handle=handle)
    if category_id is not None:
        query = query.filter(Category.id != category_id)
    if query.first() is not None:
        raise CategoryError(f"El manejo /{handle} ya está en uso")


def _free_copy_handle(handle: str) -> str:
    base = f"{handle}-copy"[:HANDLE_MAX_LENGTH]
    candidate = base
    counter = 2
    while active_categories().filter_by(handle=candidate).first() is not None:
        suffix = f"-{counter}"
        candidate = f"{base[:HANDLE_MAX_LENGTH - len(suffix)]}{suffix}"
        counter += 1
    return candidate


def _children_of(category_id: int) -> List[Category]:
    return (
        active_categories()
        .filter_by(parent_category_id=category_id)
        .order_by(Category.rank, Category.id)
        .all()
    )


def _siblings_in_order(parent_id: Optional[int]) -> List[Category]:
    return (
        active_categories()
        .filter(_parent_clause(parent_id))
        .order_by(Category.rank, Category.id)
        .all()
    )


def _next_rank(parent_id: Optional[int], exclude_id: Optional[int] = None) -> int:
    ranks = [
        item.rank or 0
        for item in _siblings_in_order(parent_id)
        if item.id != exclude_id
    ]
    return max(ranks) + 1 if ranks else 0


def _parent_clause(parent_id: Optional[int]):
    if parent_id is None:
        return Category.parent_category_id.is_(None)
    return Category.parent_category_id == parent_id
