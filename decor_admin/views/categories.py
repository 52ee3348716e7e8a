from typing import Any, Dict, List, Optional

from flask import Blueprint, current_app, flash, redirect, render_template, request, url_for
from flask_login import current_user, login_required

from ..extensions import db
from ..services import categories as category_service
from ..services.categories import CategoryError
from ..utils.category_tree import CategoryRow, ExpansionState, build_category_rows


bp = Blueprint("categories", __name__, url_prefix="/categories")

FORM_FIELDS = (
    "name",
    "handle",
    "parent_category_id",
    "rank",
    "description",
    "meta_title",
    "meta_description",
    "meta_keywords",
)


@bp.route("/")
@login_required
def list_categories():
    expansion = ExpansionState.from_query(request.args.get("expanded"))
    category_rows = build_category_rows(category_service.load_category_hierarchy(), expansion)
    return render_template(
        "categories/list.html",
        category_rows=category_rows,
        toggle_urls=_build_toggle_urls(category_rows, expansion),
        expanded=expansion.to_query(),
    )


@bp.route("/create", methods=["GET", "POST"])
@login_required
def create_category():
    if request.method == "GET":
        return render_template(
            "categories/create.html",
            parent_options=category_service.root_categories(),
            form={"is_active": True, "visible": True},
        )

    try:
        category = category_service.create_category(_read_form())
    except CategoryError as exc:
        flash(str(exc), "danger")
        return render_template(
            "categories/create.html",
            parent_options=category_service.root_categories(),
            form=request.form,
        )
    db.session.commit()
    current_app.logger.info(
        "Category %s (/%s) created by %s", category.id, category.handle, current_user.username
    )
    flash("Categoría creada correctamente", "success")
    return redirect(url_for("categories.list_categories"))


@bp.route("/<int:category_id>/edit")
@login_required
def edit_category(category_id: int):
    category = category_service.get_category_or_404(category_id)
    return render_template(
        "categories/edit.html",
        category=category,
        parent_options=category_service.root_categories(exclude_id=category.id),
    )


@bp.route("/<int:category_id>/update", methods=["POST"])
@login_required
def update_category(category_id: int):
    category = category_service.get_category_or_404(category_id)
    try:
        category_service.update_category(category, _read_form())
    except CategoryError as exc:
        db.session.rollback()
        flash(str(exc), "danger")
        return redirect(url_for("categories.edit_category", category_id=category_id))
    db.session.commit()
    current_app.logger.info("Category %s updated by %s", category.id, current_user.username)
    flash("Categoría actualizada", "success")
    return redirect(url_for("categories.list_categories"))


@bp.route("/<int:category_id>/delete", methods=["POST"])
@login_required
def delete_category(category_id: int):
    if not current_user.is_admin:
        flash("Solo los administradores pueden eliminar categorías", "danger")
        return _back_to_list()
    category = category_service.get_category_or_404(category_id)
    promoted = category_service.delete_category(category)
    db.session.commit()
    current_app.logger.info(
        "Category %s deleted by %s (%d children promoted)",
        category.id,
        current_user.username,
        promoted,
    )
    flash("Categoría eliminada", "success")
    return _back_to_list()


@bp.route("/<int:category_id>/active", methods=["POST"])
@login_required
def toggle_active(category_id: int):
    category = category_service.get_category_or_404(category_id)
    category_service.set_active(category, not category.is_active)
    db.session.commit()
    current_app.logger.info(
        "Category %s active=%s set by %s", category.id, category.is_active, current_user.username
    )
    return _back_to_list()


@bp.route("/<int:category_id>/visible", methods=["POST"])
@login_required
def toggle_visible(category_id: int):
    category = category_service.get_category_or_404(category_id)
    category_service.set_visible(category, bool(category.is_internal))
    db.session.commit()
    current_app.logger.info(
        "Category %s internal=%s set by %s",
        category.id,
        category.is_internal,
        current_user.username,
    )
    return _back_to_list()


@bp.route("/<int:category_id>/move-up", methods=["POST"])
@login_required
def move_up(category_id: int):
    return _move(category_id, -1)


@bp.route("/<int:category_id>/move-down", methods=["POST"])
@login_required
def move_down(category_id: int):
    return _move(category_id, 1)


@bp.route("/<int:category_id>/duplicate", methods=["POST"])
@login_required
def duplicate_category(category_id: int):
    category = category_service.get_category_or_404(category_id)
    copy = category_service.duplicate_category(category)
    db.session.commit()
    current_app.logger.info(
        "Category %s duplicated as %s by %s", category.id, copy.id, current_user.username
    )
    flash(f"Categoría duplicada como /{copy.handle}", "success")
    return _back_to_list()


def _move(category_id: int, offset: int):
    category = category_service.get_category_or_404(category_id)
    if category_service.move_category(category, offset):
        db.session.commit()
        current_app.logger.info(
            "Category %s moved %s by %s",
            category.id,
            "up" if offset < 0 else "down",
            current_user.username,
        )
    else:
        flash("La categoría ya está en el extremo de la lista", "warning")
    return _back_to_list()


def _read_form() -> Dict[str, Any]:
    data: Dict[str, Any] = {field: request.form.get(field) for field in FORM_FIELDS}
    # unchecked checkboxes are not submitted at all
    data["is_active"] = "is_active" in request.form
    data["visible"] = "visible" in request.form
    return data


def _build_toggle_urls(rows: List[CategoryRow], expansion: ExpansionState) -> Dict[Any, str]:
    urls: Dict[Any, str] = {}
    for row in rows:
        if not row["is_parent"]:
            continue
        expanded = expansion.toggled(row["id"]).to_query()
        urls[row["id"]] = url_for("categories.list_categories", expanded=expanded or None)
    return urls


def _back_to_list():
    expanded: Optional[str] = request.form.get("expanded") or None
    return redirect(url_for("categories.list_categories", expanded=expanded))
