from flask import Blueprint, render_template
from flask_login import login_required
from sqlalchemy import func

from ..extensions import db
from ..models import Category, Image, Product


bp = Blueprint("dashboard", __name__)


@bp.route("/")
@login_required
def index():
    category_counts = dict(
        db.session.query(Category.is_active, func.count(Category.id))
        .filter(Category.is_deleted.is_(False))
        .group_by(Category.is_active)
        .all()
    )
    root_count = (
        Category.query.filter_by(is_deleted=False)
        .filter(Category.parent_category_id.is_(None))
        .count()
    )
    return render_template(
        "dashboard.html",
        active_categories=category_counts.get(True, 0),
        inactive_categories=category_counts.get(False, 0),
        root_categories=root_count,
        product_count=Product.query.filter_by(is_deleted=False).count(),
        image_count=Image.query.filter_by(is_deleted=False).count(),
    )
