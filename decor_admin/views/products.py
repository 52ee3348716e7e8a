from flask import Blueprint, render_template, request
from flask_login import login_required

from ..models import Category, Product
from ..services.products import active_products
from ..utils.pagination import get_page_args


bp = Blueprint("products", __name__, url_prefix="/products")


@bp.route("/")
@login_required
def list_products():
    page, per_page = get_page_args()
    query = active_products()
    keyword = request.args.get("q", "").strip()
    if keyword:
        query = query.filter(Product.name.ilike(f"%{keyword}%"))
    category_id = request.args.get("category_id", type=int)
    if category_id:
        query = query.filter(Product.category_id == category_id)
    pagination = query.order_by(Product.id.desc()).paginate(
        page=page, per_page=per_page, error_out=False
    )
    categories = (
        Category.query.filter_by(is_deleted=False).order_by(Category.rank, Category.id).all()
    )
    return render_template(
        "products/list.html",
        products=pagination.items,
        pagination=pagination,
        categories=categories,
        keyword=keyword,
        category_id=category_id,
    )
