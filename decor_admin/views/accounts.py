from flask import Blueprint, current_app, flash, redirect, render_template, request, url_for
from flask_login import current_user, login_required

from ..constants import MIN_PASSWORD_LENGTH, USER_LEVELS
from ..extensions import db
from ..models import User
from ..utils.pagination import get_page_args


bp = Blueprint("accounts", __name__, url_prefix="/accounts")


def admin_required() -> bool:
    if not current_user.is_admin:
        flash("Solo los administradores pueden gestionar cuentas", "danger")
        return False
    return True


def active_users():
    return User.query.filter_by(is_deleted=False)


@bp.route("/")
@login_required
def list_accounts():
    if not admin_required():
        return redirect(url_for("dashboard.index"))
    page, per_page = get_page_args()
    pagination = active_users().order_by(User.username).paginate(
        page=page, per_page=per_page, error_out=False
    )
    return render_template(
        "accounts/list.html", users=pagination.items, pagination=pagination, levels=USER_LEVELS
    )


@bp.route("/create", methods=["GET", "POST"])
@login_required
def create_account():
    if not admin_required():
        return redirect(url_for("dashboard.index"))
    if request.method == "GET":
        return render_template("accounts/create.html", levels=USER_LEVELS)

    username = request.form.get("username", "").strip()
    password = request.form.get("password", "")
    level = request.form.get("level", "operator")
    if not username or not password:
        flash("El usuario y la contraseña son obligatorios", "danger")
        return redirect(url_for("accounts.create_account"))
    if len(password) < MIN_PASSWORD_LENGTH:
        flash(f"La contraseña debe tener al menos {MIN_PASSWORD_LENGTH} caracteres", "danger")
        return redirect(url_for("accounts.create_account"))
    if level not in USER_LEVELS:
        flash("Nivel de acceso inválido", "danger")
        return redirect(url_for("accounts.create_account"))
    if User.query.filter_by(username=username).first():
        flash("El usuario ya existe", "danger")
        return redirect(url_for("accounts.create_account"))
    user = User(username=username, level=level)
    user.set_password(password)
    db.session.add(user)
    db.session.commit()
    current_app.logger.info("Account %s (%s) created by %s", username, level, current_user.username)
    flash("Cuenta creada", "success")
    return redirect(url_for("accounts.list_accounts"))


@bp.route("/<int:user_id>", methods=["POST"])
@login_required
def update_account(user_id: int):
    if not admin_required():
        return redirect(url_for("dashboard.index"))
    user = active_users().filter_by(id=user_id).first_or_404()
    level = request.form.get("level", user.level)
    if level not in USER_LEVELS:
        flash("Nivel de acceso inválido", "danger")
        return redirect(url_for("accounts.list_accounts"))
    user.level = level
    password = request.form.get("password")
    if password:
        if len(password) < MIN_PASSWORD_LENGTH:
            flash(f"La contraseña debe tener al menos {MIN_PASSWORD_LENGTH} caracteres", "danger")
            return redirect(url_for("accounts.list_accounts"))
        user.set_password(password)
    db.session.commit()
    current_app.logger.info("Account %s updated by %s", user.username, current_user.username)
    flash("Cuenta actualizada", "success")
    return redirect(url_for("accounts.list_accounts"))


@bp.route("/<int:user_id>/delete", methods=["POST"])
@login_required
def delete_account(user_id: int):
    if not admin_required():
        return redirect(url_for("dashboard.index"))
    if current_user.id == user_id:
        flash("No puedes eliminar tu propia cuenta", "danger")
        return redirect(url_for("accounts.list_accounts"))
    user = active_users().filter_by(id=user_id).first_or_404()
    user.is_deleted = True
    db.session.commit()
    current_app.logger.info("Account %s deleted by %s", user.username, current_user.username)
    flash("Cuenta eliminada", "success")
    return redirect(url_for("accounts.list_accounts"))
