from urllib.parse import urlparse

from flask import Blueprint, current_app, flash, redirect, render_template, request, url_for
from flask_login import current_user, login_required, login_user, logout_user

from ..constants import MIN_PASSWORD_LENGTH
from ..extensions import db
from ..models import User


bp = Blueprint("auth", __name__)


def _next_url() -> str:
    """Return the ``next`` argument when it points inside this site."""

    target = (request.values.get("next") or "").strip()
    parts = urlparse(target)
    if not target.startswith("/") or target.startswith("//") or "\\" in target:
        return url_for("dashboard.index")
    if parts.scheme or parts.netloc:
        return url_for("dashboard.index")
    return target


@bp.route("/login", methods=["GET", "POST"])
def login():
    if current_user.is_authenticated:
        return redirect(_next_url())

    if request.method == "POST":
        username = request.form.get("username", "").strip()
        password = request.form.get("password", "")
        user = User.query.filter_by(username=username, is_deleted=False).first()
        if user and user.check_password(password):
            login_user(user)
            current_app.logger.info("User %s logged in", user.username)
            return redirect(_next_url())
        current_app.logger.warning("Failed login for %r", username)
        flash("Usuario o contraseña incorrectos", "danger")

    return render_template("auth/login.html")


@bp.route("/logout")
@login_required
def logout():
    logout_user()
    return redirect(url_for("auth.login"))


@bp.route("/change-password", methods=["GET", "POST"])
@login_required
def change_password():
    if request.method == "POST":
        current_password = request.form.get("current_password", "")
        new_password = request.form.get("new_password", "")
        confirm_password = request.form.get("confirm_password", "")

        if not current_password or not new_password or not confirm_password:
            flash("Completa todos los campos", "danger")
            return redirect(url_for("auth.change_password"))

        if not current_user.check_password(current_password):
            flash("La contraseña actual no es correcta", "danger")
            return redirect(url_for("auth.change_password"))

        if new_password != confirm_password:
            flash("Las contraseñas nuevas no coinciden", "danger")
            return redirect(url_for("auth.change_password"))

        if len(new_password) < MIN_PASSWORD_LENGTH:
            flash(f"La contraseña debe tener al menos {MIN_PASSWORD_LENGTH} caracteres", "danger")
            return redirect(url_for("auth.change_password"))

        current_user.set_password(new_password)
        db.session.commit()
        flash("Contraseña actualizada", "success")
        return redirect(url_for("dashboard.index"))

    return render_template("auth/change_password.html")
