import logging
import os
from pathlib import Path

from flask import Flask, jsonify, redirect, request, url_for
from flask_login import current_user

from .constants import BRAND_NAME, DEFAULT_BRAND_COLOR
from .extensions import db, migrate, login_manager
from .models import User
from .utils.pagination import (
    PER_PAGE_OPTIONS,
    build_pagination_links,
    build_pagination_url,
)


NAV_SECTIONS = [
    {
        "key": "catalog",
        "title": "Catálogo",
        "items": [
            {"endpoint": "dashboard.index", "label": "Resumen"},
            {"endpoint": "categories.list_categories", "label": "Categorías"},
            {"endpoint": "categories.create_category", "label": "Nueva categoría"},
            {"endpoint": "products.list_products", "label": "Productos"},
        ],
        "prefixes": ["dashboard.", "categories.", "products."],
    },
    {
        "key": "accounts",
        "title": "Cuentas",
        "items": [
            {"endpoint": "accounts.list_accounts", "label": "Administradores", "admin_only": True},
            {"endpoint": "accounts.create_account", "label": "Nueva cuenta", "admin_only": True},
            {"endpoint": "auth.change_password", "label": "Cambiar contraseña"},
        ],
        "prefixes": ["accounts.", "auth."],
    },
]


def _resolve_active_section(endpoint: str) -> str:
    if not endpoint:
        return NAV_SECTIONS[0]["key"]
    for section in NAV_SECTIONS:
        if any(item["endpoint"] == endpoint for item in section["items"]):
            return section["key"]
    for section in NAV_SECTIONS:
        for prefix in section.get("prefixes", []):
            if endpoint.startswith(prefix):
                return section["key"]
    return NAV_SECTIONS[0]["key"]


def create_app(test_config=None):
    app = Flask(__name__, instance_relative_config=True)

    default_sqlite_path = Path(app.instance_path) / "decor_admin.sqlite"

    database_uri = os.environ.get("DATABASE_URI", "")
    if not database_uri.strip():
        database_uri = f"sqlite:///{default_sqlite_path}"

    secret_key = os.environ.get("SECRET_KEY")
    if not secret_key or not secret_key.strip():
        secret_key = "dev-secret-key"

    app.config.from_mapping(
        SECRET_KEY=secret_key,
        SQLALCHEMY_DATABASE_URI=database_uri,
        SQLALCHEMY_TRACK_MODIFICATIONS=False,
        LOG_LEVEL=os.environ.get("LOG_LEVEL", "INFO").upper(),
    )

    # Ensure the instance folder exists so SQLite can create the database file.
    default_sqlite_path.parent.mkdir(parents=True, exist_ok=True)

    if test_config:
        app.config.update(test_config)

    configure_logging(app)
    register_extensions(app)
    register_blueprints(app)
    register_commands(app)

    @login_manager.user_loader
    def load_user(user_id):
        return User.query.filter_by(id=int(user_id), is_deleted=False).first()

    @login_manager.unauthorized_handler
    def unauthorized():
        if request.blueprint == "api":
            return jsonify({"success": False, "message": "Autenticación requerida"}), 401
        return redirect(url_for("auth.login", next=request.full_path))

    @app.context_processor
    def inject_navigation():
        current_endpoint = request.endpoint or ""
        nav_sections = []
        for section in NAV_SECTIONS:
            filtered_items = [
                item
                for item in section["items"]
                if not item.get("admin_only")
                or (current_user.is_authenticated and current_user.is_admin)
            ]
            if not filtered_items:
                continue
            nav_sections.append(
                {
                    "key": section["key"],
                    "title": section["title"],
                    "items": filtered_items,
                }
            )
        return {
            "brand_name": BRAND_NAME,
            "brand_color": DEFAULT_BRAND_COLOR,
            "system_nav_sections": nav_sections,
            "system_active_nav_key": _resolve_active_section(current_endpoint),
        }

    @app.context_processor
    def inject_pagination_helpers():
        return {
            "pagination_per_page_options": PER_PAGE_OPTIONS,
            "build_pagination_links": build_pagination_links,
            "pagination_build_url": build_pagination_url,
        }

    return app


def configure_logging(app: Flask) -> None:
    level = logging.getLevelName(app.config["LOG_LEVEL"])
    if not isinstance(level, int):
        level = logging.INFO
    app.logger.setLevel(level)
    logging.getLogger(__name__).setLevel(level)


def register_extensions(app: Flask) -> None:
    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)
    login_manager.login_view = "auth.login"
    login_manager.login_message = "Inicia sesión para continuar"


def register_blueprints(app: Flask) -> None:
    from .views import accounts, api, auth, categories, dashboard, products

    app.register_blueprint(auth.bp)
    app.register_blueprint(dashboard.bp)
    app.register_blueprint(categories.bp)
    app.register_blueprint(products.bp)
    app.register_blueprint(accounts.bp)
    app.register_blueprint(api.bp)


def register_commands(app: Flask) -> None:
    from .models import ensure_seed_data

    @app.cli.command("seed")
    def seed() -> None:
        """Seed the database with an initial administrator user."""
        ensure_seed_data()
        print("Seed data ensured.")

    @app.cli.command("init-db")
    def init_db() -> None:
        """Create database tables based on the current models."""
        db.create_all()
        print("Database tables created.")
