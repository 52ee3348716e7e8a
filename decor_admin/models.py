from datetime import datetime
from typing import Optional

from flask_login import UserMixin
from werkzeug.security import check_password_hash, generate_password_hash

from .constants import DEFAULT_ADMIN_PASSWORD, DEFAULT_ADMIN_USERNAME, HANDLE_MAX_LENGTH
from .extensions import db


class TimestampMixin:
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class SoftDeleteMixin:
    is_deleted = db.Column(db.Boolean, default=False)


class User(UserMixin, SoftDeleteMixin, TimestampMixin, db.Model):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(64), unique=True, nullable=False)
    password_hash = db.Column(db.String(255), nullable=False)
    level = db.Column(db.String(32), nullable=False, default="operator")

    def set_password(self, password: str) -> None:
        self.password_hash = generate_password_hash(password)

    def check_password(self, password: str) -> bool:
        return check_password_hash(self.password_hash, password)

    @property
    def is_admin(self) -> bool:
        return self.level == "admin"


class Category(SoftDeleteMixin, TimestampMixin, db.Model):
    __tablename__ = "categories"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    handle = db.Column(db.String(HANDLE_MAX_LENGTH), nullable=False)
    description = db.Column(db.Text)
    parent_category_id = db.Column(db.Integer, db.ForeignKey("categories.id"))
    rank = db.Column(db.Integer, default=0)
    is_active = db.Column(db.Boolean, default=True)
    is_internal = db.Column(db.Boolean, default=False)
    meta_title = db.Column(db.String(255))
    meta_description = db.Column(db.String(500))
    meta_keywords = db.Column(db.String(500))

    parent = db.relationship("Category", remote_side=[id], backref="children")


class Image(SoftDeleteMixin, TimestampMixin, db.Model):
    __tablename__ = "images"

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(255), nullable=False, default="Untitled")
    url = db.Column(db.String(1000), nullable=False)


class Product(SoftDeleteMixin, TimestampMixin, db.Model):
    __tablename__ = "products"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text)
    price = db.Column(db.Numeric(10, 2), default=0)
    image_id = db.Column(db.Integer, db.ForeignKey("images.id"))
    category_id = db.Column(db.Integer, db.ForeignKey("categories.id"))

    image = db.relationship("Image", backref="products")
    category = db.relationship("Category", backref="products")


def ensure_seed_data(
    username: str = DEFAULT_ADMIN_USERNAME, password: str = DEFAULT_ADMIN_PASSWORD
) -> None:
    if not User.query.filter_by(username=username).first():
        user = User(username=username, level="admin")
        user.set_password(password)
        db.session.add(user)
        db.session.commit()


def find_category_by_handle(handle: str) -> Optional[Category]:
    return Category.query.filter_by(handle=handle, is_deleted=False).first()
