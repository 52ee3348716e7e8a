"""Shared fixtures for the Flask view tests."""
import unittest

from decor_admin import create_app
from decor_admin.extensions import db
from decor_admin.models import Category, User


class AppTestCase(unittest.TestCase):
    """Base class providing an app, an in-memory database and a logged-in client"""

    username = "admin"
    password = "secret123"
    level = "admin"

    def setUp(self):
        self.app = create_app(
            {
                "TESTING": True,
                "SQLALCHEMY_DATABASE_URI": "sqlite://",
                "SECRET_KEY": "test-secret",
                "LOG_LEVEL": "DEBUG",
            }
        )
        self.app_context = self.app.app_context()
        self.app_context.push()
        db.create_all()
        self.user = self.create_user(self.username, self.password, self.level)
        self.client = self.app.test_client()
        self.login(self.username, self.password)

    def tearDown(self):
        db.session.remove()
        db.drop_all()
        self.app_context.pop()

    def create_user(self, username, password="secret123", level="operator"):
        user = User(username=username, level=level)
        user.set_password(password)
        db.session.add(user)
        db.session.commit()
        return user

    def login(self, username, password):
        return self.client.post("/login", data={"username": username, "password": password})

    def create_category(self, name, parent=None, rank=0, **extra):
        category = Category(
            name=name,
            handle=extra.pop("handle", name.lower().replace(" ", "-")),
            parent_category_id=parent.id if parent is not None else None,
            rank=rank,
            **extra,
        )
        db.session.add(category)
        db.session.commit()
        return category

    def reload(self, model, object_id):
        db.session.expire_all()
        return db.session.get(model, object_id)
