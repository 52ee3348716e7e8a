"""Application-wide constants."""

DEFAULT_BRAND_COLOR = "#8a6d3b"
BRAND_NAME = "DecorLujo"

HANDLE_MAX_LENGTH = 120
MIN_PASSWORD_LENGTH = 6

DEFAULT_ADMIN_USERNAME = "admin"
DEFAULT_ADMIN_PASSWORD = "admin123"

USER_LEVELS = ("admin", "operator")
