import logging
import os
import sys

from dotenv import load_dotenv

load_dotenv()

_BASE_DIR = os.path.dirname(os.path.abspath(__file__))

WPCOM_API_BASE = os.getenv(
    "WPCOM_API_BASE", "https://public-api.wordpress.com/rest/v1.1"
).rstrip("/")
WPCOM_ACCESS_TOKEN = os.getenv("WPCOM_ACCESS_TOKEN", "")
WPCOM_USERNAME = os.getenv("WPCOM_USERNAME", "")
WPCOM_PRIMARY_SITE_ID = os.getenv("WPCOM_PRIMARY_SITE_ID", "")
WPCOM_PRIMARY_SITE_NAME = os.getenv("WPCOM_PRIMARY_SITE_NAME", "")

TRANSFER_DIR = os.getenv("TRANSFER_DIR", os.path.join(_BASE_DIR, "transfers"))
UPLOAD_FOLDER = os.getenv("UPLOAD_FOLDER", os.path.join(_BASE_DIR, "uploads"))
REQUEST_TIMEOUT = float(os.getenv("REQUEST_TIMEOUT", "30"))
ALLOWED_EXTENSIONS = {"png", "jpg", "jpeg", "gif", "webp"}

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def credential_configured():
    return bool(WPCOM_ACCESS_TOKEN)


def primary_site_configured():
    return bool(WPCOM_PRIMARY_SITE_ID)


def configure_logging(level=None):
    """Attach a single stdout handler to the root logger."""
    root = logging.getLogger()
    root.setLevel(level or LOG_LEVEL)
    if root.handlers:
        return
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(handler)
