import os


def _normalize_database_url(url: str) -> str:
    # Render/Heroku sometimes provide postgres:// which SQLAlchemy expects as postgresql://
    if url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql://", 1)
    return url


def _int_env(name: str, default: int) -> int:
    try:
        return int((os.getenv(name) or "").strip() or default)
    except ValueError:
        return default


class Config:
    # Base directory of the backend (one level above this `checkout` package)
    BACKEND_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
    INSTANCE_DIR = os.path.join(BACKEND_DIR, "instance")

    def __init__(self, **overrides):
        self.ENV = (os.getenv("CHECKOUT_ENV", "dev") or "dev").strip().lower()

        self.STRAPI_BASE_URL = (os.getenv("STRAPI_BASE_URL") or "https://admin.kaalikacreations.com").rstrip("/")
        self.STRAPI_API_TOKEN = (os.getenv("STRAPI_API_TOKEN") or "").strip()
        self.STRAPI_MAX_RETRIES = _int_env("STRAPI_MAX_RETRIES", 3)
        self.STRAPI_RETRY_BASE_MS = _int_env("STRAPI_RETRY_BASE_MS", 300)
        self.HTTP_TIMEOUT_SECONDS = _int_env("HTTP_TIMEOUT_SECONDS", 15)

        self.RAZORPAY_KEY_ID = (os.getenv("RAZORPAY_KEY_ID") or "").strip()
        self.RAZORPAY_KEY_SECRET = (os.getenv("RAZORPAY_KEY_SECRET") or "").strip()
        self.RAZORPAY_WEBHOOK_SECRET = (os.getenv("RAZORPAY_WEBHOOK_SECRET") or "").strip()
        self.CURRENCY = (os.getenv("CHECKOUT_CURRENCY") or "INR").strip().upper()

        self.SENDGRID_API_KEY = (os.getenv("SENDGRID_API_KEY") or "").strip()
        self.MAIL_FROM = (os.getenv("MAIL_FROM") or "admin@kaalikacreations.com").strip()

        default_dedupe_file = os.path.join(self.INSTANCE_DIR, "processed_webhooks.json")
        self.PROCESSED_WEBHOOKS_FILE = os.getenv("PROCESSED_WEBHOOKS_FILE") or default_dedupe_file
        self.DEDUPE_REMOTE = (os.getenv("DEDUPE_REMOTE", "0") or "0").strip() == "1"

        default_sqlite_path = os.path.join(self.INSTANCE_DIR, "checkout.db").replace("\\", "/")
        db_url = os.getenv("DATABASE_URL", f"sqlite:///{default_sqlite_path}")
        self.SQLALCHEMY_DATABASE_URI = _normalize_database_url(db_url)
        self.SQLALCHEMY_TRACK_MODIFICATIONS = False

        # CORS: comma-separated origins for the storefront builds
        self.CORS_ORIGINS = (os.getenv("CORS_ORIGINS") or "").strip()
        self.ADMIN_TOKEN = (os.getenv("ADMIN_TOKEN") or "").strip()
        self.LOG_LEVEL = (os.getenv("LOG_LEVEL") or "INFO").strip().upper()

        for key, value in overrides.items():
            setattr(self, key, value)

    @property
    def is_production(self) -> bool:
        return self.ENV in ("prod", "production")

    @property
    def retry_base_delay(self) -> float:
        return max(0, int(self.STRAPI_RETRY_BASE_MS)) / 1000.0

    def cors_origins(self) -> list:
        origins = [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]
        if self.is_production:
            return origins
        return origins or ["*"]

    def check_production(self) -> None:
        """Production safety checks, run once at boot."""
        if not self.is_production:
            return
        if not self.STRAPI_API_TOKEN:
            raise RuntimeError("STRAPI_API_TOKEN must be set in production")
        if not self.RAZORPAY_WEBHOOK_SECRET:
            raise RuntimeError("RAZORPAY_WEBHOOK_SECRET must be set in production")
        if not self.CORS_ORIGINS:
            raise RuntimeError("CORS_ORIGINS must list the storefront origins in production")

    def to_flask(self) -> dict:
        return {k: v for k, v in vars(self).items() if k.isupper()}
