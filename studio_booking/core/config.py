# studio_booking/core/config.py

from pydantic_settings import BaseSettings, SettingsConfigDict
import urllib.parse


class Settings(BaseSettings):
    # Read env from .env; ignore unknown keys so extra lines don't crash startup
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # --- Database ---
    # DATABASE_URL wins when set (sqlite+aiosqlite for local/dev/tests)
    DATABASE_URL: str | None = None
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_DB: str = "studio_booking"
    POSTGRES_USER: str = "studio"
    POSTGRES_PASSWORD: str = ""
    DB_CREATE_ALL: bool = False

    # --- App ---
    APP_ENV: str = "production"
    LOG_LEVEL: str = "INFO"
    LOG_REQUESTS: bool = False
    LOG_RESPONSES: bool = False
    MAX_LOG_LENGTH: int = 200
    SLOW_REQUEST_THRESHOLD: float = 2.0
    ALLOWED_CORS_ORIGINS: str = "*"
    PUBLIC_BASE_URL: str = "http://localhost:3000"
    ADMIN_API_KEY: str | None = None

    # --- Booking rules ---
    BUSINESS_TIMEZONE: str = "Africa/Abidjan"
    BOOKING_RESOURCE: str = "consultant"
    DEFAULT_CONSULTATION_MINUTES: int = 60
    MEETING_BASE_URL: str = "https://meet.google.com"
    QUICK_BOOKING_REQUIRES_GDPR: bool = False
    BOOKING_MAX_ATTEMPTS: int = 3

    # --- Notification providers ---
    EMAIL_PROVIDER: str = "log"         # brevo | graph | log
    CALENDAR_PROVIDER: str = "none"     # graph | google | none
    CONTACTS_PROVIDER: str = "none"     # graph | none
    EMAIL_TIMEOUT_SECONDS: float = 10.0
    PROVIDER_TIMEOUT_SECONDS: float = 15.0
    ADMIN_EMAIL: str | None = None

    # --- Brevo ---
    BREVO_API_KEY: str | None = None
    BREVO_API_URL: str = "https://api.brevo.com/v3/smtp/email"
    BREVO_SENDER_EMAIL: str | None = None
    BREVO_SENDER_NAME: str = "Leonce Ouattara Studio"

    # --- Microsoft Graph ---
    GRAPH_TENANT_ID: str | None = None
    GRAPH_CLIENT_ID: str | None = None
    GRAPH_CLIENT_SECRET: str | None = None
    GRAPH_REFRESH_TOKEN: str | None = None
    # Mailbox used with the client-credentials grant (no /me without a user)
    GRAPH_MAILBOX: str | None = None
    GRAPH_SCOPES: str = (
        "https://graph.microsoft.com/Calendars.ReadWrite "
        "https://graph.microsoft.com/Contacts.ReadWrite "
        "https://graph.microsoft.com/Mail.Send offline_access"
    )
    GRAPH_EVENT_TIMEZONE: str = "Africa/Abidjan"

    # --- Google Calendar ---
    GOOGLE_SERVICE_ACCOUNT_JSON: str | None = None
    GOOGLE_CALENDAR_ID: str = "primary"

    # --- Business contact (email templates) ---
    BUSINESS_NAME: str = "Leonce Ouattara Studio"
    BUSINESS_OWNER: str = "Leonce Ouattara"
    BUSINESS_TITLE: str = "Intégrateur Développeur & Consultant Digital"
    BUSINESS_EMAIL: str = "leonce-ouattara-studio@outlook.com"
    BUSINESS_PHONE: str = "+225 05 45 13 07 39"
    BUSINESS_WEBSITE: str = "https://leonceouattarastudio.netlify.app"

    # Async URI (SQLAlchemy engine)
    @property
    def async_db_uri(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        pwd = urllib.parse.quote_plus(self.POSTGRES_PASSWORD)
        return f"postgresql+asyncpg://{self.POSTGRES_USER}:{pwd}@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"

    # Sync URI (Alembic)
    @property
    def sync_db_uri(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL.replace("+aiosqlite", "").replace("+asyncpg", "")
        pwd = urllib.parse.quote_plus(self.POSTGRES_PASSWORD)
        return f"postgresql://{self.POSTGRES_USER}:{pwd}@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"

    @property
    def allowed_origins_list(self) -> list[str]:
        return [o.strip() for o in self.ALLOWED_CORS_ORIGINS.split(",") if o.strip()]

    @property
    def admin_email(self) -> str | None:
        return self.ADMIN_EMAIL or self.BREVO_SENDER_EMAIL

    @property
    def is_development(self) -> bool:
        return self.APP_ENV.lower() in ("development", "dev", "local")


# Singleton
settings = Settings()
