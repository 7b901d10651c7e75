# incidenthook/config.py
from pydantic_settings import BaseSettings
from pydantic import Field

class Settings(BaseSettings):
    # Infra
    DATABASE_URL: str = Field(default="sqlite:///./incidenthook.sqlite3")
    LOG_LEVEL: str = Field(default="INFO")
    BASE_URL: str = Field(default="http://localhost:8000")

    # Auth del webhook
    API_KEY: str | None = None
    REQUIRE_API_KEY: bool = True
    DETECT_PATH: str = Field(default="/api/detect")

    # Evidencia (blob store local)
    EVIDENCE_ENABLED: bool = True
    EVIDENCE_DIR: str = Field(default="./evidence_store")
    EVIDENCE_BUCKET: str = Field(default="evidence")
    EVIDENCE_URL_MODE: str = Field(default="signed")  # "signed" | "public"
    EVIDENCE_URL_TTL_SECONDS: int = Field(default=3600)
    EVIDENCE_SIGNING_SECRET: str = Field(default="change-me")

    # Notificaciones
    ALERT_WEBHOOK: str = ""
    ALERT_EMAILS: str = ""  # lista separada por comas
    ALERT_EMAIL_FROM: str = Field(default="alerts@localhost")
    SMTP_HOST: str = ""
    SMTP_PORT: int = 587
    SMTP_USER: str = ""
    SMTP_PASSWORD: str = ""
    SMTP_STARTTLS: bool = True
    NOTIFY_TIMEOUT_SECONDS: float = 10

    # Detección
    BRUTE_FORCE_THRESHOLD: int = Field(default=3)
    WINDOW_SECONDS: int = Field(default=5 * 60)  # 5 min
    EXCERPT_MAX_LENGTH: int = Field(default=800)
    COUNTER_STRATEGY: str = Field(default="auto")  # "auto" | "atomic" | "read_write"

    # Si falla el insert del incidente: False -> 201 igual, True -> 500
    FAIL_ON_PERSISTENCE_ERROR: bool = False

    class Config:
        env_file = ".env"
        extra = "ignore"

    @property
    def alert_recipients(self) -> list[str]:
        return [e.strip() for e in (self.ALERT_EMAILS or "").split(",") if e.strip()]

_settings: Settings | None = None

def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings()  # Carga de variables de entorno
    return _settings
