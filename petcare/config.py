from functools import lru_cache
from pydantic import BaseModel
import os
from dotenv import load_dotenv
load_dotenv()  # carga el archivo .env de la raíz

class Settings(BaseModel):
    app_name: str = os.getenv("APP_NAME", "PetCare")
    env: str = os.getenv("APP_ENV", "dev")
    mongodb_uri: str = os.getenv("MONGODB_URI", "mongodb://localhost:27017")
    db_name: str = os.getenv("DB_NAME", "petcare")
    jwt_secret: str = os.getenv("JWT_SECRET", "change-me")
    jwt_expires_hours: int = int(os.getenv("JWT_EXPIRES_HOURS", "8"))
    frontend_base_url: str = os.getenv("FRONTEND_BASE_URL", "http://localhost:5173")

    # Horario de negocio (zona horaria local de operación)
    business_timezone: str = os.getenv("BUSINESS_TIMEZONE", "UTC")
    business_open_hour: int = int(os.getenv("BUSINESS_OPEN_HOUR", "9"))
    business_close_hour: int = int(os.getenv("BUSINESS_CLOSE_HOUR", "18"))
    slot_step_minutes: int = int(os.getenv("SLOT_STEP_MINUTES", "30"))
    cancellation_notice_hours: int = int(os.getenv("CANCELLATION_NOTICE_HOURS", "2"))

    # Email (SMTP). Sin SMTP_HOST no se envía nada.
    smtp_host: str = os.getenv("SMTP_HOST", "")
    smtp_port: int = int(os.getenv("SMTP_PORT", "587"))
    smtp_user: str = os.getenv("SMTP_USER", "")
    smtp_password: str = os.getenv("SMTP_PASSWORD", "")
    email_from: str = os.getenv("EMAIL_FROM", "")
    email_from_name: str = os.getenv("EMAIL_FROM_NAME", "PetCare Service")
    operator_email: str = os.getenv("OPERATOR_EMAIL", "")

    @property
    def email_enabled(self) -> bool:
        return bool(self.smtp_host and self.smtp_user and self.smtp_password and self.email_from)


@lru_cache
def get_settings() -> Settings:
    return Settings()
