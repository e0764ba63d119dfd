from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    PROJECT_NAME: str = "Spa Admin Backend"

    # Server
    PORT: int = 8000
    ENVIRONMENT: str = "development"

    # Security
    ADMIN_API_TOKEN: str = ""

    # Supabase
    SUPABASE_URL: str = ""
    SUPABASE_KEY: str = ""
    SEND_EMAIL_FUNCTION: str = "send-email"

    # Booking lifecycle
    BUSINESS_TIMEZONE: str = "Europe/Prague"
    AUTO_COMPLETE_GRACE_HOURS: int = 2
    ARCHIVE_RETENTION_DAYS: int = 30

    # Notifications ("edge" = Supabase Edge Function, "smtp" = direct SMTP)
    EMAIL_TRANSPORT: str = "edge"
    EMAIL_FROM: str = ""
    SMTP_SERVER: str = "smtp.gmail.com"
    SMTP_PORT: int = 587
    SMTP_USERNAME: str = ""
    SMTP_PASSWORD: str = ""

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"

settings = Settings()
