from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    PROJECT_NAME: str = "Teateret Ticketing API"
    API_V1_STR: str = "/api/v1"
    SECRET_KEY: str = "changeme"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 8
    LOG_LEVEL: str = "INFO"

    # Database
    POSTGRES_SERVER: str = "localhost"
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: str = "postgres"
    POSTGRES_DB: str = "teateret_db"
    POSTGRES_PORT: int = 5432
    DATABASE_URL: str = ""

    # Seat holds and bookings
    SEAT_HOLD_MINUTES: int = 10
    MAX_SEATS_PER_BOOKING: int = 10
    BOOKING_REFERENCE_PREFIX: str = "TKT"
    BOOKING_REFERENCE_ATTEMPTS: int = 5
    CURRENCY: str = "NOK"

    # Ticket email
    EMAIL_PROVIDER: str = "log"  # log | smtp
    EMAIL_FROM: str = "billetter@teateret.no"
    SMTP_HOST: str = "localhost"
    SMTP_PORT: int = 587
    SMTP_USERNAME: str = ""
    SMTP_PASSWORD: str = ""
    SMTP_USE_TLS: bool = True

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore"
    )

    def assemble_db_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return f"postgresql://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@{self.POSTGRES_SERVER}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"

settings = Settings()
settings.DATABASE_URL = settings.assemble_db_url()
