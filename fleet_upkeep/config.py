"""
Configuration de l'application / Application configuration.
Utilise pydantic-settings pour charger depuis .env ou variables d'environnement.
"""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Application
    APP_NAME: str = "Fleet Upkeep"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = True

    # Database - SQLite par défaut pour le développement
    # Database - SQLite by default for development
    DATABASE_URL: str = "sqlite+aiosqlite:///./fleet_upkeep.db"

    # CORS - origines autorisées / allowed origins
    CORS_ORIGINS: list[str] = ["http://localhost:5173", "http://localhost:3000"]

    # Serveur / Server (uvicorn)
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # Rate Limiting
    RATE_LIMIT_DEFAULT: str = "60/minute"
    RATE_LIMIT_TRIGGER: str = "10/minute"

    # Balayage periodique / Periodic sweep
    SCHEDULER_ENABLED: bool = True
    MAINTENANCE_SWEEP_INTERVAL_MINUTES: int = 30
    # SQLite serialise les ecritures : 1 en dev, augmenter sous PostgreSQL
    # SQLite serializes writers: keep 1 in dev, raise it on PostgreSQL
    SWEEP_CONCURRENCY: int = 1

    # Re-verification apres cloture d'entretien / Follow-up check after a completed visit
    FOLLOW_UP_MAX_ATTEMPTS: int = 3
    FOLLOW_UP_RETRY_DELAY_SECONDS: float = 2.0

    # Valeurs par defaut des rappels / Reminder settings defaults
    DEFAULT_NOTIFICATION_THRESHOLD_KM: int = 500
    DEFAULT_NOTIFICATIONS_ENABLED: bool = True

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()
