"""
Configuration de l'application, lue depuis l'environnement (.env supporté)
"""
import os
from pathlib import Path
from dotenv import load_dotenv

# Charger le .env à la racine du projet
project_root = Path(__file__).parent
load_dotenv(project_root / ".env")


def _as_bool(value: str) -> bool:
    return str(value).strip().lower() in ("1", "true", "yes", "on")


class Settings:
    DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./finance.db")
    IS_DEMO = _as_bool(os.getenv("IS_DEMO", "false"))
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
    CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
    RECENT_TRANSACTIONS_LIMIT = int(os.getenv("RECENT_TRANSACTIONS_LIMIT", "5"))
    CURRENCY_SYMBOL = os.getenv("CURRENCY_SYMBOL", "$")


settings = Settings()
