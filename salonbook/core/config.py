from pydantic_settings import BaseSettings
from typing import List
from dotenv import load_dotenv

load_dotenv()

class Settings(BaseSettings):
    # App Settings
    APP_NAME: str = "SalonBook"
    API_PREFIX: str = "/api"
    LOG_LEVEL: str = "INFO"

    # Storage: "mongo" for MongoDB (replica set required for transactions),
    # "memory" for a single-process in-memory store
    STORE_BACKEND: str = "mongo"

    # MongoDB Settings
    MONGO_URI: str = "mongodb://localhost:27017/?replicaSet=rs0"
    DB_NAME: str = "salonbook_db"
    MONGO_TIMEOUT_MS: int = 5000
    TRANSACTION_RETRIES: int = 3

    # Identity provider (Supabase) access tokens
    SUPABASE_JWT_SECRET: str = "your_supabase_jwt_secret"
    JWT_ALGORITHM: str = "HS256"
    JWT_AUDIENCE: str = "authenticated"

    # Wall-clock zone used to interpret booking instants
    SALON_TIMEZONE: str = "UTC"

    # CORS
    CORS_ORIGINS: List[str] = [
        "http://localhost:3000",  # Next.js frontend
    ]

    class Config:
        env_file = ".env"
        case_sensitive = True

settings = Settings()
