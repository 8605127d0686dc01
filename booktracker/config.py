import os
from dataclasses import dataclass
from dotenv import load_dotenv

load_dotenv()


@dataclass
class Settings:
    # Storage
    db_file: str = os.getenv("LIBRARY_DB_FILE", "library.db")

    # Pagination
    page_size: int = int(os.getenv("PAGE_SIZE", "6"))

    # API
    api_host: str = os.getenv("API_HOST", "127.0.0.1")
    api_port: int = int(os.getenv("API_PORT", "8000"))

    # Application
    app_name: str = os.getenv("APP_NAME", "Personal Book Library")
    app_version: str = os.getenv("APP_VERSION", "1.0.0")
    debug: bool = os.getenv("DEBUG", "False").lower() in ("true", "1", "yes")
    log_level: str = os.getenv("LOG_LEVEL", "WARNING").upper()


settings = Settings()
