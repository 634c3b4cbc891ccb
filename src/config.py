import os
from dotenv import load_dotenv

load_dotenv()

MAX_CATEGORY_LEVEL = 4
MAX_TRAVERSAL_DEPTH = 10


class Settings:
    DATABASE_URL: str = os.getenv(
        "DATABASE_URL", "sqlite+aiosqlite:///./categories.db"
    )
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # Cache de categorias (segundos)
    CATEGORY_CACHE_TTL: int = int(os.getenv("CATEGORY_CACHE_TTL", "300"))
    CATEGORY_CACHE_MAXSIZE: int = int(os.getenv("CATEGORY_CACHE_MAXSIZE", "1000"))
    CACHE_TIMEOUT_SECONDS: float = float(os.getenv("CACHE_TIMEOUT_SECONDS", "1.0"))


settings = Settings()
