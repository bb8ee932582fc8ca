import os
from dataclasses import dataclass
from functools import lru_cache

from dotenv import load_dotenv, find_dotenv

# find_dotenv walks up from this package directory, so a .env at the repo
# root is picked up wherever the service is started from.
load_dotenv(find_dotenv())


@dataclass(frozen=True)
class Settings:
    database_url: str
    checkin_early_minutes: int
    default_badge_type: str
    log_level: str
    seed_badges_per_type: int


@lru_cache
def get_settings() -> Settings:
    """Read the environment (and .env) once per process."""
    return Settings(
        database_url=os.getenv("DATABASE_URL", "sqlite:///./visitors.db"),
        checkin_early_minutes=int(os.getenv("CHECKIN_EARLY_MINUTES", "60")),
        default_badge_type=os.getenv("DEFAULT_BADGE_TYPE", "visitor"),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        seed_badges_per_type=int(os.getenv("SEED_BADGES_PER_TYPE", "10")),
    )
