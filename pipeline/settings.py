"""
Provider credentials and API settings, read from the environment (.env supported).
"""

import os
from dataclasses import dataclass, field
from typing import List

from dotenv import load_dotenv

load_dotenv()  # .env → os.environ (DATAFORSEO_LOGIN, PROSPEO_API_KEY, etc.)

# Vite dev server for the dashboard
DEFAULT_CORS_ORIGINS = ["http://localhost:5173", "http://127.0.0.1:5173"]


def _split_origins(raw: str) -> List[str]:
    return [o.strip().rstrip("/") for o in raw.split(",") if o.strip()]


@dataclass
class Settings:
    dataforseo_login: str = ""
    dataforseo_password: str = ""
    prospeo_api_key: str = ""
    bounceban_api_key: str = ""
    cors_origins: List[str] = field(default_factory=lambda: list(DEFAULT_CORS_ORIGINS))

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            dataforseo_login=os.getenv("DATAFORSEO_LOGIN", ""),
            dataforseo_password=os.getenv("DATAFORSEO_PASSWORD", ""),
            prospeo_api_key=os.getenv("PROSPEO_API_KEY", ""),
            bounceban_api_key=os.getenv("BOUNCEBAN_API_KEY", ""),
            cors_origins=_split_origins(os.getenv("MARKET_PULL_CORS_ORIGINS", "")) or list(DEFAULT_CORS_ORIGINS),
        )

    @property
    def has_maps_credentials(self) -> bool:
        return bool(self.dataforseo_login and self.dataforseo_password)
