import os
import secrets
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

load_dotenv()


@dataclass(frozen=True)
class Settings:
    """Process configuration, read once at startup."""
    jwt_secret: str
    frontend_url: str = "http://localhost:3000"
    port: int = 3001
    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None
    database_url: str = "sqlite:///./edupresence.db"
    secret_is_ephemeral: bool = False

    @property
    def use_supabase(self) -> bool:
        return bool(self.supabase_url and self.supabase_key)


def load_settings() -> Settings:
    secret = os.getenv("JWT_SECRET", "").strip()
    ephemeral = not secret
    if ephemeral:
        # Tokens minted with a per-process key only verify on this instance.
        secret = secrets.token_urlsafe(32)

    return Settings(
        jwt_secret=secret,
        frontend_url=os.getenv("FRONTEND_URL", "http://localhost:3000"),
        port=int(os.getenv("PORT", "3001")),
        supabase_url=os.getenv("SUPABASE_URL") or None,
        supabase_key=os.getenv("SUPABASE_SERVICE_KEY") or os.getenv("SUPABASE_KEY") or None,
        database_url=os.getenv("DATABASE_URL", "sqlite:///./edupresence.db").strip(),
        secret_is_ephemeral=ephemeral,
    )
