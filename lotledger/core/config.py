import json
from typing import List, Union

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_WEAK_SECRETS = {
    "",
    "change_me",
    "changeme",
    "secret",
    "test-secret-key",
}


def _split_list(raw: Union[str, List[str], None]) -> List[str]:
    """Accept a JSON array, a comma-separated string or a list."""
    if raw is None:
        return []
    if isinstance(raw, str):
        text = raw.strip()
        if text.startswith("["):
            parsed = json.loads(text)
            if not isinstance(parsed, list):
                raise ValueError("expected a JSON list")
            raw = [str(item) for item in parsed]
        else:
            raw = text.split(",")
    if not isinstance(raw, list):
        raise ValueError(raw)
    return [str(item).strip() for item in raw if str(item).strip()]


class Settings(BaseSettings):
    app_name: str = "LotLedger Backend"
    env: str = "dev"
    secret_key: str
    access_token_expire_minutes: int = Field(default=60, ge=1, le=24 * 60)

    # DATABASE
    database_url: str
    db_pool_size: int = Field(default=10, ge=1, le=100)
    db_max_overflow: int = Field(default=20, ge=0, le=200)
    db_pool_timeout_seconds: int = Field(default=30, ge=1, le=300)
    db_pool_recycle_seconds: int = Field(default=1800, ge=30, le=86_400)

    # ACTORS
    admin_username: str = "admin"
    admin_password_hash: str | None = None
    agent_api_key: str | None = None
    agent_actor_id: str = "agent"

    api_timeout_hint_ms: int = Field(default=300000, ge=1000, le=1_800_000)

    # LEDGER
    import_max_records: int = Field(default=500, ge=1, le=10_000)
    default_loading_method: str = "direct_unload"
    default_content_percent: float = Field(default=17.0, ge=0, le=100)

    # CORS
    cors_origins: List[str] = Field(default_factory=lambda: ["http://localhost:3000"])
    cors_origin_regex: str | None = None

    @field_validator("cors_origins", mode="before")
    @classmethod
    def assemble_cors_origins(cls, v: Union[str, List[str], None]) -> List[str]:
        return _split_list(v)

    @field_validator("admin_password_hash", "agent_api_key", "cors_origin_regex", mode="before")
    @classmethod
    def blank_as_none(cls, value: str | None) -> str | None:
        if value is None:
            return None
        cleaned = str(value).strip()
        return cleaned or None

    @property
    def is_production(self) -> bool:
        return self.env.lower().strip() in {"prod", "production"}

    @model_validator(mode="after")
    def validate_production_safety(self) -> "Settings":
        if not self.is_production:
            return self

        problems = []
        secret = self.secret_key.strip()
        if secret in _WEAK_SECRETS or len(secret) < 32:
            problems.append("SECRET_KEY must be a strong random value")
        if not self.agent_api_key or len(self.agent_api_key) < 24:
            problems.append("AGENT_API_KEY must be at least 24 characters")
        if not self.admin_password_hash:
            problems.append("ADMIN_PASSWORD_HASH must be set")
        if "*" in self.cors_origins:
            problems.append("CORS_ORIGINS cannot contain '*'")
        if self.cors_origin_regex:
            problems.append("CORS_ORIGIN_REGEX cannot be set")
        if problems:
            raise ValueError("Unsafe production settings: " + "; ".join(problems))
        return self

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
        enable_decoding=False,
    )


settings = Settings()
