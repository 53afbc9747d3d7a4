"""Authit configuration via pydantic-settings."""

from __future__ import annotations

from pathlib import Path

from pydantic_settings import BaseSettings


class AuthitSettings(BaseSettings):
    environment: str = "development"
    app_title: str = "Authit"
    authit_url: str = ""

    # Kanidm (identity provider)
    kanidm_url: str = "https://idm.example.com"
    kanidm_token: str = ""
    kanidm_timeout_seconds: float = 10.0

    # OAuth2 / PKCE login
    oauth_client_id: str = "authit"
    oauth_client_secret: str = ""
    pkce_ttl_seconds: int = 600

    # Sessions + signed tokens
    session_secret: str = ""
    session_ttl_seconds: int = 7 * 86400
    cookie_secure: bool = True
    admin_group: str = "authit_admin"

    # Provisioning links
    provision_max_duration_hours: int = 720
    provision_purge_probability: float = 0.1

    data_dir: str = "data"
    database_url: str = ""
    echo_sql: bool = False
    log_level: str = "INFO"

    model_config = {"env_prefix": "AUTHIT_", "env_file": ".env", "extra": "ignore"}

    @property
    def base_dir(self) -> Path:
        return Path(__file__).resolve().parent

    @property
    def data_path(self) -> Path:
        return Path(self.data_dir).expanduser()

    @property
    def sqlite_path(self) -> Path:
        return self.data_path / "db.sqlite"

    @property
    def resolved_database_url(self) -> str:
        return self.database_url or f"sqlite+aiosqlite:///{self.sqlite_path}"

    @property
    def public_url(self) -> str:
        return self.authit_url.rstrip("/")

    @property
    def idm_url(self) -> str:
        return self.kanidm_url.rstrip("/")

    @property
    def oauth_redirect_uri(self) -> str:
        """Empty when no public URL is configured; callers derive it per request."""
        if not self.public_url:
            return ""
        return f"{self.public_url}/auth/callback"

    @property
    def oauth_authorize_url(self) -> str:
        return f"{self.idm_url}/ui/oauth2"

    @property
    def oauth_token_url(self) -> str:
        return f"{self.idm_url}/oauth2/token"

    @property
    def oauth_userinfo_url(self) -> str:
        return f"{self.idm_url}/oauth2/openid/{self.oauth_client_id}/userinfo"

    @property
    def is_production(self) -> bool:
        return self.environment.strip().lower() in {"prod", "production"}


settings = AuthitSettings()
