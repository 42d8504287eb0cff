"""Application configuration (settings and environment).

Single source of truth for all configuration. Uses pydantic-settings
with .env support. Directory connection settings are required and
validated at load time; everything else has a working default.
"""

from datetime import timedelta
from functools import lru_cache

from pydantic import SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment and .env.

    LDAP_URL, LDAP_DOMAIN and LDAP_SERVICE_USERNAME are required (see
    validate_required). EMAIL_FROM is required when TOKEN_SENDER is 'email'.
    """

    # App
    app_name: str = "password-reset"
    app_version: str = "1.0.0"
    debug: bool = False
    allowed_origins: str = ""
    request_id_header: str = "X-Request-ID"

    # Directory (LDAP / Active Directory)
    ldap_url: str = ""  # e.g. ldaps://dc01.example.com:636
    ldap_domain: str = ""  # e.g. example.com; qualifies usernames and the search base
    ldap_service_username: str = ""
    ldap_service_password: SecretStr = SecretStr("")
    ldap_timeout_seconds: int = 10
    ldap_start_tls: bool = False  # upgrade an ldap:// connection before binding
    ldap_validate_certificate: bool = True
    ldap_ca_certs_file: str | None = None

    # Tokens
    token_sender: str = "email"  # email | console
    token_ttl_seconds: int = 15 * 60
    token_sweep_interval_seconds: int = 60

    # E-mail delivery
    smtp_host: str = "localhost"
    smtp_port: int = 25
    smtp_username: str | None = None
    smtp_password: SecretStr | None = None
    smtp_starttls: bool = False
    smtp_timeout_seconds: int = 10
    email_from: str = ""
    email_subject: str = "Password Reset"

    # Sessions (one reset workflow per browser session)
    session_cookie_name: str = "reset_session"
    session_cookie_secure: bool = True
    session_idle_timeout_seconds: int = 30 * 60

    # OpenTelemetry
    telemetry_enabled: bool = False
    telemetry_exporter: str = "console"
    telemetry_otlp_endpoint: str | None = None
    telemetry_sample_rate: float = 1.0
    telemetry_environment: str = "development"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    @model_validator(mode="after")
    def validate_required(self) -> "Settings":
        """Validate directory settings, durations, and the delivery channel.

        - LDAP_URL, LDAP_DOMAIN, LDAP_SERVICE_USERNAME must be set.
        - The directory connection must be encrypted: ldaps://, or ldap:// with
          LDAP_START_TLS (the service password and unicodePwd travel over it).
        - Token TTL and network timeouts must be positive.
        - The e-mail channel needs a from address.
        """
        missing = [
            name.upper()
            for name in ("ldap_url", "ldap_domain", "ldap_service_username")
            if not getattr(self, name).strip()
        ]
        if missing:
            raise ValueError(
                f"{', '.join(missing)} required. Set in environment or .env file."
            )
        scheme = self.ldap_url.strip().split("://", 1)[0].lower()
        if scheme not in ("ldap", "ldaps"):
            raise ValueError("LDAP_URL must start with ldaps:// or ldap://")
        if scheme == "ldap" and not self.ldap_start_tls:
            raise ValueError(
                "LDAP_URL uses plain ldap://. Use ldaps:// or set LDAP_START_TLS=true."
            )
        for name in (
            "token_ttl_seconds",
            "ldap_timeout_seconds",
            "smtp_timeout_seconds",
            "session_idle_timeout_seconds",
            "token_sweep_interval_seconds",
        ):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name.upper()} must be positive")
        if self.token_sender.lower() == "email" and not self.email_from:
            raise ValueError(
                "EMAIL_FROM is required when TOKEN_SENDER is 'email'."
            )
        return self

    @property
    def token_ttl(self) -> timedelta:
        return timedelta(seconds=self.token_ttl_seconds)


@lru_cache
def get_settings() -> Settings:
    """Return cached application settings (single instance per process).

    Validation runs on first call, not at import time. In tests, call
    get_settings.cache_clear() before overriding env vars so the next
    get_settings() uses the new values.

    Returns:
        Loaded and validated Settings instance.
    """
    return Settings()
