from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = "dev"
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    log_level: str = "INFO"

    base_url: str = "http://localhost:8000"
    database_url: str = "postgresql+psycopg://app:app@db:5432/prizmatrack"
    redis_url: str = "redis://redis:6379/0"

    jwt_secret: str = "dev-secret-change-me"
    jwt_issuer: str = "prizmatrack"
    jwt_audience: str = "prizmatrack"
    jwt_expires_minutes: int = 60

    magic_link_expires_minutes: int = 15
    magic_link_pepper: str = "dev-pepper-change-me"

    # org invitations
    org_invite_expires_days: int = 7
    org_invite_path: str = "/organization-invite/{organization_id}/join"

    # outgoing mail (smtp); off by default, non-prod responses carry the login token instead
    mail_enabled: bool = False
    mail_from: str = "PrizmaTrack <no-reply@prizmatrack.local>"
    smtp_host: str = "localhost"
    smtp_port: int = 587
    smtp_username: str = ""
    smtp_password: str = ""
    smtp_starttls: bool = True
    smtp_timeout_seconds: float = 10.0

    # rate limiting (redis)
    rate_limit_enabled: bool = True
    rate_limit_auth_request_link_per_min: int = 20
    rate_limit_auth_redeem_per_min: int = 30
    rate_limit_join_per_min: int = 30

settings = Settings()
