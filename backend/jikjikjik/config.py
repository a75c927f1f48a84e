from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # App
    environment: str = "development"
    debug: bool = True
    host: str = "0.0.0.0"
    port: int = 3000
    allowed_origins: str = "http://localhost:3000"
    static_dir: str = "public"
    log_level: str = "INFO"

    # External backend (auth / signup / SMS)
    api_base_url: str = "http://localhost:8080"
    backend_timeout_seconds: float = 10.0

    # Redis (rate limiting)
    redis_url: str = "redis://localhost:6379/0"

    # Rate limiting
    rate_limit_enabled: bool = True
    rate_limit_per_minute: int = 100

    # Signup wizard
    verification_window_seconds: int = 180  # 3 minutes
    resend_cooldown_seconds: int = 30
    signup_handoff_delay_seconds: float = 2.0
    signup_session_ttl_seconds: int = 1800

    # CLI
    credentials_file: str = "~/.jikjikjik/credentials.json"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}


settings = Settings()
