# ldapi/config.py
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    환경 변수(LDAPI_ 접두사) 또는 .env 파일에서 읽어오는 애플리케이션 설정입니다.
    """

    model_config = SettingsConfigDict(
        env_prefix="LDAPI_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database settings (public / private 파티션)
    database_url: str = "sqlite:///ldapi_public.db"
    private_database_url: str = "sqlite:///ldapi_private.db"
    sql_echo: bool = False

    # JWT settings (검증 전용, 발급은 외부 시스템 담당)
    jwt_secret: str = ""
    jwt_algorithm: str = "HS256"

    # Server settings
    host: str = "0.0.0.0"
    port: int = 8000
    log_level: str = "INFO"

    # Client settings
    api_base_url: str = "http://localhost:8000"


settings = Settings()
