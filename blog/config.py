from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    database_url: str = Field(default="sqlite:///./blog.db")
    app_name: str = "Blog"
    secret_key: str = Field(default="dev-change-me")
    posts_per_page: int = Field(default=3, ge=1)
    log_level: str = "INFO"
    sql_echo: bool = False

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )


settings = Settings()
