from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    model_config = {
        "env_file": ".env",
        "extra": "ignore",
        "env_prefix": "",
        "case_sensitive": False,
    }

    # Gemini
    google_ai_api_key: str = ""
    text_model: str = "gemini-2.5-flash"
    image_model: str = "imagen-4.0-generate-001"

    # Pipeline
    visual_concurrency: int = 4
    generation_timeout_seconds: float = 150.0  # 0 disables the per-item timeout
    use_mock_generator: bool = True
    llm_cache_dir: str = ""

    # App
    environment: str = "development"
    log_level: str = "INFO"
    log_file: str = ""

    @property
    def item_timeout(self) -> float | None:
        return self.generation_timeout_seconds or None


settings = Settings()
