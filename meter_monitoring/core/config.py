from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    DATA_PROCESSOR_DEFAULT_PAGE_SIZE: int = 50
    DATA_PROCESSOR_MAX_PAGE_SIZE: int = 0  # 0 = no upper bound
    DATA_PROCESSOR_MAX_WORKERS: int = 0  # 0 = executor default
    DATA_PROCESSOR_PARALLEL_THRESHOLD: int = 1000

    @property
    def data_processor_max_workers(self) -> int | None:
        value = int(self.DATA_PROCESSOR_MAX_WORKERS or 0)
        return value if value > 0 else None


settings = Settings()
