from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    # App settings
    PROJECT_NAME: str = "ProjectFinanceAnalytics"
    API_PREFIX: str = "/api"
    DEBUG: bool = Field(default=False)
    LOG_LEVEL: str = Field(default="INFO")
    HOST: str = Field(default="0.0.0.0")
    PORT: int = Field(default=8000)

    # AWS S3 (report exports)
    S3_BUCKET_NAME: str = Field(default="project-finance-reports")
    S3_REGION: str = Field(default="eu-west-1")
    REPORTS_UPLOAD_TO_S3: bool = Field(default=False)

    # Analytics
    REPORT_CACHE_SIZE: int = Field(default=128, ge=1)

    # Insight thresholds (percentages)
    INSIGHT_OVER_BUDGET_PCT: float = 100.0
    INSIGHT_CAUTION_PCT: float = 80.0
    INSIGHT_HEALTHY_PCT: float = 50.0
    INSIGHT_HIGH_SPEND_SHARE_PCT: float = 30.0
    INSIGHT_MAX_ACTIVE_EXPENSES: int = 10


settings = Settings()
