from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # App settings
    PROJECT_NAME: str = "Spendwise"
    API_PREFIX: str = "/api"
    DEBUG: bool = Field(default=False)
    LOG_LEVEL: str = Field(default="INFO")

    CORS_ORIGINS: List[str] = Field(
        default=["http://localhost:3000", "http://localhost:5173", "http://localhost:8000"]
    )

    # DynamoDB
    DYNAMO_REGION: str = Field(default="eu-west-1")
    DYNAMO_ENDPOINT_URL: Optional[str] = Field(default=None)  # e.g. http://localhost:8001 for DynamoDB Local
    DYNAMO_EXPENSES_TABLE: str = Field(default="spendwise-expenses")
    DYNAMO_BUDGETS_TABLE: str = Field(default="spendwise-budgets")
    DYNAMO_GOALS_TABLE: str = Field(default="spendwise-goals")
    DYNAMO_PREFERENCES_TABLE: str = Field(default="spendwise-preferences")

    DEFAULT_CURRENCY: str = "USD"

    # Forecast model
    FORECAST_WINDOW_MONTHS: int = 6
    FORECAST_MIN_POINTS: int = 3
    FORECAST_LEARNING_RATE: float = 0.1
    FORECAST_EPOCHS: int = 2000

    # When disabled, forecast training runs inline on the request thread
    SCHEDULER_ENABLED: bool = Field(default=True)

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")


settings = Settings()
