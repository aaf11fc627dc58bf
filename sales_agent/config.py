"""Configuration management using Pydantic Settings."""
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional


class Settings(BaseSettings):
    """Application settings with validation."""

    # LangSmith Configuration
    langchain_tracing_v2: bool = False
    langchain_api_key: Optional[str] = None
    langchain_project: str = "northstar-sales-agent"

    # Application Configuration
    app_name: str = "Northstar Sales Agent"
    app_version: str = "1.0.0"
    log_level: str = "INFO"

    # Scenario Configuration
    client_name: str = "Acme Corp"
    client_crm_id: str = "99281"
    account_owner: str = "Alex Doe"
    base_total: float = 150000.0
    currency_symbol: str = "$"

    # Pricing Policy Configuration
    policy_threshold_percent: int = 15
    policy_approver: str = "Sarah Jenkins, VP Sales"
    default_discount_percent: int = 20

    # Simulated latency (seconds)
    composing_delay_seconds: float = 1.5
    approval_delay_seconds: float = 5.0
    approval_timeout_seconds: Optional[float] = None
    simulated_approval_outcome: str = "APPROVED"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @property
    def approver_first_name(self) -> str:
        """First name of the configured approver, used as a keyword cue."""
        return self.policy_approver.split(",")[0].split()[0]


# Global settings instance
settings = Settings()
