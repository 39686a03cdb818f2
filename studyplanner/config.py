"""
Configuration management using Pydantic models loaded from YAML.
"""

from pathlib import Path
from typing import Optional

import pendulum
import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

from .adapters.credential_store import ApiKeyStore
from .domain.models import LlmProvider, UserSchedulingPreferences, WorkWindow


class SchedulingConfig(BaseModel):
    """Work window and allocation defaults."""
    day_window_start_hour: int = 8
    day_window_end_hour: int = 18
    default_duration_minutes: int = 30
    step_minutes: int = 15

    @field_validator("default_duration_minutes", "step_minutes")
    @classmethod
    def validate_positive(cls, value: int) -> int:
        """Ensure durations are positive."""
        if value <= 0:
            raise ValueError("value must be greater than zero")
        return value

    @field_validator("day_window_start_hour")
    @classmethod
    def validate_start_hour(cls, v: int) -> int:
        """Validate start hour is between 0 and 23."""
        if not 0 <= v <= 23:
            raise ValueError(f"Start hour must be between 0 and 23, got {v}")
        return v

    @field_validator("day_window_end_hour")
    @classmethod
    def validate_end_hour(cls, v: int) -> int:
        """Validate end hour is between 1 and 24."""
        if not 1 <= v <= 24:
            raise ValueError(f"End hour must be between 1 and 24, got {v}")
        return v

    @model_validator(mode="after")
    def validate_hours_order(self) -> "SchedulingConfig":
        """Ensure the configured window opens before it closes."""
        if self.day_window_end_hour <= self.day_window_start_hour:
            raise ValueError("day_window_end_hour must be later than day_window_start_hour")
        return self

    def work_window(self) -> WorkWindow:
        return WorkWindow(
            start_hour=self.day_window_start_hour,
            end_hour=self.day_window_end_hour,
        )


class LlmConfig(BaseModel):
    """External suggestion provider settings."""
    provider: LlmProvider = LlmProvider.NONE
    openai_api_key: Optional[str] = None
    lm_studio_url: Optional[str] = None
    timeout_seconds: Optional[float] = None

    @field_validator("provider", mode="before")
    @classmethod
    def normalize_provider(cls, value):
        """Accept provider names in any case ("OPENAI", "openai")."""
        if isinstance(value, str):
            return value.strip().lower()
        return value


class AppConfig(BaseModel):
    """Application configuration."""
    timezone: Optional[str] = None
    scheduling: SchedulingConfig = Field(default_factory=SchedulingConfig)
    llm: LlmConfig = Field(default_factory=LlmConfig)

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, value: Optional[str]) -> Optional[str]:
        """Reject zone names pendulum does not know."""
        if not value:
            return None
        try:
            pendulum.timezone(value)
        except Exception as exc:
            raise ValueError(f"Unknown timezone: {value}") from exc
        return value

    @classmethod
    def load_from_yaml(cls, config_path: Path) -> "AppConfig":
        """
        Load configuration from YAML file.

        Args:
            config_path: Path to the YAML config file

        Returns:
            AppConfig instance

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValueError: If config is invalid
        """
        if not config_path.exists():
            raise FileNotFoundError(
                f"Config file not found: {config_path}\n"
                f"Please create a config.yaml file. See config.example.yaml for reference."
            )

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ValueError(f"Invalid YAML in {config_path}: {exc}") from exc

        if not isinstance(data, dict):
            raise ValueError("Config file must contain a mapping at the root level.")

        return cls(**data)

    def to_preferences(self, api_key_store: Optional[ApiKeyStore] = None) -> UserSchedulingPreferences:
        """
        Build the scheduling preferences for the planner services.

        The OpenAI key comes from the config file, or from the keyring when
        the file leaves it empty.
        """
        api_key = self.llm.openai_api_key
        if not api_key and self.llm.provider == LlmProvider.OPENAI and api_key_store is not None:
            api_key = api_key_store.get_api_key(LlmProvider.OPENAI.value)

        return UserSchedulingPreferences(
            timezone=self.timezone,
            day_window_start_hour=self.scheduling.day_window_start_hour,
            day_window_end_hour=self.scheduling.day_window_end_hour,
            default_duration_minutes=self.scheduling.default_duration_minutes,
            llm_provider=self.llm.provider,
            openai_api_key=api_key,
            lm_studio_url=self.llm.lm_studio_url,
        )


def get_default_config_path() -> Path:
    """Get the default configuration file path."""
    # Look for config.yaml in current directory
    current_dir = Path.cwd()
    config_path = current_dir / "config.yaml"

    if not config_path.exists():
        # Try in the project root (parent of studyplanner/)
        project_root = Path(__file__).parent.parent
        config_path = project_root / "config.yaml"

    return config_path
