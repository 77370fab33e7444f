"""
Configuration module for the adaptive learning engine.

This module provides environment configuration management for the quiz
synthesizer and the spaced-repetition scheduler, plus the logging and
logfire bootstrap shared by both.
"""

import logging
from enum import Enum
from typing import Dict, Any, Optional
from dataclasses import dataclass, field

import logfire
from dotenv import load_dotenv
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from learning_entities import DifficultyLevel


# Load environment variables from .env file
load_dotenv()


class Environment(str, Enum):
    """Application environment types."""
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TESTING = "testing"


class LogLevel(str, Enum):
    """Logging level configuration."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class QuizSettings(BaseSettings):
    """Relationship quiz synthesis settings."""

    model_config = SettingsConfigDict(env_prefix="QUIZ_", case_sensitive=False)

    default_question_count: int = Field(
        default=10,
        gt=0,
        description="Questions generated when the caller does not ask for a count"
    )
    default_difficulty: DifficultyLevel = Field(
        default=DifficultyLevel.MEDIUM,
        description="Difficulty used when the caller does not pick one"
    )
    domain_share_easy: float = Field(
        default=0.5,
        ge=0.0,
        le=1.0,
        description="Target share of domain questions in an easy quiz"
    )
    domain_share_medium: float = Field(
        default=0.3,
        ge=0.0,
        le=1.0,
        description="Target share of domain questions in a medium quiz"
    )
    domain_share_hard: float = Field(
        default=0.2,
        ge=0.0,
        le=1.0,
        description="Target share of domain questions in a hard quiz"
    )

    @model_validator(mode="after")
    def validate_monotonic_mix(self) -> "QuizSettings":
        """Easier quizzes must never carry fewer domain questions."""
        if not (self.domain_share_easy >= self.domain_share_medium >= self.domain_share_hard):
            raise ValueError(
                "Domain shares must satisfy easy >= medium >= hard "
                f"(got {self.domain_share_easy}, {self.domain_share_medium}, {self.domain_share_hard})"
            )
        return self

    def domain_share(self, difficulty: DifficultyLevel) -> float:
        """Get the domain question share for a difficulty."""
        shares = {
            DifficultyLevel.EASY: self.domain_share_easy,
            DifficultyLevel.MEDIUM: self.domain_share_medium,
            DifficultyLevel.HARD: self.domain_share_hard,
        }
        return shares[DifficultyLevel(difficulty)]


class SchedulerSettings(BaseSettings):
    """Spaced-repetition scheduler constants."""

    model_config = SettingsConfigDict(env_prefix="SCHEDULER_", case_sensitive=False)

    default_ease_factor: float = Field(
        default=2.5,
        description="Ease factor assigned to a new card"
    )
    min_ease_factor: float = Field(
        default=1.3,
        ge=1.3,
        description="Floor for the ease factor"
    )
    hard_interval_multiplier: float = Field(
        default=1.2,
        ge=1.0,
        description="Interval growth on a Hard rating"
    )
    easy_bonus: float = Field(
        default=1.3,
        ge=1.0,
        description="Extra interval multiplier on an Easy rating"
    )
    again_ease_penalty: float = Field(
        default=0.2,
        ge=0.0,
        description="Ease factor reduction on an Again rating"
    )
    hard_ease_penalty: float = Field(
        default=0.1,
        ge=0.0,
        description="Ease factor reduction on a Hard rating"
    )
    easy_ease_increment: float = Field(
        default=0.1,
        ge=0.0,
        description="Ease factor increase on an Easy rating"
    )
    graduation_interval_days: int = Field(
        default=6,
        gt=1,
        description="Interval at which a learning card graduates to review"
    )
    max_interval_days: int = Field(
        default=36500,
        ge=1,
        description="Longest interval a card can be scheduled out"
    )

    @field_validator("default_ease_factor")
    @classmethod
    def validate_default_ease(cls, v: float) -> float:
        """Default ease must be a usable multiplier."""
        if v < 1.0:
            raise ValueError(f"default_ease_factor must be at least 1.0, got {v}")
        return v

    @model_validator(mode="after")
    def validate_ease_bounds(self) -> "SchedulerSettings":
        """Ensure the default ease factor respects the floor."""
        if self.default_ease_factor < self.min_ease_factor:
            raise ValueError("default_ease_factor cannot be below min_ease_factor")
        return self


class ApplicationConfig(BaseSettings):
    """Main application configuration settings."""

    model_config = SettingsConfigDict(env_prefix="APP_", case_sensitive=False)

    env: Environment = Field(
        default=Environment.DEVELOPMENT,
        description="Application environment"
    )
    debug: bool = Field(
        default=False,
        description="Debug mode"
    )
    log_level: LogLevel = Field(
        default=LogLevel.INFO,
        description="Logging level"
    )


@dataclass
class RuntimeConfig:
    """Runtime configuration container combining all config sections."""

    quiz: QuizSettings = field(default_factory=QuizSettings)
    scheduler: SchedulerSettings = field(default_factory=SchedulerSettings)
    app: ApplicationConfig = field(default_factory=ApplicationConfig)

    def reload(self):
        """Reload configuration from environment variables."""
        self.quiz = QuizSettings()
        self.scheduler = SchedulerSettings()
        self.app = ApplicationConfig()

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.app.env == Environment.PRODUCTION

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.app.env == Environment.DEVELOPMENT

    @property
    def is_testing(self) -> bool:
        """Check if running in testing environment."""
        return self.app.env == Environment.TESTING

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        return {
            "environment": self.app.env.value,
            "debug": self.app.debug,
            "log_level": self.app.log_level.value,
            "quiz": self.quiz.model_dump(mode="json"),
            "scheduler": self.scheduler.model_dump(mode="json"),
        }


# Global configuration instance
config = RuntimeConfig()


# Configuration helper functions
def get_config() -> RuntimeConfig:
    """Get the global configuration instance."""
    return config


def reload_config() -> RuntimeConfig:
    """Reload configuration from environment."""
    config.reload()
    return config


def configure_observability(runtime: Optional[RuntimeConfig] = None) -> None:
    """Set up stdlib logging and logfire for the engine.

    Nothing is sent to logfire unless a token is present in the environment.
    """
    runtime = runtime or config
    logging.basicConfig(level=getattr(logging, runtime.app.log_level.value))
    logfire.configure(
        send_to_logfire="if-token-present",
        console=False if not runtime.app.debug else None,
        environment=runtime.app.env.value,
    )
