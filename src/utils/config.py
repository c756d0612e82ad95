"""Configuration management for the recipe recommendation pipeline.

Loads environment variables from system environment and .env file.
Priority order: system environment > .env file > hardcoded defaults
"""

import os
from typing import Optional

from dotenv import load_dotenv


# Load .env file (if exists, silently continues if missing)
load_dotenv()


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "yes")


class Config:
    """Application configuration loaded from environment variables."""

    def __init__(self) -> None:
        """Initialize configuration from environment variables."""
        # Recipe Backend: "http" (JSON endpoint) or "gemini" (Google Gemini model)
        self.RECIPE_BACKEND: str = os.getenv("RECIPE_BACKEND", "http").lower()
        # Base URL of the recipe generation endpoint (http backend only)
        self.RECIPE_API_URL: str = os.getenv("RECIPE_API_URL", "http://localhost:3000")
        # Optional bearer token sent to the recipe endpoint
        self.RECIPE_API_KEY: Optional[str] = os.getenv("RECIPE_API_KEY") or None
        # Gemini API key: required only when RECIPE_BACKEND=gemini
        self.GEMINI_API_KEY: str = os.getenv("GEMINI_API_KEY", "")
        self.GEMINI_MODEL: str = os.getenv("GEMINI_MODEL", "gemini-2.5-flash")
        # Temperature: 0.4 keeps suggestions varied but on-topic
        self.TEMPERATURE: float = float(os.getenv("TEMPERATURE", "0.4"))
        # Per-request network deadline in seconds (applies to each attempt)
        self.REQUEST_TIMEOUT_SECONDS: float = float(os.getenv("REQUEST_TIMEOUT_SECONDS", "30"))

        # Retry Configuration - handles transient backend failures
        # MAX_RETRIES: total attempts per request, including the first one
        self.MAX_RETRIES: int = int(os.getenv("MAX_RETRIES", "3"))
        # DELAY_BETWEEN_RETRIES: initial delay in seconds, doubled after every failed attempt
        self.DELAY_BETWEEN_RETRIES: float = float(os.getenv("DELAY_BETWEEN_RETRIES", "2"))

        # Items expiring within this many days (inclusive) are priority ingredients
        self.EXPIRING_SOON_DAYS: int = int(os.getenv("EXPIRING_SOON_DAYS", "3"))
        # Bounds on the number of recipes returned by the coverage selector
        self.MIN_RECIPES: int = int(os.getenv("MIN_RECIPES", "2"))
        self.MAX_RECIPES: int = int(os.getenv("MAX_RECIPES", "5"))
        # Difficulty hint sent with every request
        self.RECIPE_DIFFICULTY: str = os.getenv("RECIPE_DIFFICULTY", "medium").lower()
        # Log the outbound payload and raw response body at DEBUG level
        self.LOG_PAYLOADS: bool = _env_bool("LOG_PAYLOADS", "false")

    def validate(self) -> None:
        """Validate configuration values.

        Raises:
            ValueError: If any value is out of range or not one of the allowed options.
        """
        if self.RECIPE_BACKEND not in ("http", "gemini"):
            raise ValueError(f"RECIPE_BACKEND must be 'http' or 'gemini', got: {self.RECIPE_BACKEND}")
        if not self.RECIPE_API_URL.startswith(("http://", "https://")):
            raise ValueError(f"RECIPE_API_URL must be an http(s) URL, got: {self.RECIPE_API_URL}")
        if self.MAX_RETRIES < 1:
            raise ValueError(f"MAX_RETRIES must be at least 1, got: {self.MAX_RETRIES}")
        if self.DELAY_BETWEEN_RETRIES < 0:
            raise ValueError(f"DELAY_BETWEEN_RETRIES must not be negative, got: {self.DELAY_BETWEEN_RETRIES}")
        if self.REQUEST_TIMEOUT_SECONDS <= 0:
            raise ValueError(f"REQUEST_TIMEOUT_SECONDS must be positive, got: {self.REQUEST_TIMEOUT_SECONDS}")
        if self.EXPIRING_SOON_DAYS < 0:
            raise ValueError(f"EXPIRING_SOON_DAYS must not be negative, got: {self.EXPIRING_SOON_DAYS}")
        if self.MIN_RECIPES < 0:
            raise ValueError(f"MIN_RECIPES must not be negative, got: {self.MIN_RECIPES}")
        if self.MAX_RECIPES < max(self.MIN_RECIPES, 1):
            raise ValueError(
                f"MAX_RECIPES must be at least max(MIN_RECIPES, 1), got: {self.MAX_RECIPES} (MIN_RECIPES={self.MIN_RECIPES})"
            )
        if self.RECIPE_DIFFICULTY not in ("easy", "medium", "hard"):
            raise ValueError(
                f"RECIPE_DIFFICULTY must be 'easy', 'medium', or 'hard', got: {self.RECIPE_DIFFICULTY}"
            )
        if not (0.0 <= self.TEMPERATURE <= 1.0):
            raise ValueError(f"TEMPERATURE must be between 0.0 and 1.0, got: {self.TEMPERATURE}")

    def validate_backend(self) -> None:
        """Validate settings required by the selected recipe backend.

        Raises:
            ValueError: If RECIPE_BACKEND=gemini and GEMINI_API_KEY is missing.
        """
        if self.RECIPE_BACKEND == "gemini" and not self.GEMINI_API_KEY:
            raise ValueError("GEMINI_API_KEY environment variable is required when RECIPE_BACKEND=gemini")


# Create module-level config instance and validate immediately
config = Config()
config.validate()
