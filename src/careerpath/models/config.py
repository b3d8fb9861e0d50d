"""Configuration models for CareerPath."""

from pydantic import BaseModel, Field, HttpUrl
from pathlib import Path
import yaml
import os
import stat


DEFAULT_CONFIG_PATH = Path.home() / ".config" / "careerpath" / "config.yaml"


class LLMConfig(BaseModel):
    """Configuration for the completion service connection."""

    endpoint: HttpUrl = Field(
        ...,
        description="OpenAI-compatible API endpoint URL (e.g. https://api.openai.com/v1)"
    )

    api_key: str = Field(
        ...,
        description="API key used when no per-request bearer token is supplied"
    )

    model: str = Field(
        default="google/gemini-2.5-flash",
        description="Model identifier sent with every completion request"
    )

    model_config = {"frozen": True}


class InsightsConfig(BaseModel):
    """Bounds for the history window fed to predictions and mentor context."""

    entry_window: int = Field(
        default=10,
        ge=1,
        le=50,
        description="Number of most recent journal entries used for predictions and context"
    )

    content_excerpt_chars: int = Field(
        default=500,
        ge=50,
        le=5000,
        description="Maximum characters of each entry's content sent for prediction"
    )

    model_config = {"frozen": True}


class StorageConfig(BaseModel):
    """Locations of the durable store and the local cache."""

    database_path: str = Field(
        default=str(Path.home() / ".local" / "share" / "careerpath" / "careerpath.db"),
        description="SQLite database file holding entries, predictions and avoidances"
    )

    cache_path: str = Field(
        default=str(Path.home() / ".cache" / "careerpath" / "local_cache.json"),
        description="JSON file backing the local key/value cache"
    )

    model_config = {"frozen": True}


class Config(BaseModel):
    """Root configuration for CareerPath."""

    llm: LLMConfig = Field(..., description="Completion service settings")
    insights: InsightsConfig = Field(default_factory=InsightsConfig, description="History window settings")
    storage: StorageConfig = Field(default_factory=StorageConfig, description="Storage locations")

    @classmethod
    def load(cls, path: Path) -> "Config":
        """
        Load configuration from YAML file.

        Validates file permissions before loading.
        Raises PermissionError if file is group/world readable.

        Args:
            path: Path to config.yaml file

        Returns:
            Validated Config instance

        Raises:
            PermissionError: If file permissions are too open
            FileNotFoundError: If config file doesn't exist
            ValueError: If YAML is invalid or validation fails
        """
        if not path.exists():
            raise FileNotFoundError(
                f"Configuration file not found at {path}\n\n"
                f"Please create the file with the following format:\n\n"
                f"llm:\n"
                f"  endpoint: https://api.openai.com/v1\n"
                f"  api_key: YOUR_API_KEY_HERE\n"
                f"  model: google/gemini-2.5-flash\n\n"
                f"insights:\n"
                f"  entry_window: 10\n"
                f"  content_excerpt_chars: 500\n"
            )

        mode = os.stat(path).st_mode
        if mode & (stat.S_IRWXG | stat.S_IRWXO):
            raise PermissionError(
                f"Config file has overly permissive permissions: {oct(mode)}\n"
                f"Run: chmod 600 {path}"
            )

        with open(path) as f:
            data = yaml.safe_load(f)

        if not isinstance(data, dict):
            raise ValueError(f"Config file must contain a YAML mapping: {path}")

        return cls(**data)

    model_config = {"frozen": True}
