"""
Application settings management.

Settings are loaded from environment variables with .env file support.
All configuration is validated using Pydantic.
"""

from pathlib import Path
from typing import List, Literal, Optional

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment.

    Environment variables take precedence over .env file values.
    """

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    # ==========================================================================
    # Paths
    # ==========================================================================

    config_dir: Path = Field(
        default=Path("config"),
        description="Directory containing YAML configuration files",
    )
    export_dir: Path = Field(
        default=Path("data/exports"), description="Directory for exported MVP documents"
    )

    # ==========================================================================
    # Database
    # ==========================================================================

    # Unset means sessions, customers and feedback live in process memory
    database_path: Optional[Path] = Field(
        default=None, description="Path to SQLite database file (optional)"
    )

    # ==========================================================================
    # LLM Configuration
    # ==========================================================================

    openai_api_key: Optional[str] = Field(default=None, description="OpenAI API key")
    llm_model: str = Field(default="gpt-4o", description="Chat completion model")
    llm_base_url: str = Field(
        default="https://api.openai.com/v1",
        description="Base URL of an OpenAI-compatible API",
    )
    llm_temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    llm_max_tokens: int = Field(default=2000, ge=1)
    llm_timeout: float = Field(default=60.0, gt=0, description="Request timeout (s)")

    # ==========================================================================
    # Integrations
    # ==========================================================================

    search_api_key: Optional[str] = Field(
        default=None, description="Web search API key (market research)"
    )
    shopify_api_key: Optional[str] = Field(default=None)
    shopify_api_secret: Optional[str] = Field(default=None)
    github_token: Optional[str] = Field(default=None)
    jwt_secret: Optional[str] = Field(default=None)

    # ==========================================================================
    # Server Configuration
    # ==========================================================================

    environment: Literal["development", "production"] = Field(
        default="production", description="Deployment environment"
    )
    host: str = Field(default="127.0.0.1", description="Server host address")
    port: int = Field(default=8000, ge=1, le=65535, description="Server port")
    debug: bool = Field(default=False, description="Enable debug mode")


# ============================================================================
# Wizard Configuration (from YAML)
# ============================================================================


class AccessConfig(BaseModel):
    """Access gate configuration."""

    exempt_prefixes: List[str] = Field(
        default_factory=lambda: ["/admin"],
        description="Path prefixes that never require a customer",
    )
    exempt_paths: List[str] = Field(
        default_factory=lambda: ["/terms"], description="Exact paths that are exempt"
    )
    dev_bypass: bool = Field(
        default=True,
        description="Allow anonymous use when running in development",
    )


class FreePlanConfig(BaseModel):
    """Defaults applied to customers created without a paid subscription."""

    plan_name: str = "Free"
    attempts: int = Field(default=3, ge=0)
    price: float = 0.0


class ConversationConfig(BaseModel):
    """Problem-refinement conversation limits."""

    max_answers: int = Field(
        default=4,
        ge=1,
        le=20,
        description="Answers collected before a refined problem is forced",
    )


class WizardConfig(BaseModel):
    """
    Complete wizard configuration loaded from wizard_config.yaml.
    """

    access: AccessConfig = Field(default_factory=AccessConfig)
    free_plan: FreePlanConfig = Field(default_factory=FreePlanConfig)
    conversation: ConversationConfig = Field(default_factory=ConversationConfig)


def load_wizard_config(config_path: Optional[Path] = None) -> WizardConfig:
    """
    Load wizard configuration from YAML file.

    Args:
        config_path: Path to wizard_config.yaml. If None, uses default path.

    Returns:
        WizardConfig with validated settings (defaults if the file is absent)

    Raises:
        ValueError: If config validation fails
    """
    if config_path is None:
        project_config = (
            Path(__file__).resolve().parent.parent.parent
            / "config"
            / "wizard_config.yaml"
        )
        cwd_config = Path.cwd() / "config" / "wizard_config.yaml"
        if project_config.exists():
            config_path = project_config
        elif cwd_config.exists():
            config_path = cwd_config
        else:
            return WizardConfig()

    config_path = Path(config_path).resolve()

    if not config_path.exists():
        return WizardConfig()

    with open(str(config_path)) as f:
        config_data = yaml.safe_load(f)

    if not config_data:
        return WizardConfig()

    return WizardConfig(**config_data)


# Global settings instance
settings = Settings()

# Global wizard config instance
wizard_config = load_wizard_config()
