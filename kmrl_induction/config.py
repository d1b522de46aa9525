# kmrl_induction/config.py
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from dotenv import load_dotenv
from typing import Optional
import logging
import os
import yaml
from pathlib import Path

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Storage: "memory" for local/dev and tests, "mongo" for MongoDB
    storage_backend: str = Field(default="memory")
    mongodb_url: str = Field(default="mongodb://localhost:27017/kmrl_db")
    database_name: str = Field(default="kmrl_db")
    seed_demo_fleet: bool = Field(default=True)

    # API Configuration
    api_key: Optional[str] = Field(default=None)
    log_level: str = Field(default="INFO")
    debug: bool = Field(default=False)

    # Paging defaults for list endpoints
    scored_induction_default_limit: int = Field(default=25)
    scored_induction_max_limit: int = Field(default=100)
    ml_suggestion_default_limit: int = Field(default=10)
    ml_suggestion_max_limit: int = Field(default=100)
    audit_log_default_limit: int = Field(default=50)
    audit_log_max_limit: int = Field(default=200)

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


load_dotenv(".env")

# Load defaults from YAML if available
_defaults_path = Path(__file__).parent / "config" / "defaults.yaml"
_defaults = {}
if _defaults_path.exists():
    try:
        with open(_defaults_path, "r") as f:
            _defaults = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.warning(f"Could not load defaults.yaml: {e}")

settings = Settings()

# Override settings with defaults.yaml values if not set in environment
_YAML_KEYS = {
    "SCORED_INDUCTION_DEFAULT_LIMIT": ("scored_induction_default_limit", int),
    "SCORED_INDUCTION_MAX_LIMIT": ("scored_induction_max_limit", int),
    "ML_SUGGESTION_DEFAULT_LIMIT": ("ml_suggestion_default_limit", int),
    "ML_SUGGESTION_MAX_LIMIT": ("ml_suggestion_max_limit", int),
    "AUDIT_LOG_DEFAULT_LIMIT": ("audit_log_default_limit", int),
    "AUDIT_LOG_MAX_LIMIT": ("audit_log_max_limit", int),
    "SEED_DEMO_FLEET": ("seed_demo_fleet", bool),
}
for _key, (_attr, _cast) in _YAML_KEYS.items():
    if _key in _defaults and not os.getenv(_key):
        setattr(settings, _attr, _cast(_defaults[_key]))
