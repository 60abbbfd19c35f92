"""
Configuration loader for the CRM pipeline jobs.
Loads configuration from YAML files and environment variables.
"""

from typing import Dict, Any, List, Optional
from pathlib import Path
import yaml
import os
from pydantic import BaseModel, Field
import logging

from .errors import ConfigurationError

logger = logging.getLogger(__name__)


class SupabaseSettings(BaseModel):
    """Connection settings for the backing Supabase project."""

    url: str = ""
    service_role_key: str = ""

    def require(self) -> "SupabaseSettings":
        """Fail fast when either credential is absent."""
        missing = []
        if not self.url:
            missing.append("SUPABASE_URL")
        if not self.service_role_key:
            missing.append("SUPABASE_SERVICE_ROLE_KEY")
        if missing:
            raise ConfigurationError(f"Missing required configuration: {', '.join(missing)}")
        return self


class AlertSettings(BaseModel):
    """Thresholds for the check-alerts job."""

    stalled_days: int = 7
    late_stage_stalled_days: int = 3
    late_stages: List[str] = Field(default_factory=lambda: ["negotiation", "verbal_commitment"])
    coverage_threshold: float = 3.0
    monthly_quota: float = Field(default=100000.0, gt=0)  # per rep
    dedup_window_hours: int = 24


class SchedulerSettings(BaseModel):
    """In-app scheduler (production only)."""

    enabled: bool = False
    check_alerts_cron: str = "0 * * * *"  # hourly
    forecast_snapshot_cron: str = "0 6 * * 1"  # Monday 6 AM
    timezone: str = "UTC"


class CRMConfig(BaseModel):
    """Main configuration."""

    environment: str = "development"
    log_level: str = "INFO"

    supabase: SupabaseSettings = Field(default_factory=SupabaseSettings)
    alerts: AlertSettings = Field(default_factory=AlertSettings)
    scheduler: SchedulerSettings = Field(default_factory=SchedulerSettings)

    api_prefix: str = "/api/v1"

    class Config:
        extra = "allow"


class ConfigLoader:
    """Load and manage CRM job configuration."""

    def __init__(self, config_dir: str = "config"):
        """
        Initialize config loader.

        Args:
            config_dir: Directory containing config files
        """
        self.config_dir = Path(config_dir)
        self.config: Optional[CRMConfig] = None
        self.load()

    def load(self) -> CRMConfig:
        """Load configuration from YAML and environment variables."""

        env = os.getenv("CRM_ENV", "development")
        config_file = self.config_dir / f"{env}.yaml"

        config = self._load_yaml(self.config_dir / "default.yaml")

        if config_file.exists():
            _deep_update(config, self._load_yaml(config_file))
        else:
            logger.debug(f"Config file not found: {config_file}, using defaults")

        _deep_update(config, self._load_from_env())
        config.setdefault("environment", env)

        self.config = CRMConfig(**config)
        logger.info(f"Configuration loaded (environment: {self.config.environment})")
        return self.config

    def _load_yaml(self, path: Path) -> Dict[str, Any]:
        """Load YAML config file."""
        if not path.exists():
            return {}

        try:
            with open(path, "r") as f:
                data = yaml.safe_load(f)
                return data or {}
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Failed to load YAML config {path}: {e}")
            return {}

    def _load_from_env(self) -> Dict[str, Any]:
        """Load configuration from environment variables."""
        config: Dict[str, Any] = {}

        supabase = {}
        if supabase_url := os.getenv("SUPABASE_URL"):
            supabase["url"] = supabase_url
        if service_key := os.getenv("SUPABASE_SERVICE_ROLE_KEY"):
            supabase["service_role_key"] = service_key
        if supabase:
            config["supabase"] = supabase

        alerts = {}
        if quota := os.getenv("CRM_MONTHLY_QUOTA"):
            alerts["monthly_quota"] = float(quota)
        if threshold := os.getenv("CRM_COVERAGE_THRESHOLD"):
            alerts["coverage_threshold"] = float(threshold)
        if alerts:
            config["alerts"] = alerts

        if environment := os.getenv("ENVIRONMENT"):
            config["environment"] = environment
            config.setdefault("scheduler", {})["enabled"] = environment == "production"

        if log_level := os.getenv("CRM_LOG_LEVEL"):
            config["log_level"] = log_level

        return config

    def get(self) -> CRMConfig:
        """Get current configuration."""
        if not self.config:
            self.load()
        return self.config

    def reload(self):
        """Reload configuration (useful for development)."""
        logger.info("Reloading configuration...")
        self.load()


def _deep_update(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            _deep_update(base[key], value)
        else:
            base[key] = value
    return base


# Global config instance
_global_config_loader: Optional[ConfigLoader] = None


def get_config() -> CRMConfig:
    """Get the global configuration."""
    global _global_config_loader
    if _global_config_loader is None:
        _global_config_loader = ConfigLoader(os.getenv("CRM_CONFIG_DIR", "config"))
    return _global_config_loader.get()


def initialize_config(config_dir: str = "config") -> CRMConfig:
    """Initialize the global configuration loader."""
    global _global_config_loader
    _global_config_loader = ConfigLoader(config_dir)
    return _global_config_loader.get()


def reset_config():
    """Drop the cached configuration (tests, reloads)."""
    global _global_config_loader
    _global_config_loader = None
