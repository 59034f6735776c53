"""
Configuration loader for Fundex.
Loads the appropriate configuration based on environment with support for
local overrides and environment-variable secrets.
"""

import os
import logging
import yaml
from typing import Dict, Any, Optional
from dotenv import load_dotenv

from utils.error_handling import ConfigurationError

# Load environment variables from .env file
load_dotenv()

logger = logging.getLogger("fundex.config")

VALID_ENVIRONMENTS = ('development', 'staging', 'production')

# Environment variables that override individual settings
ENV_OVERRIDES = {
    "FUNDEX_GCP_PROJECT": ("google_cloud", "project_id"),
    "FUNDEX_GCP_LOCATION": ("google_cloud", "location"),
    "FUNDEX_OCR_PROCESSOR_ID": ("google_cloud", "ocr_processor_id"),
    "FUNDEX_GST_REGISTRY_URL": ("gst", "registry_url"),
}


class ConfigLoader:
    """
    Configuration loader for Fundex with environment and override support.

    Features:
    - Environment-based configuration (dev/staging/prod)
    - Local override support
    - Environment-variable overrides for deployment secrets
    - Configuration validation
    """

    def __init__(self, env: Optional[str] = None, config_dir: Optional[str] = None):
        """
        Initialize the configuration loader.

        Args:
            env: Optional environment override (development, staging, production)
            config_dir: Directory holding the ``{env}.yaml`` files
        """
        self.env = env or os.environ.get('FUNDEX_ENV', 'development')
        self.config_dir = config_dir or os.path.dirname(os.path.abspath(__file__))
        self.config_cache: Dict[str, Dict[str, Any]] = {}

        if self.env not in VALID_ENVIRONMENTS:
            logger.warning(f"Invalid environment: {self.env}, defaulting to development")
            self.env = 'development'

        logger.info(f"Initialized ConfigLoader for environment: {self.env}")

    def load_config(self, reload: bool = False) -> Dict[str, Any]:
        """
        Load the appropriate configuration based on environment.

        Args:
            reload: Force reload configuration from disk

        Returns:
            Dict[str, Any]: Configuration dictionary
        """
        if "main" in self.config_cache and not reload:
            return self.config_cache["main"]

        config_path = os.path.join(self.config_dir, f"{self.env}.yaml")

        logger.info(f"Loading configuration from {config_path}")

        if not os.path.exists(config_path):
            logger.error(f"Configuration file not found: {config_path}")
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(config_path, 'r') as config_file:
            config = yaml.safe_load(config_file) or {}

        config['environment'] = self.env

        local_config_path = os.path.join(self.config_dir, f"{self.env}.local.yaml")
        if os.path.exists(local_config_path):
            logger.info(f"Loading local override configuration from {local_config_path}")
            with open(local_config_path, 'r') as local_config_file:
                local_config = yaml.safe_load(local_config_file)
                if local_config:
                    _deep_merge(config, local_config)

        self._apply_env_overrides(config)

        if not self.validate_config(config):
            raise ConfigurationError(
                f"Invalid configuration for environment {self.env}",
                details={"config_path": config_path}
            )

        self.config_cache["main"] = config

        return config

    def _apply_env_overrides(self, config: Dict[str, Any]) -> None:
        """
        Apply settings supplied through environment variables.

        Args:
            config: Configuration to update in place
        """
        for env_var, (section, key) in ENV_OVERRIDES.items():
            value = os.environ.get(env_var)
            if value:
                config.setdefault(section, {})[key] = value
                logger.debug(f"Applied {env_var} override to {section}.{key}")

    def get_section(self, name: str) -> Dict[str, Any]:
        """
        Get one named section of the configuration.

        Args:
            name: Section name, e.g. ``gst`` or ``ocr``

        Returns:
            Dict[str, Any]: The section, or an empty dict
        """
        return self.load_config().get(name, {})

    def validate_config(self, config: Dict[str, Any]) -> bool:
        """
        Validate the loaded configuration.

        Args:
            config: Configuration to validate

        Returns:
            bool: True if configuration is valid, False otherwise
        """
        required_keys = ["google_cloud", "gst"]
        missing_keys = [key for key in required_keys if key not in config]

        if missing_keys:
            logger.error(f"Missing required configuration keys: {missing_keys}")
            return False

        if not config["gst"].get("registry_url"):
            logger.error("Missing required gst.registry_url in configuration")
            return False

        threshold = config.get("verification", {}).get("flag_threshold", 50)
        if not 0 <= threshold <= 100:
            logger.error(f"verification.flag_threshold must be within 0-100, got {threshold}")
            return False

        return True


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """
    Deep merge two dictionaries, with override values taking precedence.

    Args:
        base: Base dictionary
        override: Dictionary with override values

    Returns:
        Dict[str, Any]: Merged dictionary
    """
    for key, value in override.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value
    return base


def load_config(reload: bool = False, env: Optional[str] = None) -> Dict[str, Any]:
    """
    Load the appropriate configuration based on environment.

    Args:
        reload: Force reload configuration from disk
        env: Optional environment override

    Returns:
        Dict[str, Any]: Configuration dictionary
    """
    loader = ConfigLoader(env=env)
    return loader.load_config(reload=reload)
