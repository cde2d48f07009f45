"""Configuration errors."""


class ConfigError(Exception):
    """Raised when the YAML config file, an override layer or the merged result is invalid."""
