"""Application configuration helpers."""

from __future__ import annotations

from .env import require_env_vars
from .errors import ConfigurationError, MissingConfigurationError
from .pipeline import (
    DEFAULT_SERVER_VOCABULARY_VERSIONS,
    DuplicateDetectionConfig,
    ImportPipelineConfig,
    get_pipeline_config,
)
from .storage import DatabaseConfig, StorageConfig, get_database_config, get_storage_config

__all__ = [
    "DEFAULT_SERVER_VOCABULARY_VERSIONS",
    "ConfigurationError",
    "DatabaseConfig",
    "DuplicateDetectionConfig",
    "ImportPipelineConfig",
    "MissingConfigurationError",
    "StorageConfig",
    "get_database_config",
    "get_pipeline_config",
    "get_storage_config",
    "require_env_vars",
]
