"""Configuration module for ctxgit."""

from ctxgit.config.loader import load_config, save_config, get_config_path
from ctxgit.config.schema import Config, MemoryConfig

__all__ = ["Config", "MemoryConfig", "load_config", "save_config", "get_config_path"]
