"""Configuration schema using Pydantic."""

from pathlib import Path

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class MemoryConfig(BaseModel):
    """Memory store configuration."""
    root: str = ".ctxgit/memory"
    legacy_dir: str | None = None  # Flat record store; defaults to the memory root
    log_lines: int = 20  # Default trace-log window for context(level="log")
    branch_commits: int = 10  # Commits shown by context(level="branch")
    recall_limit: int = 20
    roadmap_summary_chars: int = 500
    merge_inline_history: bool = True  # Inline the source commit.md into merge blocks

    @field_validator("log_lines", "branch_commits", "recall_limit", "roadmap_summary_chars")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        """Window sizes and limits must be positive."""
        if v <= 0:
            raise ValueError("Value must be a positive integer")
        return v


class Config(BaseSettings):
    """Root configuration for ctxgit."""
    memory: MemoryConfig = Field(default_factory=MemoryConfig)
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_prefix="CTXGIT_",
        env_nested_delimiter="__",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Normalise and check the log level name."""
        level = v.upper()
        if level not in {"TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level

    @property
    def memory_path(self) -> Path:
        """Get expanded memory root path."""
        return Path(self.memory.root).expanduser()

    @property
    def legacy_path(self) -> Path:
        """Get expanded legacy record directory (memory root when unset)."""
        if self.memory.legacy_dir:
            return Path(self.memory.legacy_dir).expanduser()
        return self.memory_path
