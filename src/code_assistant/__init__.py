"""Code assistant package."""

from .config import IndexingConfig, ProjectConfig, RetrievalConfig

__all__ = ["IndexingConfig", "ProjectConfig", "RetrievalConfig"]
