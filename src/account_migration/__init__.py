"""Account Migration - Export and import user accounts of an identity project."""

from .cli import app
from .config import MigrationConfig

__version__ = "0.1.0"
__all__ = ["app", "MigrationConfig"]
