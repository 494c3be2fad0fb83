"""
Towerdef Configuration

Loads configuration from environment variables with sensible defaults.
"""

import os
from pathlib import Path
from dotenv import load_dotenv

# Load .env file if it exists
load_dotenv()


class Config:
    """Application configuration loaded from environment variables."""

    # Project Paths
    PROJECT_ROOT: Path = Path(__file__).parent.parent

    # Where MapLoader looks for .tmx/.json maps when no directory is given
    MAPS_DIR: Path = Path(
        os.getenv("TOWERDEF_MAPS_DIR", str(PROJECT_ROOT / "examples" / "maps"))
    )

    # Route enumeration bounds. Dense maps branch exponentially, so both are
    # always enforced.
    MAX_PATHS: int = int(os.getenv("TOWERDEF_MAX_PATHS", "10000"))
    MAX_PATH_DEPTH: int = int(os.getenv("TOWERDEF_MAX_PATH_DEPTH", "1024"))

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    @classmethod
    def validate(cls) -> None:
        """Validate configuration and raise errors if values are unusable."""
        if cls.MAX_PATHS < 1:
            raise ValueError(
                "TOWERDEF_MAX_PATHS must be >= 1 "
                f"(got {cls.MAX_PATHS})"
            )

        if cls.MAX_PATH_DEPTH < 1:
            raise ValueError(
                "TOWERDEF_MAX_PATH_DEPTH must be >= 1 "
                f"(got {cls.MAX_PATH_DEPTH})"
            )

    @classmethod
    def display(cls) -> str:
        """Return a formatted string showing current configuration."""
        lines = [
            "Towerdef Configuration:",
            f"  Maps Directory: {cls.MAPS_DIR}",
            f"  Max Paths: {cls.MAX_PATHS}",
            f"  Max Path Depth: {cls.MAX_PATH_DEPTH}",
            f"  Log Level: {cls.LOG_LEVEL}",
        ]
        return "\n".join(lines)
