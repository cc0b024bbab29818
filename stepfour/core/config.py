"""
Configuration management for StepFour.

Loads settings from environment variables.
"""

import os
from dataclasses import dataclass


@dataclass
class Config:
    """Application configuration."""

    # Storage
    database_path: str = "data/stepfour.db"
    storage_key: str = "resentments"

    # Logging
    log_level: str = "WARNING"

    # Export
    export_dir: str = "data"

    # Display
    date_format: str = "%Y-%m-%d"

    @classmethod
    def from_env(cls) -> "Config":
        """Load configuration from environment variables."""
        return cls(
            database_path=os.getenv("STEPFOUR_DB_PATH", "data/stepfour.db"),
            storage_key=os.getenv("STEPFOUR_STORAGE_KEY", "resentments"),
            log_level=os.getenv("STEPFOUR_LOG_LEVEL", "WARNING").upper(),
            export_dir=os.getenv("STEPFOUR_EXPORT_DIR", "data"),
            date_format=os.getenv("STEPFOUR_DATE_FORMAT", "%Y-%m-%d"),
        )

    def get_summary(self) -> str:
        """Get a summary of current settings."""
        return f"""Database: {self.database_path}
Storage Key: {self.storage_key}
Log Level: {self.log_level}
Export Dir: {self.export_dir}
Date Format: {self.date_format}
"""
