# debtsentry/config.py
"""
Centralized Configuration Management

Version: 1.0.0
Features:
- Support both local (.env) and Streamlit Cloud (secrets.toml)
- Singleton pattern for efficiency
- Type-safe getters with defaults
- Business-area lookup injected from file or built-in table
"""

import os
import json
import logging
from pathlib import Path
from dotenv import load_dotenv
from typing import Dict, Any, Optional
from dataclasses import dataclass

# Initialize logger
logger = logging.getLogger(__name__)


def is_running_on_streamlit_cloud() -> bool:
    """Detect if running on Streamlit Cloud"""
    try:
        import streamlit as st
        return hasattr(st, 'secrets') and len(st.secrets) > 0
    except Exception:
        return False


@dataclass
class StorageConfig:
    """Dataset storage configuration container"""
    data_dir: str = "uploads"
    business_areas_file: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'data_dir': self.data_dir,
            'business_areas_file': self.business_areas_file,
        }


@dataclass
class DatabaseConfig:
    """Database configuration container (optional SQL row source)"""
    url: Optional[str] = None
    table: str = "aged_debt_ledger"

    def to_dict(self) -> Dict[str, Any]:
        return {
            'url': self.url,
            'table': self.table,
        }

    def is_configured(self) -> bool:
        return bool(self.url)


class Config:
    """
    Centralized configuration management

    Usage:
        from debtsentry.config import config

        data_dir = config.get_storage_config()['data_dir']
        batch_size = config.get_app_setting("SCAN_BATCH_SIZE", 50000)
    """

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        if self._initialized:
            return

        self.is_cloud = is_running_on_streamlit_cloud()
        self._load_config()
        self._initialized = True

    def _load_config(self):
        """Load configuration based on environment"""
        if self.is_cloud:
            self._load_cloud_config()
        else:
            self._load_local_config()

        self._load_app_config()
        self._log_config_status()

    def _load_cloud_config(self):
        """Load configuration from Streamlit Cloud secrets"""
        import streamlit as st

        storage_secrets = st.secrets.get("STORAGE", {})
        self._storage_config = StorageConfig(
            data_dir=storage_secrets.get("DATA_DIR", "uploads"),
            business_areas_file=storage_secrets.get("BUSINESS_AREAS_FILE"),
        )

        db_secrets = st.secrets.get("DB_CONFIG", {})
        self._db_config = DatabaseConfig(
            url=db_secrets.get("url"),
            table=db_secrets.get("table", "aged_debt_ledger"),
        )

        logger.info("☁️ Running in STREAMLIT CLOUD")

    def _load_local_config(self):
        """Load configuration from local .env file"""
        env_paths = [
            Path.cwd() / ".env",
            Path(__file__).parent.parent / ".env",
        ]

        for env_path in env_paths:
            if env_path.exists():
                load_dotenv(env_path)
                logger.info(f"Loaded .env from: {env_path}")
                break

        self._storage_config = StorageConfig(
            data_dir=os.getenv("DATA_DIR", "uploads"),
            business_areas_file=os.getenv("BUSINESS_AREAS_FILE"),
        )

        self._db_config = DatabaseConfig(
            url=os.getenv("DATABASE_URL"),
            table=os.getenv("DB_TABLE", "aged_debt_ledger"),
        )

        logger.info("💻 Running in LOCAL environment")

    def _load_app_config(self):
        """Load application-specific settings"""
        self._app_config = {
            # Scanning
            "SCAN_BATCH_SIZE": int(os.getenv("SCAN_BATCH_SIZE", "50000")),

            # Listing
            "DEFAULT_PAGE_SIZE": int(os.getenv("DEFAULT_PAGE_SIZE", "100")),
            "MAX_PAGE_SIZE": int(os.getenv("MAX_PAGE_SIZE", "10000")),

            # Cache (presentation layer only)
            "CACHE_TTL_SECONDS": int(os.getenv("CACHE_TTL_SECONDS", "300")),

            # Database pool
            "DB_POOL_RECYCLE": int(os.getenv("DB_POOL_RECYCLE", "3600")),
        }

    def _log_config_status(self):
        """Log configuration status"""
        logger.info(f"✅ Data dir: {self._storage_config.data_dir}")
        logger.info(f"✅ SQL source: {'Configured' if self._db_config.is_configured() else 'Not configured'}")
        logger.info(
            f"✅ Business areas: "
            f"{self._storage_config.business_areas_file or 'built-in table'}"
        )

    # ==================== PUBLIC GETTERS ====================

    def get_storage_config(self) -> Dict[str, Any]:
        """Get storage configuration as dictionary"""
        return self._storage_config.to_dict()

    def get_db_config(self) -> Dict[str, Any]:
        """Get database configuration as dictionary"""
        return self._db_config.to_dict()

    def get_app_setting(self, key: str, default: Any = None) -> Any:
        """Get application setting with default"""
        return self._app_config.get(key, default)

    def load_business_area_names(self) -> Optional[Dict[str, str]]:
        """
        Load the business-area code → name table from BUSINESS_AREAS_FILE.

        Returns None when no file is configured, so callers fall back to
        the built-in table.
        """
        path = self._storage_config.business_areas_file
        if not path:
            return None

        with open(path, "r", encoding="utf-8") as f:
            names = json.load(f)
        return {str(code): str(name) for code, name in names.items()}


# ==================== SINGLETON INSTANCE ====================

config = Config()


__all__ = [
    'config',
    'Config',
]
