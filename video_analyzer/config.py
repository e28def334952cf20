"""
Configuration settings for the video analyzer application.
"""

import os
from typing import List
from pathlib import Path
from dotenv import load_dotenv


# Ensure environment variables are loaded
load_dotenv()


def _env_list(name: str, default: str) -> List[str]:
    """Read a comma-separated environment variable into a list."""
    return [item.strip() for item in os.getenv(name, default).split(",") if item.strip()]


class Config:
    """Base configuration class."""

    # Application info
    APP_NAME = "YouTube Video Analyzer"
    APP_VERSION = "0.2.0"

    # Data directories
    BASE_DIR = Path(__file__).resolve().parent.parent.absolute()
    DATA_DIR = Path(os.getenv("DATA_DIR", BASE_DIR / "data"))
    CACHE_DIR = Path(os.getenv("CACHE_DIR", DATA_DIR / "cached-videos"))
    SCREENSHOTS_DIR = Path(os.getenv("SCREENSHOTS_DIR", DATA_DIR / "screenshots"))
    SUMMARIES_DIR = Path(os.getenv("SUMMARIES_DIR", DATA_DIR / "summaries"))

    # API keys
    GROQ_API_KEY = os.getenv("GROQ_API_KEY")

    # Summarization
    LLM_PROVIDER = os.getenv("LLM_PROVIDER", "groq")
    DEFAULT_SUMMARY_MODEL = os.getenv("SUMMARY_MODEL", "llama-3.3-70b-versatile")
    SUMMARY_TEMPERATURE = float(os.getenv("SUMMARY_TEMPERATURE", "0.3"))
    SUMMARY_MAX_TOKENS = int(os.getenv("SUMMARY_MAX_TOKENS", "4096"))
    SUMMARY_LANGUAGE = os.getenv("SUMMARY_LANGUAGE", "English")

    # Caption track preference, first match wins
    SUBTITLE_PRIMARY_LANGUAGES = _env_list("SUBTITLE_PRIMARY_LANGUAGES", "en,en-US,en-GB")
    SUBTITLE_SECONDARY_LANGUAGES = _env_list("SUBTITLE_SECONDARY_LANGUAGES", "zh,zh-CN,zh-Hans")

    # Video cache policy
    CACHE_MAX_AGE_HOURS = float(os.getenv("CACHE_MAX_AGE_HOURS", "24"))
    CACHE_MAX_SIZE_GB = float(os.getenv("CACHE_MAX_SIZE_GB", "10"))
    CACHE_CLEANUP_INTERVAL_SECONDS = int(os.getenv("CACHE_CLEANUP_INTERVAL_SECONDS", "3600"))

    # Screenshots
    FFMPEG_PATH = os.getenv("FFMPEG_PATH", "ffmpeg")
    SCREENSHOT_WIDTH = int(os.getenv("SCREENSHOT_WIDTH", "1280"))
    SCREENSHOT_HEIGHT = int(os.getenv("SCREENSHOT_HEIGHT", "720"))
    SCREENSHOT_TIMEOUT = int(os.getenv("SCREENSHOT_TIMEOUT", "60"))

    # Analysis store
    STORE_BACKEND = os.getenv("STORE_BACKEND", "memory").lower()
    DATABASE_URL = os.getenv("DATABASE_URL", f"sqlite:///{DATA_DIR}/video_analyzer.db")

    PUBLIC_URL = os.getenv("PUBLIC_URL", "http://localhost:8000")

    # Create data directories if they don't exist
    @classmethod
    def initialize(cls):
        """Initialize the application configuration."""
        cls.DATA_DIR.mkdir(parents=True, exist_ok=True)
        cls.CACHE_DIR.mkdir(parents=True, exist_ok=True)
        cls.SCREENSHOTS_DIR.mkdir(parents=True, exist_ok=True)
        cls.SUMMARIES_DIR.mkdir(parents=True, exist_ok=True)

        # Validate required environment variables
        if not cls.GROQ_API_KEY:
            print("WARNING: GROQ_API_KEY environment variable not set.")
            print("Please set it in the .env file or environment variables.")


class DevelopmentConfig(Config):
    """Development configuration."""

    DEBUG = True
    LOG_LEVEL = "DEBUG"


class ProductionConfig(Config):
    """Production configuration."""

    DEBUG = False
    LOG_LEVEL = "INFO"


# Determine which configuration to use based on environment
def get_config():
    """Get the appropriate configuration based on environment."""
    env = os.getenv("ENVIRONMENT", "development").lower()
    if env == "production":
        return ProductionConfig
    else:
        return DevelopmentConfig


# Create a config instance
config = get_config()
config.initialize()
