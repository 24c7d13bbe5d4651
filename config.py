"""
Configuration Management for Travel Geo Engine
==============================================

This module handles:
- Loading environment variables from .env file
- Validating geofence and routing parameters
- Providing centralized configuration access
- Setting up logging handlers

Usage:
    from config import config
    base_radius = config.ARRIVAL_BASE_RADIUS_M
    store_dir = config.LEARNING_DATA_DIR
"""

import os
import logging
from pathlib import Path
from dotenv import load_dotenv
from pydantic_settings import BaseSettings
from pydantic import validator


class Config(BaseSettings):
    """
    Centralized configuration class using Pydantic for validation
    Loads settings from environment variables with type checking
    """

    # =============================================================================
    # APPLICATION SETTINGS
    # =============================================================================

    APP_NAME: str = "Travel Geo Engine"
    APP_VERSION: str = "1.0.0"
    DEBUG_MODE: bool = False
    LOG_LEVEL: str = "INFO"

    @validator('LOG_LEVEL')
    def validate_log_level(cls, v):
        """Ensure log level is one the logging module knows"""
        if v.upper() not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {v}")
        return v.upper()

    # =============================================================================
    # ARRIVAL CONFIRMATION PARAMETERS
    # =============================================================================

    ARRIVAL_STORAGE_KEY: str = "travel_arrival_learning"
    ARRIVAL_BASE_RADIUS_M: float = 50.0
    ARRIVAL_LEARNING_THRESHOLD: int = 5  # Confirmations before learned radius is used
    ARRIVAL_MAX_CONFIRMATIONS: int = 50  # Per category, oldest evicted first
    ARRIVAL_MAX_HISTORY_ENTRIES: int = 1000
    ARRIVAL_CONFIRMATION_THRESHOLD: float = 0.6
    CONTIGUOUS_POI_THRESHOLD_M: float = 20.0

    @validator('ARRIVAL_BASE_RADIUS_M', 'CONTIGUOUS_POI_THRESHOLD_M')
    def validate_positive_distance(cls, v):
        """Ensure radii are positive"""
        if v <= 0:
            raise ValueError(f"Distance must be positive, got {v}")
        return v

    @validator('ARRIVAL_LEARNING_THRESHOLD', 'ARRIVAL_MAX_CONFIRMATIONS',
               'ARRIVAL_MAX_HISTORY_ENTRIES')
    def validate_positive_count(cls, v):
        """Ensure counts are at least 1"""
        if v < 1:
            raise ValueError(f"Count must be at least 1, got {v}")
        return v

    @validator('ARRIVAL_CONFIRMATION_THRESHOLD')
    def validate_confidence_threshold(cls, v):
        """Ensure confirmation threshold is a usable confidence"""
        if not 0 < v <= 1:
            raise ValueError(f"Confidence threshold must be in (0, 1], got {v}")
        return v

    # =============================================================================
    # ROUTING PARAMETERS
    # =============================================================================

    HIGH_PRIORITY_BIAS: float = 0.7  # Distance multiplier for high-priority stops
    MULTI_DESTINATION_THRESHOLD_KM: float = 50.0

    @validator('HIGH_PRIORITY_BIAS')
    def validate_priority_bias(cls, v):
        """Bias must shorten, never lengthen, the effective distance"""
        if not 0 < v <= 1:
            raise ValueError(f"Priority bias must be in (0, 1], got {v}")
        return v

    # =============================================================================
    # CACHE AND GEOCODER
    # =============================================================================

    CACHE_TTL: int = 86400  # Geocoder results are stable for a day
    CACHE_MAX_SIZE: int = 1000

    NOMINATIM_URL: str = "https://nominatim.openstreetmap.org/search"
    GEOCODER_USER_AGENT: str = "TravelGeoEngine/1.0"
    GEOCODER_TIMEOUT: int = 10
    GEOCODER_RETRY_COUNT: int = 3

    # =============================================================================
    # PERFORMANCE
    # =============================================================================

    SLOW_FUNCTION_THRESHOLD_S: float = 1.0

    # =============================================================================
    # FILE PATHS
    # =============================================================================

    LEARNING_DATA_DIR: str = "./data/learning"
    ENABLE_FILE_LOGGING: bool = False
    LOG_FILE_PATH: str = "./logs/app.log"
    ERROR_LOG_PATH: str = "./logs/errors.log"

    # =============================================================================
    # CONFIGURATION SETUP
    # =============================================================================

    class Config:
        """Pydantic configuration"""
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True
        extra = "ignore"

    def create_directories(self) -> None:
        """Create log directories if file logging is enabled"""
        if not self.ENABLE_FILE_LOGGING:
            return

        for directory in (os.path.dirname(self.LOG_FILE_PATH),
                          os.path.dirname(self.ERROR_LOG_PATH)):
            if directory:
                Path(directory).mkdir(parents=True, exist_ok=True)

    def setup_logging(self) -> None:
        """Configure application logging"""
        log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

        handlers = [logging.StreamHandler()]
        if self.ENABLE_FILE_LOGGING:
            handlers.append(logging.FileHandler(self.LOG_FILE_PATH))

        logging.basicConfig(
            level=getattr(logging, self.LOG_LEVEL),
            format=log_format,
            handlers=handlers
        )

        if self.ENABLE_FILE_LOGGING:
            # Create error-specific logger
            error_handler = logging.FileHandler(self.ERROR_LOG_PATH)
            error_handler.setLevel(logging.ERROR)
            error_handler.setFormatter(logging.Formatter(log_format))
            logging.getLogger().addHandler(error_handler)

    def validate_configuration(self) -> bool:
        """
        Validate cross-field constraints
        Returns True if configuration is valid, raises exception otherwise
        """
        if self.ARRIVAL_LEARNING_THRESHOLD > self.ARRIVAL_MAX_CONFIRMATIONS:
            message = (
                f"Learning threshold ({self.ARRIVAL_LEARNING_THRESHOLD}) cannot exceed "
                f"max confirmations ({self.ARRIVAL_MAX_CONFIRMATIONS})"
            )
            logging.error(f"Configuration validation failed: {message}")
            raise ValueError(message)

        return True


def load_configuration() -> Config:
    """
    Load and validate configuration from environment
    Creates directories and sets up logging
    """
    try:
        # Load environment variables from .env file
        load_dotenv()

        config = Config()
        config.create_directories()
        config.setup_logging()
        config.validate_configuration()

        logging.info(f"Configuration loaded successfully for {config.APP_NAME} v{config.APP_VERSION}")
        return config

    except Exception as e:
        print(f"Failed to load configuration: {e}")
        raise


# =============================================================================
# GLOBAL CONFIGURATION INSTANCE
# =============================================================================

config = load_configuration()

DEBUG_MODE = config.DEBUG_MODE
