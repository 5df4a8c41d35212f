"""
Configuration settings for the Case & Report Tracker application.
"""

import os

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


def _split(value: str):
    return [part.strip().lower() for part in value.split(",") if part.strip()]


class Config:
    """Base configuration class"""

    # Flask Configuration
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-key-change-in-production")
    FLASK_ENV = os.getenv("FLASK_ENV", "development")
    DEBUG = os.getenv("FLASK_DEBUG", "True").lower() == "true"

    # Database Configuration
    DB_HOST = os.getenv("DB_HOST", "localhost")
    DB_PORT = int(os.getenv("DB_PORT", 5432))
    DB_NAME = os.getenv("DB_NAME", "case_tracker")
    DB_USER = os.getenv("DB_USER", "postgres")
    DB_PASSWORD = os.getenv("DB_PASSWORD", "postgres")
    DB_MIN_CONNECTIONS = int(os.getenv("DB_MIN_CONNECTIONS", 1))
    DB_MAX_CONNECTIONS = int(os.getenv("DB_MAX_CONNECTIONS", 10))

    # Application Settings
    APP_HOST = os.getenv("APP_HOST", "0.0.0.0")
    APP_PORT = int(os.getenv("APP_PORT", 5000))

    MAX_CONTENT_LENGTH = 2 * 1024 * 1024
    JSON_SORT_KEYS = False

    # Persistence: ordered fallback chain of collection backends
    PERSISTENCE_BACKENDS = _split(os.getenv("PERSISTENCE_BACKENDS", "postgres,local"))
    STORAGE_DIR = os.getenv("STORAGE_DIR", "data")
    PERSIST_ASYNC = os.getenv("PERSIST_ASYNC", "true").lower() == "true"

    # Reference data and accounts
    PROSECUTOR_BACKEND = os.getenv("PROSECUTOR_BACKEND", "postgres").lower()  # 'postgres' or 'static'
    PROSECUTORS_FILE = os.getenv("PROSECUTORS_FILE", "")
    AUTH_BACKEND = os.getenv("AUTH_BACKEND", "postgres").lower()  # 'postgres' or 'memory'

    # Deadline rules
    DEADLINE_WARNING_DAYS = int(os.getenv("DEADLINE_WARNING_DAYS", 15))
    REPORT_OVERDUE_DAYS = int(os.getenv("REPORT_OVERDUE_DAYS", 30))

    # Logging Configuration
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    LOG_FORMAT = os.getenv("LOG_FORMAT", "development")  # 'json' for production, 'development' for dev
    LOG_FILE = os.getenv("LOG_FILE", "logs/app.log")
    LOG_MAX_BYTES = int(os.getenv("LOG_MAX_BYTES", str(10 * 1024 * 1024)))  # 10MB
    LOG_BACKUP_COUNT = int(os.getenv("LOG_BACKUP_COUNT", "5"))
    LOG_ENABLE_CONSOLE = os.getenv("LOG_ENABLE_CONSOLE", "true").lower() == "true"

    @classmethod
    def uses_database(cls) -> bool:
        return (
            "postgres" in cls.PERSISTENCE_BACKENDS
            or cls.PROSECUTOR_BACKEND == "postgres"
            or cls.AUTH_BACKEND == "postgres"
        )

    @classmethod
    def get_database_config(cls):
        """Get database configuration as dictionary"""
        return {
            "host": cls.DB_HOST,
            "port": cls.DB_PORT,
            "database": cls.DB_NAME,
            "user": cls.DB_USER,
            "password": cls.DB_PASSWORD,
            "min_connections": cls.DB_MIN_CONNECTIONS,
            "max_connections": cls.DB_MAX_CONNECTIONS,
        }

    @classmethod
    def validate_config(cls):
        """Validate required configuration"""
        missing_vars = []
        if cls.uses_database():
            for var in ["DB_HOST", "DB_NAME", "DB_USER", "DB_PASSWORD"]:
                if not getattr(cls, var):
                    missing_vars.append(var)
        if "local" in cls.PERSISTENCE_BACKENDS and not cls.STORAGE_DIR:
            missing_vars.append("STORAGE_DIR")
        if cls.PROSECUTOR_BACKEND == "static" and cls.PROSECUTORS_FILE and not os.path.exists(cls.PROSECUTORS_FILE):
            raise ValueError(f"PROSECUTORS_FILE not found: {cls.PROSECUTORS_FILE}")

        if missing_vars:
            raise ValueError(f"Missing required configuration variables: {', '.join(missing_vars)}")

        unknown = [name for name in cls.PERSISTENCE_BACKENDS if name not in ("postgres", "local")]
        if unknown or not cls.PERSISTENCE_BACKENDS:
            raise ValueError(f"Invalid PERSISTENCE_BACKENDS: {', '.join(unknown) or 'empty'}")
        if cls.PROSECUTOR_BACKEND not in ("postgres", "static"):
            raise ValueError(f"Invalid PROSECUTOR_BACKEND: {cls.PROSECUTOR_BACKEND}")
        if cls.AUTH_BACKEND not in ("postgres", "memory"):
            raise ValueError(f"Invalid AUTH_BACKEND: {cls.AUTH_BACKEND}")

        return True


class DevelopmentConfig(Config):
    """Development configuration"""

    DEBUG = True
    FLASK_ENV = "development"


class ProductionConfig(Config):
    """Production configuration"""

    DEBUG = False
    FLASK_ENV = "production"

    # Override defaults for production
    SECRET_KEY = os.getenv("SECRET_KEY") or "MUST_BE_SET_IN_PRODUCTION"  # Must be set in production
    SESSION_COOKIE_SECURE = True
    SESSION_COOKIE_HTTPONLY = True

    # Production logging defaults
    LOG_FORMAT = os.getenv("LOG_FORMAT", "json")
    LOG_LEVEL = os.getenv("LOG_LEVEL", "WARNING")
    LOG_ENABLE_CONSOLE = os.getenv("LOG_ENABLE_CONSOLE", "false").lower() == "true"

    @classmethod
    def validate_config(cls):
        """Additional validation for production"""
        super().validate_config()

        secret_key = getattr(cls, "SECRET_KEY", "")
        if not secret_key or secret_key in ("dev-key-change-in-production", "MUST_BE_SET_IN_PRODUCTION"):
            raise ValueError("SECRET_KEY must be set to a secure value in production")


class TestingConfig(Config):
    """Testing configuration: no database, synchronous writes, quiet logs"""

    TESTING = True
    DEBUG = True
    SECRET_KEY = "testing-secret-key"

    PERSISTENCE_BACKENDS = ["local"]
    STORAGE_DIR = os.getenv("TEST_STORAGE_DIR", "test-data")
    PERSIST_ASYNC = False
    PROSECUTOR_BACKEND = "static"
    PROSECUTORS_FILE = ""
    AUTH_BACKEND = "memory"

    LOG_FILE = ""
    LOG_ENABLE_CONSOLE = False
    LOG_LEVEL = "DEBUG"


# Configuration mapping
config = {
    "development": DevelopmentConfig,
    "production": ProductionConfig,
    "testing": TestingConfig,
    "default": DevelopmentConfig,
}
