import os
import warnings

from dotenv import load_dotenv

basedir = os.path.abspath(os.path.dirname(__file__))
load_dotenv(os.path.join(basedir, ".env"))


def _env_flag(name, default="false"):
    return os.environ.get(name, default).lower() in ["true", "on", "1"]


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY") or "dev-only-secret"

    # Shared secret for the cron endpoints (Bearer token or X-Cron-Secret)
    CRON_SECRET = os.environ.get("CRON_SECRET")

    # Database configuration - built from environment at initialization
    def __init__(self):
        """Initialize configuration with dynamic database URI"""
        self.SQLALCHEMY_DATABASE_URI = self._build_database_uri()

    def _build_database_uri(self):
        """Build database URI from environment variables"""
        database_url = os.environ.get("DATABASE_URL")

        if database_url:
            return database_url

        db_type = os.environ.get("DB_TYPE", "sqlite")

        if db_type.lower() == "postgresql":
            db_host = os.environ.get("DB_HOST") or "localhost"
            db_port = os.environ.get("DB_PORT") or "5432"
            db_name = os.environ.get("DB_NAME") or "prediction_league"
            db_user = os.environ.get("DB_USER") or "league_user"
            db_password = os.environ.get("DB_PASSWORD") or "league_password"

            return f"postgresql+psycopg://{db_user}:{db_password}@{db_host}:{db_port}/{db_name}"
        else:
            # Default to SQLite for development
            return "sqlite:///" + os.path.join(basedir, "league.db")

    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Match scoring policy
    MATCH_POINTS_CORRECT_OUTCOME = int(os.environ.get("MATCH_POINTS_CORRECT_OUTCOME", 1))
    MATCH_POINTS_INCORRECT_OUTCOME = int(
        os.environ.get("MATCH_POINTS_INCORRECT_OUTCOME", 0)
    )
    MATCH_POINTS_EXACT_SCORE_BONUS = int(
        os.environ.get("MATCH_POINTS_EXACT_SCORE_BONUS", 0)
    )

    # Season questionnaire
    DYNAMIC_POINTS_PER_QUESTION = int(os.environ.get("DYNAMIC_POINTS_PER_QUESTION", 3))

    # Last Round Special cup activation
    CUP_ACTIVATION_THRESHOLD = float(os.environ.get("CUP_ACTIVATION_THRESHOLD", 60))
    CUP_REMAINING_GAMES_LIMIT = int(os.environ.get("CUP_REMAINING_GAMES_LIMIT", 5))

    # Cron alerting
    CRON_ALERTS_ENABLED = _env_flag("CRON_ALERTS_ENABLED")
    CRON_WEBHOOK_URL = os.environ.get("CRON_WEBHOOK_URL")
    CRON_FAILURE_THRESHOLD = int(os.environ.get("CRON_FAILURE_THRESHOLD", 3))
    CRON_PERFORMANCE_THRESHOLD_MS = int(
        os.environ.get("CRON_PERFORMANCE_THRESHOLD_MS", 300000)
    )  # 5 minutes
    CRON_ALERT_COOLDOWN_MS = int(os.environ.get("CRON_ALERT_COOLDOWN_MS", 3600000))
    CRON_ALERT_TIMEOUT = float(os.environ.get("CRON_ALERT_TIMEOUT", 10))

    # Email configuration
    MAIL_SERVER = os.environ.get("MAIL_SERVER")
    MAIL_PORT = int(os.environ.get("MAIL_PORT") or 587)
    MAIL_USE_TLS = _env_flag("MAIL_USE_TLS", "true")
    MAIL_USERNAME = os.environ.get("MAIL_USERNAME")
    MAIL_PASSWORD = os.environ.get("MAIL_PASSWORD")
    MAIL_TIMEOUT = float(os.environ.get("MAIL_TIMEOUT", 10))
    FROM_EMAIL = os.environ.get("FROM_EMAIL") or os.environ.get("MAIL_USERNAME")
    FROM_NAME = os.environ.get("FROM_NAME", "Prediction League")
    WINNER_EMAILS_ENABLED = _env_flag("WINNER_EMAILS_ENABLED", "true")

    # Application settings
    ITEMS_PER_PAGE = int(os.environ.get("ITEMS_PER_PAGE") or 20)
    MAX_ITEMS_PER_PAGE = int(os.environ.get("MAX_ITEMS_PER_PAGE") or 100)

    # Caching configuration
    CACHE_TYPE = os.environ.get("CACHE_TYPE", "RedisCache")
    CACHE_DEFAULT_TIMEOUT = int(os.environ.get("CACHE_DEFAULT_TIMEOUT", 300))
    CACHE_REDIS_URL = os.environ.get("CACHE_REDIS_URL", "redis://localhost:6379/0")
    CACHE_KEY_PREFIX = "prediction_league:"
    STANDINGS_CACHE_TIMEOUT = int(os.environ.get("STANDINGS_CACHE_TIMEOUT", 300))

    # Rate limiting
    RATELIMIT_STORAGE_URI = os.environ.get("RATELIMIT_STORAGE_URI", "memory://")
    RATELIMIT_ENABLED = True

    # Scheduler configuration (external cron hits the HTTP endpoints by default)
    SCHEDULER_ENABLED = _env_flag("SCHEDULER_ENABLED")

    # Logging configuration
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
    LOG_TO_CONSOLE = _env_flag("LOG_TO_CONSOLE", "true")
    LOG_TO_FILE = _env_flag("LOG_TO_FILE", "true")
    LOG_DIR = os.environ.get("LOG_DIR", "logs")
    SLOW_FUNCTION_THRESHOLD = float(os.environ.get("SLOW_FUNCTION_THRESHOLD", "1.0"))
    SLOW_REQUEST_THRESHOLD = float(os.environ.get("SLOW_REQUEST_THRESHOLD", "2.0"))

    # Environment detection
    FLASK_ENV = os.environ.get("FLASK_ENV", "development")
    DEBUG = FLASK_ENV == "development"
    TESTING = False


class DevelopmentConfig(Config):
    """Development configuration with helpful defaults"""

    DEBUG = True
    SQLALCHEMY_ECHO = _env_flag("SQLALCHEMY_ECHO")

    def __init__(self):
        super().__init__()
        # Fallback to SimpleCache if Redis isn't available in development
        if self.CACHE_TYPE == "RedisCache":
            try:
                import redis

                redis_client = redis.Redis.from_url(self.CACHE_REDIS_URL)
                redis_client.ping()
            except redis.exceptions.ConnectionError:
                self.CACHE_TYPE = "SimpleCache"
                warnings.warn(
                    "Redis not available, falling back to SimpleCache for development.",
                    UserWarning,
                )


class ProductionConfig(Config):
    """Production configuration with security focus"""

    DEBUG = False

    def __init__(self):
        super().__init__()

        if not os.environ.get("SECRET_KEY"):
            warnings.warn(
                "PRODUCTION WARNING: SECRET_KEY not explicitly set!",
                UserWarning,
            )
        if not os.environ.get("CRON_SECRET"):
            warnings.warn(
                "PRODUCTION WARNING: CRON_SECRET not set, cron endpoints will refuse to run.",
                UserWarning,
            )


class TestingConfig(Config):
    """Testing configuration"""

    TESTING = True
    DEBUG = False
    CRON_SECRET = "test-cron-secret"
    CACHE_TYPE = "SimpleCache"
    RATELIMIT_ENABLED = False
    SCHEDULER_ENABLED = False
    CRON_ALERTS_ENABLED = False
    LOG_TO_FILE = False
    LOG_TO_CONSOLE = False

    def __init__(self):
        super().__init__()
        self.SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"


# Configuration mapping
config = {
    "development": DevelopmentConfig,
    "production": ProductionConfig,
    "testing": TestingConfig,
    "default": DevelopmentConfig,
}
