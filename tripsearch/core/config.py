import os
from dotenv import load_dotenv

load_dotenv()


class Settings:
    # Logging
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # Elasticsearch
    ES_HOST = os.getenv("ES_HOST", "http://localhost:9200")
    ES_ACTIVITY_INDEX = os.getenv("ES_ACTIVITY_INDEX", "activities")
    ES_PLACE_INDEX = os.getenv("ES_PLACE_INDEX", "places")
    ES_ANALYTICS_INDEX = os.getenv("ES_ANALYTICS_INDEX", "search_queries")
    ES_REQUEST_TIMEOUT = float(os.getenv("ES_REQUEST_TIMEOUT", "5.0"))
    ES_HEALTH_TTL_SECONDS = float(os.getenv("ES_HEALTH_TTL_SECONDS", "30.0"))

    # Search Application
    APP_HOST = os.getenv("APP_HOST", "127.0.0.1")
    APP_PORT = int(os.getenv("APP_PORT", "8000"))
    SEARCH_TIMEOUT_SECONDS = float(os.getenv("SEARCH_TIMEOUT_SECONDS", "5.0"))
    SEARCH_DEFAULT_LIMIT = int(os.getenv("SEARCH_DEFAULT_LIMIT", "20"))
    SEARCH_MAX_LIMIT = int(os.getenv("SEARCH_MAX_LIMIT", "100"))
    SUGGESTION_DEFAULT_LIMIT = int(os.getenv("SUGGESTION_DEFAULT_LIMIT", "10"))
    SUGGESTION_MAX_LIMIT = int(os.getenv("SUGGESTION_MAX_LIMIT", "50"))
    DEFAULT_RADIUS_KM = float(os.getenv("DEFAULT_RADIUS_KM", "50.0"))

    # Recall Boosts
    BOOST_TITLE = float(os.getenv("BOOST_TITLE", "3.0"))
    BOOST_DESCRIPTION = float(os.getenv("BOOST_DESCRIPTION", "2.0"))
    BOOST_NAME = float(os.getenv("BOOST_NAME", "3.0"))
    BOOST_REGION = float(os.getenv("BOOST_REGION", "0.5"))

    # Fallback (system of record). Empty disables the database fallback.
    DATABASE_URL = os.getenv("DATABASE_URL", "")

    # Analytics
    ANALYTICS_QUEUE_SIZE = int(os.getenv("ANALYTICS_QUEUE_SIZE", "1000"))
    ANALYTICS_TIMEOUT_SECONDS = float(os.getenv("ANALYTICS_TIMEOUT_SECONDS", "2.0"))


settings = Settings()
