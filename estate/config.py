"""환경 변수 기반 설정."""

import logging
import os
from typing import Optional
from urllib.parse import unquote

from dotenv import load_dotenv

from .errors import ConfigurationError

# ===== 설정 =====
load_dotenv()

DATA_GO_KR_KEY_ENV = "DATA_GO_KR_API_KEY"
NEIS_KEY_ENV = "NEIS_API_KEY"
RONE_KEY_ENV = "RONE_API_KEY"

HTTP_TIMEOUT = float(os.getenv("ESTATE_HTTP_TIMEOUT", "10"))
FANOUT_BATCH_SIZE = int(os.getenv("ESTATE_FANOUT_BATCH_SIZE", "5"))
LOG_LEVEL = os.getenv("ESTATE_LOG_LEVEL", "INFO").upper()
HOST = os.getenv("ESTATE_HOST", "0.0.0.0")
PORT = int(os.getenv("ESTATE_PORT", "5001"))
USER_AGENT = os.getenv(
    "ESTATE_USER_AGENT",
    (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
        "AppleWebKit/537.36 (KHTML, like Gecko) Chrome/123.0 Safari/537.36"
    ),
)


def setup_logging(level: Optional[str] = None) -> None:
    logging.basicConfig(
        level=level or LOG_LEVEL,
        format="[%(asctime)s] %(levelname)s %(name)s: %(message)s",
    )


def get_api_key(env_name: str = DATA_GO_KR_KEY_ENV) -> str:
    """Read a service key at call time; raise ConfigurationError when absent.

    data.go.kr hands out keys in both raw and URL-encoded form. requests encodes
    query values again, so an encoded key is unquoted first.
    """

    raw = os.getenv(env_name)
    if not raw or not raw.strip():
        raise ConfigurationError(f"{env_name} 환경변수를 설정해주세요.")
    return unquote(raw.strip())


class Config:
    """Flask 설정."""

    JSON_AS_ASCII = False
    JSON_SORT_KEYS = False
    TESTING = False
    DEBUG = False


class DevelopmentConfig(Config):
    DEBUG = True


class ProductionConfig(Config):
    pass


class TestingConfig(Config):
    TESTING = True


config = {
    "development": DevelopmentConfig,
    "production": ProductionConfig,
    "testing": TestingConfig,
    "default": ProductionConfig,
}
