"""Single-source fetch boundary: domain result or error -> uniform envelope."""

import logging
from functools import wraps
from typing import Any, Callable, Dict, List, Tuple

import requests

from .errors import ConfigurationError, EstateError, UpstreamUnavailable, ValidationError

logger = logging.getLogger(__name__)

Envelope = Tuple[Dict[str, Any], int]


def error_envelope(exc: EstateError) -> Envelope:
    return {"success": False, "error": exc.error, "message": exc.message}, exc.status


def fetch_handler(func: Callable[..., Dict[str, Any]]) -> Callable[..., Envelope]:
    """Wrap a domain fetch so it always returns ``(body, status)`` and never raises."""

    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Envelope:
        try:
            result = func(*args, **kwargs)
        except (ConfigurationError, ValidationError) as exc:
            logger.info("%s rejected: %s (%s)", func.__name__, exc.error, exc.message)
            return error_envelope(exc)
        except EstateError as exc:
            logger.warning("%s failed: %s (%s)", func.__name__, exc.error, exc.message)
            return error_envelope(exc)
        except requests.RequestException as exc:
            logger.warning("%s upstream request failed: %s", func.__name__, exc)
            return error_envelope(UpstreamUnavailable(str(exc)))
        except Exception as exc:  # pylint: disable=broad-except
            logger.exception("%s failed unexpectedly", func.__name__)
            return error_envelope(UpstreamUnavailable(str(exc)))
        body: Dict[str, Any] = {"success": True}
        body.update(result)
        return body, 200

    return wrapper


def _body(envelope: Any) -> Dict[str, Any]:
    if isinstance(envelope, tuple):
        envelope = envelope[0]
    return envelope if isinstance(envelope, dict) else {}


def is_success(envelope: Any) -> bool:
    return bool(_body(envelope).get("success"))


def envelope_data(envelope: Any) -> List[Dict[str, Any]]:
    """Records of a successful envelope; anything else counts as no data."""

    if not is_success(envelope):
        return []
    data = _body(envelope).get("data")
    return data if isinstance(data, list) else []


def envelope_count(envelope: Any) -> int:
    if not is_success(envelope):
        return 0
    return int(_body(envelope).get("count") or 0)
