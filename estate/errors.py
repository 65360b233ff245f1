"""
Domain errors raised by request builders, upstream calls and normalizers.

Each error knows the envelope label (``error``), a user-facing message and the
HTTP status it maps to; ``estate.handler.fetch_handler`` converts them into the
uniform ``{"success": False, ...}`` response.
"""


class EstateError(Exception):
    status = 500
    error = "API request failed"
    default_message = "요청 처리 중 오류가 발생했습니다."

    def __init__(self, message: str = "", error: str = ""):
        self.message = message or self.default_message
        if error:
            self.error = error
        super().__init__(self.message)


class ConfigurationError(EstateError):
    status = 500
    error = "API key not configured"
    default_message = "API 키가 설정되지 않았습니다."


class ValidationError(EstateError):
    status = 400
    error = "Invalid parameter"
    default_message = "유효하지 않은 요청 파라미터입니다."


class UpstreamUnavailable(EstateError):
    status = 500
    error = "API request failed"
    default_message = "외부 API 요청에 실패했습니다."


class ApiNotActivated(UpstreamUnavailable):
    status = 503
    error = "API not activated"
    default_message = (
        "API 키가 아직 활성화되지 않았습니다. 공공데이터포털 승인 후 최대 1시간 소요될 수 있습니다."
    )


class UpstreamMalformed(EstateError):
    status = 500
    error = "Invalid response"
    default_message = "응답 파싱 실패"


class UpstreamApiError(EstateError):
    status = 500
    error = "API error"
    default_message = "API 오류"


class FanOutCancelled(EstateError):
    status = 409
    error = "Superseded"
    default_message = "새 요청으로 대체되어 이전 집계가 취소되었습니다."


class NotFound(EstateError):
    status = 404
    error = "Not found"
    default_message = "요청한 정보를 찾을 수 없습니다."
