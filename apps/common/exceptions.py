from rest_framework import status
from rest_framework.exceptions import APIException
from rest_framework.views import exception_handler


class DomainError(APIException):
    """Business-rule violation rendered with the standard error envelope."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_code = "invalid_request"
    default_detail = "요청을 처리할 수 없습니다."

    def __init__(self, detail=None, code=None, fields=None, status_code=None):
        super().__init__(detail=detail, code=code)
        if code:
            self.default_code = code
        if status_code:
            self.status_code = status_code
        self.fields = fields or {}


def api_exception_handler(exc, context):
    response = exception_handler(exc, context)
    if response is None:
        return response

    if isinstance(response.data, dict):
        detail = response.data.get("detail", "요청이 실패했습니다.")
        fields = {k: v for k, v in response.data.items() if k != "detail"}
    elif isinstance(response.data, list):
        detail = response.data[0] if response.data else "요청이 실패했습니다."
        fields = {}
    else:
        detail = "요청이 실패했습니다."
        fields = {}

    if isinstance(exc, DomainError):
        fields = exc.fields

    response.data = {
        "code": getattr(exc, "default_code", "error"),
        "detail": detail,
        "fields": fields,
    }
    return response
