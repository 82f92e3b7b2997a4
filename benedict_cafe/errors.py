from enum import Enum
from typing import Optional


class ErrorCode(Enum):
    CONFIGURATION = "CONFIGURATION"
    API = "API"
    PAYLOAD = "PAYLOAD"
    VALIDATION = "VALIDATION"
    INIT_DATA = "INIT_DATA"


class BenedictError(Exception):
    """Base error with code and user-safe message."""

    code = ErrorCode.API

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"


class ConfigurationError(BenedictError):
    code = ErrorCode.CONFIGURATION


class AIConfigurationError(ConfigurationError):
    def __init__(self, message: str = "AI assistant is not configured. Please add GEMINI_API_KEY to your .env file") -> None:
        super().__init__(message)


class ApiError(BenedictError):
    code = ErrorCode.API

    def __init__(self, message: str, status: Optional[int] = None) -> None:
        super().__init__(message)
        self.status = status


class PayloadError(ApiError):
    code = ErrorCode.PAYLOAD


class FormValidationError(BenedictError):
    code = ErrorCode.VALIDATION

    def __init__(self, field: str, message: str) -> None:
        super().__init__(message)
        self.field = field


class InitDataError(BenedictError):
    code = ErrorCode.INIT_DATA
