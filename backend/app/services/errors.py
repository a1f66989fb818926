from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from fastapi import HTTPException


@dataclass
class ServiceError(Exception):
    """Consistent service-layer exception with HTTP-friendly metadata."""

    status_code: int
    code: str
    message: str
    details: Dict[str, Any] = field(default_factory=dict)
    headers: Optional[Dict[str, str]] = None

    def __str__(self) -> str:  # pragma: no cover - convenience for logging
        return f"{self.status_code} {self.code}: {self.message} | {self.details}"

    def to_http(self) -> HTTPException:
        return HTTPException(
            status_code=self.status_code,
            detail={
                "error": {
                    "code": self.code,
                    "message": self.message,
                    "details": self.details,
                }
            },
            headers=self.headers,
        )


def not_found(message: str, **details: Any) -> ServiceError:
    return ServiceError(404, "NOT_FOUND", message, details)


def validation_error(message: str, **details: Any) -> ServiceError:
    return ServiceError(400, "VALIDATION_ERROR", message, details)
