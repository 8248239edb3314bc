"""Error taxonomy for the task-routing pipeline.

Every failure the pipeline can surface is a :class:`TaskRouterError`
subclass. The HTTP layer turns them into JSON bodies; ``auth_required``
marks the two kinds that should send the caller back through Google
consent.
"""

from __future__ import annotations


class TaskRouterError(Exception):
    code = "task_router_error"
    status_code = 500
    auth_required = False

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_payload(self) -> dict[str, object]:
        payload: dict[str, object] = {"error": self.message, "code": self.code}
        if self.auth_required:
            payload["authRequired"] = True
        return payload


class InvalidInput(TaskRouterError):
    code = "invalid_input"
    status_code = 400


class ModelResponseInvalid(TaskRouterError):
    code = "model_response_invalid"
    status_code = 502


class IntentNotFound(TaskRouterError):
    code = "intent_not_found"
    status_code = 422


class IntentIncomplete(TaskRouterError):
    code = "intent_incomplete"
    status_code = 422


class DepartmentNotFound(TaskRouterError):
    code = "department_not_found"
    status_code = 422

    def __init__(self, keyword: str, valid_departments: list[str]) -> None:
        listed = ", ".join(valid_departments) or "none configured"
        super().__init__(
            f'Department "{keyword}" not found. '
            f"Please specify a valid department ({listed})."
        )
        self.keyword = keyword
        self.valid_departments = list(valid_departments)

    def to_payload(self) -> dict[str, object]:
        payload = super().to_payload()
        payload["keyword"] = self.keyword
        payload["validDepartments"] = self.valid_departments
        return payload


class DirectoryUnavailable(TaskRouterError):
    code = "directory_unavailable"
    status_code = 500


class ServiceNotConfigured(TaskRouterError):
    code = "service_not_configured"
    status_code = 503


class OAuthExchangeFailed(TaskRouterError):
    code = "oauth_exchange_failed"
    status_code = 502


class AuthRequired(TaskRouterError):
    code = "auth_required"
    status_code = 401
    auth_required = True


class AuthExpired(TaskRouterError):
    code = "auth_expired"
    status_code = 401
    auth_required = True


class SendFailed(TaskRouterError):
    code = "send_failed"
    status_code = 502

    def __init__(self, message: str, details: str | None = None) -> None:
        super().__init__(message)
        self.details = details

    def to_payload(self) -> dict[str, object]:
        payload = super().to_payload()
        if self.details:
            payload["details"] = self.details
        return payload
