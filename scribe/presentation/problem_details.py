"""RFC 7807 Problem Details responses for the API."""

from pydantic import BaseModel, Field


class ErrorCodes:
    """Stable machine-readable error codes."""

    VALIDATION_FAILED = "validation-failed"
    RESOURCE_NOT_FOUND = "resource-not-found"
    INTERNAL_SERVER_ERROR = "internal-server-error"


class FieldError(BaseModel):
    field: str = Field(description="Field that failed validation")
    code: str = Field(description="Validation error code")
    message: str = Field(description="Human readable message")


class ProblemDetail(BaseModel):
    """Problem details body as defined by RFC 7807."""

    type: str = Field(description="URI reference identifying the problem type")
    title: str = Field(description="Short summary of the problem type")
    status: int = Field(description="HTTP status code")
    detail: str | None = Field(None, description="Explanation of this occurrence")
    instance: str | None = Field(None, description="Request path that failed")


class ValidationProblemDetail(ProblemDetail):
    errors: list[FieldError] = Field(default_factory=list)


class ProblemDetailFactory:
    """Builds the problem details the API returns."""

    BASE_URI = "https://scribe.local/problems/"

    @classmethod
    def validation_failed(
        cls,
        detail: str,
        instance: str | None = None,
        field_errors: list[dict[str, str]] | None = None,
    ) -> ValidationProblemDetail:
        return ValidationProblemDetail(
            type=cls.BASE_URI + ErrorCodes.VALIDATION_FAILED,
            title="Validation Failed",
            status=400,
            detail=detail,
            instance=instance,
            errors=[FieldError(**error) for error in field_errors or []],
        )

    @classmethod
    def resource_not_found(
        cls, resource_type: str, detail: str, instance: str | None = None
    ) -> ProblemDetail:
        return ProblemDetail(
            type=cls.BASE_URI + ErrorCodes.RESOURCE_NOT_FOUND,
            title=f"{resource_type.title()} Not Found",
            status=404,
            detail=detail,
            instance=instance,
        )

    @classmethod
    def internal_server_error(
        cls, detail: str, instance: str | None = None
    ) -> ProblemDetail:
        return ProblemDetail(
            type=cls.BASE_URI + ErrorCodes.INTERNAL_SERVER_ERROR,
            title="Internal Server Error",
            status=500,
            detail=detail,
            instance=instance,
        )
