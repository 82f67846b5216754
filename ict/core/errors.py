"""Error taxonomy for certification token issuance.

Every error maps onto an HTTP status and a generic client description.
The message passed to the constructor is the internal detail: it is
logged, never returned to the client.
"""

from pydantic import BaseModel

HTTP_UNAUTHORIZED = 401
HTTP_FORBIDDEN = 403
HTTP_INTERNAL_SERVER_ERROR = 500


class ErrorStatus(BaseModel):
    """Error response body."""

    code: int
    status: str
    description: str


class IctError(Exception):
    """Base class for all request-terminating failures."""

    status_code: int = HTTP_INTERNAL_SERVER_ERROR
    status: str = "internal server error"
    description: str = "unknown internal server error"

    def to_response(self) -> ErrorStatus:
        return ErrorStatus(
            code=self.status_code,
            status=self.status,
            description=self.description,
        )


class ConfigurationError(IctError):
    """Invalid startup configuration. Fatal to the process."""


class _Unauthorized(IctError):
    status_code = HTTP_UNAUTHORIZED
    status = "unauthorized"


class MissingBearer(_Unauthorized):
    description = "bearer authentication required"


class UpstreamAuthFailed(_Unauthorized):
    description = "invalid bearer token"


class UpstreamUnavailable(IctError):
    """Userinfo or introspection endpoint failed or answered garbage."""


class _Forbidden(IctError):
    status_code = HTTP_FORBIDDEN
    status = "forbidden"
    description = "invalid proof of possession"


class SignatureInvalid(_Forbidden):
    """Proof token could not be decoded or its signature does not verify."""


class ClaimValidationError(_Forbidden):
    """A proof token claim failed validation."""


class SubjectMismatch(ClaimValidationError):
    pass


class InvalidAudience(ClaimValidationError):
    pass


class TokenExpiredOrNotYetValid(ClaimValidationError):
    pass


class ReplayDetected(_Forbidden):
    description = "proof of possession token has already been used"


class KeyMaterialError(IctError):
    """Malformed or unsupported JSON Web Key."""


class UnsupportedAlgorithm(KeyMaterialError):
    pass


class MissingKeyMaterial(KeyMaterialError):
    pass


class SigningFailed(IctError):
    """The outbound token could not be built or signed."""


class SubjectMissing(SigningFailed):
    pass


class ClaimDecodeError(ValueError):
    """A JSON value could not be read as an integer claim."""
