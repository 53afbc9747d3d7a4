"""Exception hierarchy shared by stores, the Kanidm client and the routes."""

from __future__ import annotations

from typing import Any

GENERIC_LINK_MESSAGE = "This provisioning link is invalid, expired, or already used."
GENERIC_FAILURE_MESSAGE = "Something went wrong. Please try again or contact an administrator."


class AuthitError(Exception):
    """Base exception for Authit errors.

    ``message`` may carry diagnostic detail and is only shown to authenticated
    admins. ``public_message`` is what anonymous callers get to see.
    """

    status_code = 500
    code = "internal_error"
    public_message = GENERIC_FAILURE_MESSAGE
    # Overrides applied when rendering for anonymous callers.
    public_code: str | None = None
    public_status_code: int | None = None

    def __init__(self, message: str | None = None, *, public_message: str | None = None):
        self.message = message or self.__class__.__doc__ or self.code
        if public_message is not None:
            self.public_message = public_message
        super().__init__(self.message)

    def payload(self, public: bool = False) -> dict[str, Any]:
        if public:
            return {"detail": self.public_message, "code": self.public_code or self.code}
        return {"detail": self.message, "code": self.code}

    def http_status(self, public: bool = False) -> int:
        if public and self.public_status_code is not None:
            return self.public_status_code
        return self.status_code


class Unauthenticated(AuthitError):
    """Authentication required."""

    status_code = 401
    code = "unauthenticated"
    public_message = "Authentication required."


class Forbidden(AuthitError):
    """Insufficient group membership."""

    status_code = 403
    code = "forbidden"
    public_message = "Forbidden."


class InvalidToken(AuthitError):
    """Malformed or tampered token."""

    status_code = 400
    code = "invalid_token"
    public_message = GENERIC_LINK_MESSAGE
    public_code = "link_unusable"
    public_status_code = 410


class InvalidFormat(InvalidToken):
    """Token must have exactly one '.' separator."""

    code = "invalid_token_format"


class InvalidEncoding(InvalidToken):
    """Token signature is not valid base64url."""

    code = "invalid_token_encoding"


class SignatureMismatch(InvalidToken):
    """Token signature does not match."""

    code = "signature_mismatch"


class InvalidIdentifier(InvalidToken):
    """Token payload is not a valid identifier."""

    code = "invalid_identifier"


class InvalidState(AuthitError):
    """Login state is missing, expired or was already used."""

    status_code = 400
    code = "invalid_state"
    public_message = "Login session expired. Please try again."


class NotFound(AuthitError):
    """Record not found."""

    status_code = 404
    code = "not_found"
    public_message = "Not found."


class ProvisionLinkError(AuthitError):
    """Provisioning link cannot be used."""

    status_code = 410
    code = "link_unusable"
    public_message = GENERIC_LINK_MESSAGE
    public_code = "link_unusable"
    public_status_code = 410


class LinkNotFound(ProvisionLinkError):
    """Provisioning link not found."""

    status_code = 404
    code = "link_not_found"


class LinkExpired(ProvisionLinkError):
    """Provisioning link has expired."""

    code = "link_expired"


class LinkExhausted(ProvisionLinkError):
    """Provisioning link has already been used."""

    code = "link_exhausted"


class UpstreamError(AuthitError):
    """Kanidm returned an error response."""

    status_code = 502
    code = "upstream_error"

    def __init__(
        self,
        message: str | None = None,
        *,
        upstream_status: int | None = None,
        body: str | None = None,
        public_message: str | None = None,
    ):
        self.upstream_status = upstream_status
        self.body = body
        super().__init__(message, public_message=public_message)


class UpstreamTimeout(UpstreamError):
    """Kanidm did not answer in time; the request may or may not have been applied."""

    status_code = 504
    code = "upstream_timeout"


class PartialFailure(AuthitError):
    """Account was created but could not be fully set up."""

    status_code = 502
    code = "partial_failure"
    public_message = (
        "Your account was created, but some setup steps failed. "
        "An administrator needs to finish the setup."
    )

    def __init__(
        self,
        message: str | None = None,
        *,
        person_name: str,
        failed_groups: list[str] | None = None,
        reset_link: Any = None,
    ):
        self.person_name = person_name
        self.failed_groups = list(failed_groups or [])
        self.reset_link = reset_link
        super().__init__(message)

    def payload(self, public: bool = False) -> dict[str, Any]:
        data = super().payload(public)
        data["account_created"] = True
        if not public:
            data["person_name"] = self.person_name
            data["failed_groups"] = self.failed_groups
        if self.reset_link is not None:
            data["reset_link"] = self.reset_link.model_dump(mode="json")
        return data


class Uncertain(AuthitError):
    """Account creation outcome unknown; reconcile manually."""

    status_code = 504
    code = "uncertain"
    public_message = (
        "We could not confirm whether your account was created. "
        "Please contact an administrator before trying again."
    )

    def __init__(self, message: str | None = None, *, person_name: str):
        self.person_name = person_name
        super().__init__(message)


class BadRequest(AuthitError):
    """Request parameters are out of range."""

    status_code = 400
    code = "bad_request"
    public_message = "Invalid request."
