"""Reset workflow: per-session state machine for self-service password reset.

REQUEST_TOKEN --request_token--> USE_TOKEN --submit_token--> SET_PASSWORD
--set_password--> REQUEST_TOKEN. back() and clear() return to REQUEST_TOKEN
from any stage. Each instance belongs to one session and is driven by one
caller at a time, so it holds no lock of its own.
"""

from __future__ import annotations

from app.application.dtos.workflow import WorkflowResult
from app.application.interfaces.services import DirectoryClientFactory, ITokenSender
from app.application.services.token_issuer import TokenIssuer
from app.domain.entities import DirectoryIdentity, WorkflowState
from app.domain.enums import PasswordChangeOutcome, ResetErrorKind, WorkflowStage
from app.domain.exceptions import (
    DirectoryUnavailableException,
    InvalidStageException,
    TokenDeliveryException,
)
from app.shared.telemetry.logging import get_logger
from app.shared.telemetry.tracing import add_span_attributes, traced

logger = get_logger(__name__)

HUMAN_VERIFICATION_MESSAGE = "Please confirm that you are not a robot."
REQUEST_FAILED_MESSAGE = "Something went wrong. Please try again later."
DELIVERY_FAILED_MESSAGE = "The token could not be sent. Please try again later."
TOKEN_INVALID_MESSAGE = "The token is invalid or has expired."
TOKEN_ACCEPTED_MESSAGE = "Choose a new password."
PASSWORD_MISMATCH_MESSAGE = "The passwords do not match."
PASSWORD_POLICY_MESSAGE = "The password does not meet the password requirements."
PASSWORD_CHANGED_MESSAGE = "Your password has been changed."


class ResetWorkflow:
    """Drive one session through request → verify → reset.

    Collaborators are passed in explicitly: a factory for directory clients,
    the shared token issuer, and the selected token sender.
    """

    def __init__(
        self,
        directory_factory: DirectoryClientFactory,
        issuer: TokenIssuer,
        sender: ITokenSender,
    ) -> None:
        self._directory_factory = directory_factory
        self._issuer = issuer
        self._sender = sender
        self._state = WorkflowState()

    @property
    def stage(self) -> WorkflowStage:
        return self._state.stage

    @property
    def display_name(self) -> str | None:
        """Display name of the resolved identity, once a token has been sent."""
        identity = self._state.identity
        return identity.display_name if identity else None

    @traced("reset_workflow.request_token")
    def request_token(self, username: str, human_verified: bool) -> WorkflowResult:
        """Resolve username, check channel eligibility, then issue and deliver a token.

        An unknown username and a directory outage produce the same result.
        """
        self._require_stage("request a token", WorkflowStage.REQUEST_TOKEN)
        if not human_verified:
            return self._fail(ResetErrorKind.HUMAN_VERIFICATION_REQUIRED, HUMAN_VERIFICATION_MESSAGE)
        username = (username or "").strip()
        if not username:
            return self._fail(ResetErrorKind.REQUEST_FAILED, REQUEST_FAILED_MESSAGE)

        identity = self._lookup(username)
        if identity is None:
            return self._fail(ResetErrorKind.REQUEST_FAILED, REQUEST_FAILED_MESSAGE)

        reason = self._sender.is_eligible(identity)
        if reason is not None:
            logger.info("User '%s' is not eligible for token delivery", identity.principal_name)
            return self._fail(ResetErrorKind.SENDER_INELIGIBLE, reason)

        token = self._issuer.issue(identity)
        try:
            self._sender.deliver(identity, token)
        except TokenDeliveryException as e:
            logger.warning("Token delivery for '%s' failed: %s", identity.principal_name, e.message)
            return self._fail(ResetErrorKind.DELIVERY_FAILED, DELIVERY_FAILED_MESSAGE)

        self._state.username = username
        self._state.identity = identity
        self._state.stage = WorkflowStage.USE_TOKEN
        return self._result(message=self._sender.success_message())

    @traced("reset_workflow.submit_token")
    def submit_token(self, value: str) -> WorkflowResult:
        """Accept a delivered token if it is live and belongs to this session's identity."""
        self._require_stage("submit a token", WorkflowStage.USE_TOKEN)
        token = self._issuer.validate((value or "").strip())
        if token is None or not token.identity.same_account(self._state.identity):
            return self._fail(ResetErrorKind.TOKEN_INVALID, TOKEN_INVALID_MESSAGE)
        self._state.token = token
        self._state.stage = WorkflowStage.SET_PASSWORD
        return self._result(message=TOKEN_ACCEPTED_MESSAGE)

    @traced("reset_workflow.set_password")
    def set_password(self, new_password: str, repeat: str) -> WorkflowResult:
        """Change the password in the directory and consume the token on success.

        On a policy violation or outage the token stays usable and the stage
        is kept so the user can retry.
        """
        self._require_stage("set a password", WorkflowStage.SET_PASSWORD)
        if new_password != repeat:
            return self._fail(ResetErrorKind.PASSWORD_MISMATCH, PASSWORD_MISMATCH_MESSAGE)

        token = self._issuer.claim(self._state.token.value)
        if token is None:
            self._state.clear()
            return self._fail(ResetErrorKind.TOKEN_INVALID, TOKEN_INVALID_MESSAGE)

        try:
            outcome = self._change_password(token.identity, new_password)
            if outcome is PasswordChangeOutcome.SUCCESS and not self._issuer.consume(token.value):
                # The password is already changed in the directory; report success.
                logger.warning(
                    "Token for '%s' was replaced during the password change",
                    token.identity.principal_name,
                )
        finally:
            self._issuer.release(token.value)

        add_span_attributes(outcome=outcome.value)
        if outcome is PasswordChangeOutcome.POLICY_VIOLATION:
            return self._fail(ResetErrorKind.PASSWORD_POLICY_VIOLATION, PASSWORD_POLICY_MESSAGE)
        if outcome is PasswordChangeOutcome.UNAVAILABLE:
            return self._fail(ResetErrorKind.REQUEST_FAILED, REQUEST_FAILED_MESSAGE)

        logger.info("Password changed for '%s'", token.identity.principal_name)
        self._state.clear()
        return self._result(message=PASSWORD_CHANGED_MESSAGE)

    def back(self) -> WorkflowResult:
        """Abandon the current progress and return to the initial stage."""
        self._state.clear()
        return self._result()

    def clear(self) -> WorkflowResult:
        """Reset the session to the initial stage (same effect as back)."""
        return self.back()

    def _lookup(self, username: str) -> DirectoryIdentity | None:
        try:
            with self._directory_factory() as directory:
                identity = directory.lookup(username)
        except DirectoryUnavailableException:
            logger.warning("Directory unavailable while resolving a token request")
            return None
        if identity is None:
            logger.info("Token requested for unknown username")
        return identity

    def _change_password(
        self, identity: DirectoryIdentity, new_password: str
    ) -> PasswordChangeOutcome:
        try:
            with self._directory_factory() as directory:
                return directory.change_password(identity, new_password)
        except DirectoryUnavailableException:
            return PasswordChangeOutcome.UNAVAILABLE

    def _require_stage(self, operation: str, expected: WorkflowStage) -> None:
        if self._state.stage is not expected:
            raise InvalidStageException(operation, expected.value, self._state.stage.value)

    def _result(self, message: str = "") -> WorkflowResult:
        return WorkflowResult(stage=self._state.stage, message=message)

    def _fail(self, error: ResetErrorKind, message: str) -> WorkflowResult:
        return WorkflowResult(stage=self._state.stage, error=error, message=message)
