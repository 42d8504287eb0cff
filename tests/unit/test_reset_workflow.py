"""Tests for ResetWorkflow (stage transitions, error kinds, token lifecycle)."""

import logging
import smtplib
from unittest.mock import MagicMock

import pytest

from app.application.services.reset_workflow import (
    HUMAN_VERIFICATION_MESSAGE,
    PASSWORD_CHANGED_MESSAGE,
    REQUEST_FAILED_MESSAGE,
    ResetWorkflow,
)
from app.application.services.token_issuer import TokenIssuer
from app.domain.enums import ResetErrorKind, WorkflowStage
from app.domain.exceptions import InvalidStageException
from app.infrastructure.external.token_senders import EmailSenderConfig, EmailTokenSender
from tests.conftest import ALICE, BOB, FakeClock, FakeDirectory, RecordingSender


def _to_set_password(workflow: ResetWorkflow, sender: RecordingSender) -> str:
    assert workflow.request_token("alice", True).ok
    token = sender.last_token
    assert workflow.submit_token(token).ok
    return token


# ---- request_token ----


def test_new_workflow_starts_at_request_token(workflow: ResetWorkflow) -> None:
    assert workflow.stage is WorkflowStage.REQUEST_TOKEN
    assert workflow.display_name is None


def test_request_token_success(
    workflow: ResetWorkflow, sender: RecordingSender, issuer: TokenIssuer
) -> None:
    result = workflow.request_token("alice", True)
    assert result.ok
    assert result.stage is WorkflowStage.USE_TOKEN
    assert result.message == "Check your e-mail."
    assert workflow.display_name == "Alice Example"
    identity, token = sender.delivered[0]
    assert identity == ALICE
    assert issuer.validate(token.value) == token


def test_request_token_strips_username(
    workflow: ResetWorkflow, directory: FakeDirectory
) -> None:
    assert workflow.request_token("  alice ", True).ok
    assert directory.lookups == ["alice"]


def test_request_token_requires_human_verification(
    workflow: ResetWorkflow, directory: FakeDirectory, sender: RecordingSender
) -> None:
    result = workflow.request_token("alice", False)
    assert result.error is ResetErrorKind.HUMAN_VERIFICATION_REQUIRED
    assert result.message == HUMAN_VERIFICATION_MESSAGE
    assert result.stage is WorkflowStage.REQUEST_TOKEN
    assert directory.lookups == []
    assert sender.delivered == []


@pytest.mark.parametrize("username", ["", "   "])
def test_blank_username_fails_without_directory_call(
    workflow: ResetWorkflow, directory: FakeDirectory, username: str
) -> None:
    result = workflow.request_token(username, True)
    assert result.error is ResetErrorKind.REQUEST_FAILED
    assert directory.connections == 0


def test_unknown_user_is_indistinguishable_from_outage(
    issuer: TokenIssuer, sender: RecordingSender
) -> None:
    """Unknown user and directory outage produce the same result."""
    unknown = ResetWorkflow(FakeDirectory(ALICE), issuer, sender).request_token("mallory", True)
    down_directory = FakeDirectory(ALICE)
    down_directory.available = False
    outage = ResetWorkflow(down_directory, issuer, sender).request_token("alice", True)

    assert unknown == outage
    assert unknown.error is ResetErrorKind.REQUEST_FAILED
    assert unknown.message == REQUEST_FAILED_MESSAGE
    assert unknown.stage is WorkflowStage.REQUEST_TOKEN
    assert sender.delivered == []


def test_ineligible_identity_returns_sender_reason(
    workflow: ResetWorkflow, sender: RecordingSender, issuer: TokenIssuer
) -> None:
    result = workflow.request_token("bob", True)
    assert result.error is ResetErrorKind.SENDER_INELIGIBLE
    assert result.message == "Your user has no e-mail address."
    assert result.stage is WorkflowStage.REQUEST_TOKEN
    assert sender.delivered == []
    assert len(issuer) == 0


def test_delivery_failure(workflow: ResetWorkflow, sender: RecordingSender) -> None:
    sender.fail = True
    result = workflow.request_token("alice", True)
    assert result.error is ResetErrorKind.DELIVERY_FAILED
    assert result.stage is WorkflowStage.REQUEST_TOKEN
    assert workflow.display_name is None


def test_request_token_in_wrong_stage_raises(workflow: ResetWorkflow) -> None:
    workflow.request_token("alice", True)
    with pytest.raises(InvalidStageException) as exc_info:
        workflow.request_token("alice", True)
    assert exc_info.value.error_code == "INVALID_STAGE"
    assert workflow.stage is WorkflowStage.USE_TOKEN


# ---- submit_token ----


def test_submit_token_success(workflow: ResetWorkflow, sender: RecordingSender) -> None:
    workflow.request_token("alice", True)
    result = workflow.submit_token(sender.last_token)
    assert result.ok
    assert result.stage is WorkflowStage.SET_PASSWORD


def test_submit_token_strips_whitespace(
    workflow: ResetWorkflow, sender: RecordingSender
) -> None:
    workflow.request_token("alice", True)
    assert workflow.submit_token(f"  {sender.last_token}\n").ok


def test_submit_wrong_token_keeps_stage(
    workflow: ResetWorkflow, sender: RecordingSender
) -> None:
    workflow.request_token("alice", True)
    result = workflow.submit_token("not-the-token")
    assert result.error is ResetErrorKind.TOKEN_INVALID
    assert result.stage is WorkflowStage.USE_TOKEN
    # The real token still works afterwards.
    assert workflow.submit_token(sender.last_token).ok


def test_submit_expired_token(
    workflow: ResetWorkflow, sender: RecordingSender, clock: FakeClock
) -> None:
    workflow.request_token("alice", True)
    clock.advance(minutes=16)
    result = workflow.submit_token(sender.last_token)
    assert result.error is ResetErrorKind.TOKEN_INVALID


def test_submit_token_of_another_identity(
    workflow: ResetWorkflow, issuer: TokenIssuer
) -> None:
    workflow.request_token("alice", True)
    foreign = issuer.issue(BOB)
    result = workflow.submit_token(foreign.value)
    assert result.error is ResetErrorKind.TOKEN_INVALID
    assert result.stage is WorkflowStage.USE_TOKEN


def test_submit_superseded_token(
    directory: FakeDirectory, issuer: TokenIssuer, sender: RecordingSender
) -> None:
    """A second request for the same user invalidates the first session's token."""
    first = ResetWorkflow(directory, issuer, sender)
    second = ResetWorkflow(directory, issuer, sender)
    first.request_token("alice", True)
    old_token = sender.last_token
    second.request_token("alice", True)
    assert first.submit_token(old_token).error is ResetErrorKind.TOKEN_INVALID
    assert second.submit_token(sender.last_token).ok


def test_submit_token_in_wrong_stage_raises(workflow: ResetWorkflow) -> None:
    with pytest.raises(InvalidStageException):
        workflow.submit_token("anything")
    assert workflow.stage is WorkflowStage.REQUEST_TOKEN


# ---- set_password ----


def test_set_password_success(
    workflow: ResetWorkflow,
    sender: RecordingSender,
    directory: FakeDirectory,
    issuer: TokenIssuer,
) -> None:
    token = _to_set_password(workflow, sender)
    result = workflow.set_password("N3w-Passw0rd!", "N3w-Passw0rd!")
    assert result.ok
    assert result.message == PASSWORD_CHANGED_MESSAGE
    assert result.stage is WorkflowStage.REQUEST_TOKEN
    assert directory.passwords[ALICE.distinguished_name] == "N3w-Passw0rd!"
    assert issuer.validate(token) is None
    assert issuer.consume(token) is False
    assert workflow.display_name is None


def test_password_mismatch_makes_no_directory_call(
    workflow: ResetWorkflow, sender: RecordingSender, directory: FakeDirectory
) -> None:
    _to_set_password(workflow, sender)
    connections = directory.connections
    result = workflow.set_password("first", "second")
    assert result.error is ResetErrorKind.PASSWORD_MISMATCH
    assert result.stage is WorkflowStage.SET_PASSWORD
    assert directory.connections == connections
    assert directory.changes == []


def test_policy_violation_keeps_token_and_stage(
    workflow: ResetWorkflow,
    sender: RecordingSender,
    directory: FakeDirectory,
    issuer: TokenIssuer,
) -> None:
    token = _to_set_password(workflow, sender)
    directory.rejected_passwords.add("weak")
    result = workflow.set_password("weak", "weak")
    assert result.error is ResetErrorKind.PASSWORD_POLICY_VIOLATION
    assert result.stage is WorkflowStage.SET_PASSWORD
    assert issuer.validate(token) is not None

    # Retry with a stronger password succeeds with the same token.
    assert workflow.set_password("Str0nger-Passw0rd", "Str0nger-Passw0rd").ok
    assert issuer.validate(token) is None


def test_directory_failure_during_set_password(
    workflow: ResetWorkflow,
    sender: RecordingSender,
    directory: FakeDirectory,
    issuer: TokenIssuer,
) -> None:
    token = _to_set_password(workflow, sender)
    directory.available = False
    result = workflow.set_password("N3w-Passw0rd!", "N3w-Passw0rd!")
    assert result.error is ResetErrorKind.REQUEST_FAILED
    assert result.stage is WorkflowStage.SET_PASSWORD
    assert issuer.validate(token) is not None


def test_password_change_unavailable(
    workflow: ResetWorkflow,
    sender: RecordingSender,
    directory: FakeDirectory,
    issuer: TokenIssuer,
) -> None:
    token = _to_set_password(workflow, sender)
    directory.password_change_available = False
    result = workflow.set_password("N3w-Passw0rd!", "N3w-Passw0rd!")
    assert result.error is ResetErrorKind.REQUEST_FAILED
    assert issuer.claim(token) is not None


def test_token_expired_before_set_password(
    workflow: ResetWorkflow,
    sender: RecordingSender,
    directory: FakeDirectory,
    clock: FakeClock,
) -> None:
    _to_set_password(workflow, sender)
    clock.advance(minutes=30)
    result = workflow.set_password("N3w-Passw0rd!", "N3w-Passw0rd!")
    assert result.error is ResetErrorKind.TOKEN_INVALID
    assert result.stage is WorkflowStage.REQUEST_TOKEN
    assert directory.changes == []


def test_token_already_claimed_by_concurrent_change(
    workflow: ResetWorkflow,
    sender: RecordingSender,
    directory: FakeDirectory,
    issuer: TokenIssuer,
) -> None:
    token = _to_set_password(workflow, sender)
    issuer.claim(token)
    result = workflow.set_password("N3w-Passw0rd!", "N3w-Passw0rd!")
    assert result.error is ResetErrorKind.TOKEN_INVALID
    assert directory.changes == []


def test_token_replaced_during_password_change_still_succeeds(
    workflow: ResetWorkflow,
    sender: RecordingSender,
    directory: FakeDirectory,
    issuer: TokenIssuer,
    caplog: pytest.LogCaptureFixture,
) -> None:
    """The directory change cannot be undone, so success is reported and a warning logged."""
    _to_set_password(workflow, sender)
    change_password = directory.change_password
    replacement = {}

    def change_and_reissue(identity, new_password):
        replacement["token"] = issuer.issue(ALICE)
        return change_password(identity, new_password)

    directory.change_password = change_and_reissue
    with caplog.at_level(logging.WARNING):
        result = workflow.set_password("N3w-Passw0rd!", "N3w-Passw0rd!")

    assert result.ok
    assert result.stage is WorkflowStage.REQUEST_TOKEN
    assert directory.passwords[ALICE.distinguished_name] == "N3w-Passw0rd!"
    assert "was replaced during the password change" in caplog.text
    # The newer token was not consumed by this change.
    assert issuer.validate(replacement["token"].value) is not None


def test_set_password_in_wrong_stage_raises(workflow: ResetWorkflow) -> None:
    workflow.request_token("alice", True)
    with pytest.raises(InvalidStageException):
        workflow.set_password("a", "a")
    assert workflow.stage is WorkflowStage.USE_TOKEN


# ---- back / clear ----


@pytest.mark.parametrize("operation", ["back", "clear"])
def test_back_and_clear_return_to_start(
    workflow: ResetWorkflow, sender: RecordingSender, operation: str
) -> None:
    _to_set_password(workflow, sender)
    result = getattr(workflow, operation)()
    assert result.ok
    assert result.stage is WorkflowStage.REQUEST_TOKEN
    assert workflow.display_name is None
    # A fresh request is allowed again.
    assert workflow.request_token("alice", True).ok


def test_back_from_start_is_noop(workflow: ResetWorkflow) -> None:
    assert workflow.back().stage is WorkflowStage.REQUEST_TOKEN


def test_end_to_end_alice(
    workflow: ResetWorkflow,
    sender: RecordingSender,
    directory: FakeDirectory,
    issuer: TokenIssuer,
) -> None:
    assert workflow.request_token("alice", True).stage is WorkflowStage.USE_TOKEN
    token = sender.last_token
    assert workflow.submit_token(token).stage is WorkflowStage.SET_PASSWORD
    assert workflow.set_password("S3cure-Passw0rd", "S3cure-Passw0rd").ok
    assert workflow.stage is WorkflowStage.REQUEST_TOKEN
    assert directory.passwords == {ALICE.distinguished_name: "S3cure-Passw0rd"}
    assert issuer.consume(token) is False


def test_end_to_end_over_email_channel(
    directory: FakeDirectory, issuer: TokenIssuer
) -> None:
    """Token delivered by e-mail; replaying it from a fresh session is rejected."""
    smtp_class = MagicMock(spec=smtplib.SMTP)
    sender = EmailTokenSender(
        EmailSenderConfig(from_address="noreply@example.com"), smtp_class=smtp_class
    )
    workflow = ResetWorkflow(directory, issuer, sender)

    result = workflow.request_token("alice", True)
    assert result.stage is WorkflowStage.USE_TOKEN
    assert result.message == "Check your e-mail."
    server = smtp_class.return_value.__enter__.return_value
    message = server.send_message.call_args.args[0]
    assert message["To"] == "alice@example.com"
    token = message.get_content().strip().split("'")[1]

    assert workflow.submit_token(token).stage is WorkflowStage.SET_PASSWORD
    assert workflow.set_password("Abc123!", "Abc123!").stage is WorkflowStage.REQUEST_TOKEN

    fresh = ResetWorkflow(directory, issuer, sender)
    assert fresh.request_token("alice", True).ok
    assert fresh.submit_token(token).error is ResetErrorKind.TOKEN_INVALID


def test_email_channel_rejects_identity_without_address(
    directory: FakeDirectory, issuer: TokenIssuer
) -> None:
    sender = EmailTokenSender(EmailSenderConfig(from_address="noreply@example.com"))
    result = ResetWorkflow(directory, issuer, sender).request_token("bob", True)
    assert result.error is ResetErrorKind.SENDER_INELIGIBLE
    assert result.stage is WorkflowStage.REQUEST_TOKEN
