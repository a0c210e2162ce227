import pytest
from pydantic import ValidationError

from paddock.contracts import (
    ALLOWED_TRANSITIONS,
    AccountRequestStatus,
    CreateAccountRequestInput,
    InvalidTransitionError,
    can_transition,
    ensure_transition,
)

S = AccountRequestStatus


def test_transition_table_only_moves_forward():
    assert can_transition(S.REQUESTED, S.VALIDATING)
    assert can_transition(S.VALIDATING, S.CREATING)
    assert can_transition(S.CREATING, S.GUARDRAILING)
    assert can_transition(S.GUARDRAILING, S.READY)
    for status in (S.REQUESTED, S.VALIDATING, S.CREATING, S.GUARDRAILING):
        assert can_transition(status, S.FAILED)

    assert not can_transition(S.REQUESTED, S.CREATING)
    assert not can_transition(S.CREATING, S.VALIDATING)
    assert not can_transition(S.GUARDRAILING, S.CREATING)
    assert ALLOWED_TRANSITIONS[S.READY] == frozenset()
    assert ALLOWED_TRANSITIONS[S.FAILED] == frozenset()


@pytest.mark.parametrize(
    "current,target",
    [
        (S.READY, S.CREATING),
        (S.READY, S.READY),
        (S.FAILED, S.REQUESTED),
        (S.REQUESTED, S.READY),
        (S.VALIDATING, S.GUARDRAILING),
    ],
)
def test_ensure_transition_rejects_invalid_moves(current, target):
    with pytest.raises(InvalidTransitionError) as exc_info:
        ensure_transition(current, target)
    assert current.value in str(exc_info.value)


def test_ensure_transition_allows_staying_in_pending_phase():
    ensure_transition(S.GUARDRAILING, S.GUARDRAILING)
    ensure_transition(S.CREATING, S.FAILED)


def test_terminal_flag():
    assert S.READY.is_terminal
    assert S.FAILED.is_terminal
    assert not S.GUARDRAILING.is_terminal


def test_create_input_validation():
    data = CreateAccountRequestInput(
        account_name="team-a",
        owner_email="owner@example.com",
        purpose="staging",
        primary_region="eu-west-1",
        budget_threshold_percent=90,
    )
    assert data.budget_amount_usd is None

    with pytest.raises(ValidationError):
        CreateAccountRequestInput(
            account_name="team-a",
            owner_email="not-an-email",
            purpose="staging",
            primary_region="eu-west-1",
        )
    with pytest.raises(ValidationError):
        CreateAccountRequestInput(
            account_name="team-a",
            owner_email="owner@example.com",
            purpose="qa",
            primary_region="eu-west-1",
        )
    with pytest.raises(ValidationError):
        CreateAccountRequestInput(
            account_name="team-a",
            owner_email="owner@example.com",
            purpose="staging",
            primary_region="eu-west-1",
            budget_threshold_percent=150,
        )
