"""Unit tests for retrospective board rules."""

from __future__ import annotations

from types import SimpleNamespace

import pytest

from collybrix.errors import ConflictError, ForbiddenError, ValidationFailedError
from collybrix.pm.retrospective import (
    board_stats,
    ensure_card_editable,
    ensure_column,
    toggle_vote,
    votes_by_user,
)


def card(author: str = "user_a", anonymous: bool = False, votes: list[str] | None = None) -> SimpleNamespace:
    return SimpleNamespace(author_id=author, is_anonymous=anonymous, votes=list(votes or []))


class TestColumns:
    def test_known_column_accepted(self) -> None:
        ensure_column(("mad", "sad", "glad"), "sad")

    def test_unknown_column_rejected(self) -> None:
        with pytest.raises(ValidationFailedError) as exc_info:
            ensure_column(("mad", "sad", "glad"), "happy")
        assert exc_info.value.details == {"allowed": ["mad", "sad", "glad"]}


class TestPermissions:
    def test_author_can_edit(self) -> None:
        ensure_card_editable(card(author="user_a"), "user_a")

    def test_anyone_can_edit_anonymous_card(self) -> None:
        ensure_card_editable(card(author="user_a", anonymous=True), "user_b")

    def test_other_user_forbidden(self) -> None:
        with pytest.raises(ForbiddenError, match="Only the author"):
            ensure_card_editable(card(author="user_a"), "user_b")


class TestVoting:
    def test_vote_appends_voter(self) -> None:
        assert toggle_vote(card(), "user_b", "vote", votes_cast=0, votes_per_person=5) == ["user_b"]

    def test_vote_does_not_mutate_card(self) -> None:
        target = card(votes=["user_c"])
        toggle_vote(target, "user_b", "vote", votes_cast=0, votes_per_person=5)
        assert target.votes == ["user_c"]

    def test_repeat_vote_is_idempotent(self) -> None:
        votes = toggle_vote(card(votes=["user_b"]), "user_b", "vote", votes_cast=1, votes_per_person=5)
        assert votes == ["user_b"]

    def test_repeat_vote_allowed_at_budget(self) -> None:
        votes = toggle_vote(card(votes=["user_b"]), "user_b", "vote", votes_cast=2, votes_per_person=2)
        assert votes == ["user_b"]

    def test_budget_exhausted(self) -> None:
        with pytest.raises(ConflictError, match="Vote limit of 2 reached"):
            toggle_vote(card(), "user_b", "vote", votes_cast=2, votes_per_person=2)

    @pytest.mark.parametrize("budget", [None, 0])
    def test_unlimited_budget(self, budget: int | None) -> None:
        assert toggle_vote(card(), "user_b", "vote", votes_cast=50, votes_per_person=budget) == ["user_b"]

    def test_unvote_removes_voter(self) -> None:
        votes = toggle_vote(card(votes=["user_b", "user_c"]), "user_b", "unvote", 1, 5)
        assert votes == ["user_c"]

    def test_unvote_without_vote_is_noop(self) -> None:
        assert toggle_vote(card(votes=["user_c"]), "user_b", "unvote", 0, 5) == ["user_c"]

    def test_votes_by_user(self) -> None:
        cards = [card(votes=["u1", "u2"]), card(votes=["u2"]), card()]
        assert votes_by_user(cards, "u2") == 2
        assert votes_by_user(cards, "u3") == 0


def test_board_stats() -> None:
    cards = [
        card(author="u1", votes=["u2", "u3"]),
        card(author="u1", votes=["u2"]),
        card(author="u2"),
    ]
    actions = [SimpleNamespace(status="done"), SimpleNamespace(status="todo")]

    stats = board_stats(cards, actions)

    assert stats.total_cards == 3
    assert stats.total_votes == 3
    assert stats.total_actions == 2
    assert stats.participant_count == 2
    assert stats.completed_actions == 1
    assert set(stats.model_dump(by_alias=True)) == {
        "totalCards",
        "totalVotes",
        "totalActions",
        "participantCount",
        "completedActions",
    }
