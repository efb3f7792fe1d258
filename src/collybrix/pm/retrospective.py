"""Retrospective board rules for Collybrix.

Pure helpers used by the retrospective routes: card permissions, vote
toggling with the per-person budget, column checks and board statistics.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any, Protocol

from collybrix.errors import ConflictError, ForbiddenError, ValidationFailedError
from collybrix.schema import CamelModel


class CardLike(Protocol):
    author_id: str
    is_anonymous: bool
    votes: list[str]


class BoardStats(CamelModel):
    total_cards: int
    total_votes: int
    total_actions: int
    participant_count: int
    completed_actions: int


def ensure_column(columns: Sequence[str], column: str) -> None:
    """Reject a column that is not part of the session's format."""
    if column not in columns:
        raise ValidationFailedError(
            f'Column "{column}" is not valid for this retrospective',
            details={"allowed": list(columns)},
        )


def ensure_card_editable(card: CardLike, user_id: str) -> None:
    """Only the author may change a card, unless it was posted anonymously."""
    if card.is_anonymous or card.author_id == user_id:
        return
    raise ForbiddenError("Only the author can modify this card")


def toggle_vote(
    card: CardLike,
    user_id: str,
    action: str,
    votes_cast: int,
    votes_per_person: int | None,
) -> list[str]:
    """Return the card's vote list after adding or removing the user's vote.

    Args:
        card: Card being voted on.
        user_id: Voter.
        action: "vote" or "unvote".
        votes_cast: Votes the user already has on the whole board.
        votes_per_person: Budget per user (None or 0 for unlimited).

    Raises:
        ConflictError: When a new vote would exceed the budget. Voting again
            for a card already voted on leaves the list unchanged.
    """
    votes = list(card.votes or [])
    if action == "unvote":
        return [v for v in votes if v != user_id]

    if user_id in votes:
        return votes
    if votes_per_person and votes_cast >= votes_per_person:
        raise ConflictError(
            f"Vote limit of {votes_per_person} reached",
            details={"votesPerPerson": votes_per_person},
        )
    votes.append(user_id)
    return votes


def votes_by_user(cards: Sequence[CardLike], user_id: str) -> int:
    """Number of cards the user has voted for."""
    return sum(1 for card in cards if user_id in (card.votes or []))


def board_stats(cards: Sequence[CardLike], actions: Sequence[Any]) -> BoardStats:
    """Summary counters for a retrospective board."""
    return BoardStats(
        total_cards=len(cards),
        total_votes=sum(len(card.votes or []) for card in cards),
        total_actions=len(actions),
        participant_count=len({card.author_id for card in cards}),
        completed_actions=sum(1 for a in actions if str(getattr(a.status, "value", a.status)) == "done"),
    )
