"""Domain records shared by the flashcard API: users, decks, cards, classes and stats."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

MAX_QUESTION_LEN = 500
MAX_ANSWER_LEN = 2000
MAX_TOPIC_LEN = 80
MAX_SOURCE_LEN = 120
MAX_DECK_NAME_LEN = 80


class CardType(str, Enum):
    """The pedagogical kind of a flashcard."""

    CONCEITO = "conceito"
    PROCESSO = "processo"
    APLICACAO = "aplicacao"
    COMPARACAO = "comparacao"


class Role(str, Enum):
    """A role a user may hold."""

    ADMIN = "admin"
    PROFESSOR = "professor"
    STUDENT = "student"


def is_valid_card_type(value: Any) -> bool:
    """Return True if value names one of the known card types."""
    try:
        CardType(value)
    except ValueError:
        return False
    return True


def is_valid_role(value: Any) -> bool:
    """Return True if value names one of the known roles."""
    try:
        Role(value)
    except ValueError:
        return False
    return True


# --- auth -------------------------------------------------------------------


@dataclass
class AuthInfo:
    """Identity taken from a validated token; carries no personal data."""

    user_id: str = ""
    roles: list[str] = field(default_factory=list)

    def has_any_role(self, *roles: str) -> bool:
        """Return True if the user holds at least one of the given roles."""
        held = set(self.roles or ())
        return any(role in held for role in roles)


@dataclass
class GoogleProfile:
    """User info as returned by Google's userinfo endpoint."""

    sub: str = ""
    email: str = ""
    name: str = ""
    picture: str = ""


# --- admin ------------------------------------------------------------------


@dataclass
class UserWithRoles:
    """Admin listing entry; identity-provider ids and pictures are left out."""

    id: str = ""
    email: str = ""
    name: str = ""
    roles: list[str] = field(default_factory=list)
    created_at: datetime | None = None


@dataclass
class SetRolesRequest:
    add: list[str] = field(default_factory=list)
    remove: list[str] = field(default_factory=list)


# --- cards ------------------------------------------------------------------


@dataclass
class Card:
    id: str = ""
    deck_id: str = ""
    topic: str | None = None
    type: CardType | str = ""
    question: str = ""
    answer: str = ""
    source: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass
class CardListItem:
    """Reduced card projection for list views; answer and source are omitted."""

    id: str = ""
    deck_id: str = ""
    type: CardType | str = ""
    topic: str | None = None
    question: str = ""
    updated_at: datetime | None = None


# --- classes ----------------------------------------------------------------


@dataclass
class Class:
    id: str = ""
    name: str = ""
    description: str | None = None
    invite_code: str = ""
    is_active: bool = False
    member_count: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None
    created_by: str = field(default="", repr=False)


@dataclass
class ClassSummary:
    id: str = ""
    name: str = ""
    description: str | None = None
    invite_code: str | None = None
    deck_count: int = 0
    member_count: int = 0
    is_active: bool = False
    joined_at: datetime | None = None


@dataclass
class ClassDeckSummary:
    deck_id: str = ""
    deck_name: str = ""
    subject: str | None = None
    card_count: int = 0
    added_at: datetime | None = None


@dataclass
class ClassDeckStats:
    deck_id: str = ""
    deck_name: str = ""
    subject: str | None = None
    total_cards: int = 0
    students_studied: int = 0
    active_last_7d: int = 0
    accuracy_pct: float = 0.0
    last_activity: datetime | None = None


@dataclass
class ClassHardCard:
    card_id: str = ""
    question: str = ""
    deck_name: str = ""
    error_rate: float = 0.0
    total_reviews: int = 0


@dataclass
class ClassStats:
    """Aggregate report for one class; no per-student data."""

    class_id: str = ""
    class_name: str = ""
    total_members: int = 0
    active_members: int = 0
    active_last_7d: int = 0
    reviews_last_7d: int = 0
    total_cards: int = 0
    accuracy_pct: float = 0.0
    deck_stats: list[ClassDeckStats] = field(default_factory=list)
    hardest_cards: list[ClassHardCard] = field(default_factory=list)


@dataclass
class ClassOverviewItem:
    class_id: str = ""
    class_name: str = ""
    total_members: int = 0
    active_last_7d: int = 0
    reviews_last_7d: int = 0
    deck_count: int = 0
    accuracy_pct: float = 0.0
    last_activity: datetime | None = None


# --- content requests -------------------------------------------------------


@dataclass
class CreateDeckRequest:
    name: str = ""
    description: str | None = None
    subject: str | None = None


@dataclass
class UpdateDeckRequest:
    name: str = ""
    description: str | None = None
    subject: str | None = None


@dataclass
class PatchDeckRequest:
    """Partial deck update: only fields that are not None are applied."""

    is_active: bool | None = None
    expires_at: str | None = None


@dataclass
class CreateCardRequest:
    deck_id: str = ""
    topic: str | None = None
    type: str = ""
    question: str = ""
    answer: str = ""
    source: str | None = None


@dataclass
class UpdateCardRequest:
    topic: str | None = None
    type: str = ""
    question: str = ""
    answer: str = ""
    source: str | None = None


@dataclass
class ImportResult:
    imported_count: int = 0
    updated_count: int = 0
    invalid_count: int = 0
    decks_created: int = 0


# --- decks ------------------------------------------------------------------


@dataclass
class Deck:
    id: str = ""
    name: str = ""
    description: str | None = None
    subject: str | None = None
    is_active: bool = False
    is_private: bool = False
    expires_at: datetime | None = None
    created_at: datetime | None = None
    created_by: str | None = None

    def is_owned_by(self, user_id: str) -> bool:
        """Return True if the deck was created by user_id; unowned decks never match."""
        return self.created_by is not None and self.created_by == user_id

    def effectively_active(self, now: datetime | None = None) -> bool:
        """Return True when the deck is enabled and not past its expiry."""
        if not self.is_active:
            return False
        if self.expires_at is not None:
            current = now if now is not None else datetime.now(timezone.utc)
            if self.expires_at < current:
                return False
        return True


@dataclass
class DeckWithCount:
    id: str = ""
    name: str = ""
    total_cards: int = 0


# --- problem details --------------------------------------------------------


@dataclass
class ProblemDetail:
    """An HTTP API error body in the RFC 7807 shape."""

    type: str = "about:blank"
    title: str = ""
    status: int = 0
    detail: str = ""

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"type": self.type, "title": self.title, "status": self.status}
        if self.detail:
            body["detail"] = self.detail
        return body


# --- professor dashboard ----------------------------------------------------


@dataclass
class DeckStat:
    id: str = ""
    name: str = ""
    subject: str | None = None
    is_active: bool = False
    total_cards: int = 0
    students_studying: int = 0
    avg_accuracy: int = 0
    total_reviews: int = 0


@dataclass
class HardCard:
    id: str = ""
    question: str = ""
    type: str = ""
    deck_name: str = ""
    total_reviews: int = 0
    accuracy: int = 0


@dataclass
class ProfessorStats:
    total_decks: int = 0
    active_decks: int = 0
    total_cards: int = 0
    active_students: int = 0
    total_reviews: int = 0
    decks: list[DeckStat] = field(default_factory=list)
    hardest_cards: list[HardCard] = field(default_factory=list)


# --- progress ---------------------------------------------------------------


@dataclass
class DeckProgress:
    id: str = ""
    name: str = ""
    total_cards: int = 0
    mastered: int = 0
    learning: int = 0
    due_now: int = 0
    wrong: int = 0
    hard: int = 0


@dataclass
class ProgressStats:
    total_studied: int = 0
    mastered: int = 0
    learning: int = 0
    due_today: int = 0
    accuracy_7d: int = 0
    study_days: int = 0
    study_streak: int = 0
    longest_streak: int = 0
    decks: list[DeckProgress] = field(default_factory=list)


# --- push -------------------------------------------------------------------


@dataclass
class PushSubscription:
    """A browser's Web Push subscription."""

    user_id: str = field(default="", repr=False)
    endpoint: str = ""
    p256dh: str = ""
    auth: str = ""


@dataclass
class PushSubWithDue(PushSubscription):
    """A subscription paired with the owner's count of due cards."""

    due_count: int = 0


# --- reviews and study ------------------------------------------------------


@dataclass
class Review:
    id: str = ""
    user_id: str = ""
    card_id: str = ""
    next_due: datetime | None = None
    last_result: int = 0
    streak: int = 0
    ease_factor: float = 0.0
    interval_days: int = 0
    updated_at: datetime | None = None


@dataclass
class DeckWithCounts:
    id: str = ""
    name: str = ""
    description: str | None = None
    subject: str | None = None
    is_active: bool = False
    is_private: bool = False
    expires_at: datetime | None = None
    created_at: datetime | None = None
    created_by: str | None = None
    class_id: str | None = None
    class_name: str | None = None
    total_cards: int = 0
    due_now: int = 0
    last_studied: datetime | None = None
    next_review: datetime | None = None
    hidden: bool = False


@dataclass
class HideDeckRequest:
    deck_id: str = ""
    hidden: bool = False


@dataclass
class AnswerRequest:
    """An answer to a card: result 0 is wrong, 1 hard, 2 correct."""

    card_id: str = ""
    result: int = 0


@dataclass
class AnswerResponse:
    next_due: datetime | None = None
    streak: int = 0
    interval_days: int = 0


@dataclass
class OfflineReview:
    streak: int = 0
    interval_days: int = 0
    ease_factor: float = 0.0
    next_due: str = ""
    last_result: int = 0


@dataclass
class OfflineBundle:
    """All cards of a deck plus the user's review state, keyed by card id."""

    cards: list[Card] = field(default_factory=list)
    reviews: dict[str, OfflineReview] = field(default_factory=dict)


@dataclass
class StudyStats:
    due_now: int = 0
    reviewed_today: int = 0
    accuracy_pct: int = 0
    total_cards: int = 0


# --- uploads and users ------------------------------------------------------


@dataclass
class Upload:
    id: str = ""
    user_id: str = ""
    deck_id: str | None = None
    filename: str = ""
    imported_count: int = 0
    updated_count: int = 0
    invalid_count: int = 0
    decks_created: int = 0
    created_at: datetime | None = None


@dataclass
class User:
    id: str = ""
    google_sub: str = field(default="", repr=False)
    email: str = ""
    name: str = ""
    picture_url: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass
class MeResponse:
    """The public projection of a user returned to the user themself."""

    id: str = ""
    name: str = ""
    email: str = ""
    picture_url: str | None = None


@dataclass
class UserRole:
    user_id: str = ""
    role: Role | str = ""
    created_at: datetime | None = None