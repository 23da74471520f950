# tutordesk/ui/state.py
from dataclasses import dataclass, replace
from typing import Callable, Iterable, MutableMapping, Optional

from tutordesk.config import CLASS_TYPES
from tutordesk.models.rates import ParentRate, RateAssignment, RateFields, TutorRate
from tutordesk.repositories.rates_repo import find_rate_by_amount
from tutordesk.utils.rate_parser import parse_rate_expr

# Centralize keys to avoid typos across files
KEY_AUTHENTICATED = "authenticated"
KEY_TUTOR_RATE_DRAFT = "tutor_rate_draft"
KEY_PARENT_RATE_DRAFT = "parent_rate_draft"
KEY_LINK_DRAFT = "link_draft"


# -----------------------------
# Cached collections
# -----------------------------
class CollectionCache:
    """
    Fetched collections kept in a session mapping.
    Entries are replaced wholesale; a stale entry is refetched on next read.
    """

    def __init__(self, state: MutableMapping):
        self.state = state

    @staticmethod
    def _data_key(name: str) -> str:
        return f"{name}_cache"

    @staticmethod
    def _ready_key(name: str) -> str:
        return f"{name}_cache_ready"

    def is_ready(self, name: str) -> bool:
        return bool(self.state.get(self._ready_key(name)))

    def get(self, name: str, loader: Callable[[], list]) -> list:
        if not self.is_ready(name):
            self.state[self._data_key(name)] = list(loader())
            self.state[self._ready_key(name)] = True
        return self.state[self._data_key(name)]

    def invalidate(self, *names: str) -> None:
        for name in names:
            self.state[self._ready_key(name)] = False


# -----------------------------
# Dialog drafts
# -----------------------------
@dataclass
class RateDraft:
    rate_id: str = ""            # empty while creating
    name: str = ""
    rate: str = ""               # admin expression, e.g. "1,200/40"
    class_type: str = "individual"
    description: str = ""
    subject: str = ""
    is_default: bool = False
    is_active: bool = True
    # None = assignments unknown; saving leaves the stored ones untouched
    tutor_ids: Optional[list[str]] = None
    tutor_group_ids: Optional[list[str]] = None

    @classmethod
    def from_rate(cls, rate, assignment: Optional[RateAssignment] = None) -> "RateDraft":
        draft = cls(
            rate_id=rate.id,
            name=rate.name,
            rate=rate.rate_text,
            class_type=rate.class_type,
            description=rate.description or "",
            subject=rate.subject or "",
            is_default=rate.is_default,
            is_active=rate.is_active,
        )
        if assignment is not None:
            draft.tutor_ids = list(assignment.tutor_ids)
            draft.tutor_group_ids = list(assignment.tutor_group_ids)
        return draft

    @property
    def assignments_known(self) -> bool:
        return not self.rate_id or self.tutor_group_ids is not None

    def validate(self) -> list[str]:
        errors = []
        if not self.name.strip():
            errors.append("Rate name is required.")
        if self.class_type not in CLASS_TYPES:
            errors.append("Class type must be individual or group.")
        try:
            if parse_rate_expr(self.rate) < 0:
                errors.append("Rate must not be negative.")
        except ValueError as exc:
            errors.append(f"Rate: {exc}")
        return errors

    def _fields(self) -> dict:
        return {
            "id": self.rate_id,
            "name": self.name.strip(),
            "rate": parse_rate_expr(self.rate),
            "class_type": self.class_type,
            "description": self.description.strip() or None,
            "subject": self.subject.strip() or None,
            "is_default": self.is_default,
            "is_active": self.is_active,
        }

    def to_tutor_rate(self) -> TutorRate:
        return TutorRate(**self._fields())

    def to_parent_rate(self) -> ParentRate:
        return ParentRate(**self._fields())

    def to_tutor_update(self) -> tuple[dict, Optional[list[str]], Optional[list[str]]]:
        """PATCH changes plus assignment lists; None lists are left out of the request."""
        # the form does not edit tutorId / experienceLevel
        changes = {
            k: v for k, v in self.to_tutor_rate().to_payload().items() if k not in ("tutorId", "experienceLevel")
        }
        return changes, self.tutor_ids, self.tutor_group_ids

    def matching_rate(self, rates: Iterable[RateFields]) -> Optional[RateFields]:
        """Another active rate of the same class type with this amount, if any."""
        try:
            amount = parse_rate_expr(self.rate)
        except ValueError:
            return None
        others = [r for r in rates if r.id != self.rate_id and r.class_type == self.class_type]
        return find_rate_by_amount(others, amount)


@dataclass
class LinkDraft:
    tutor_rate_id: str = ""
    parent_rate_id: str = ""

    @property
    def can_submit(self) -> bool:
        return bool(self.tutor_rate_id.strip() and self.parent_rate_id.strip())


class DraftStore:
    """
    One dialog's draft in session state.
    open -> edit -> submit (cleared on success) or cancel.
    """

    def __init__(self, state: MutableMapping, key: str, factory: Callable[[], object]):
        self.state = state
        self.key = key
        self.factory = factory

    @property
    def is_open(self) -> bool:
        return self.state.get(self.key) is not None

    def open(self, draft=None):
        self.state[self.key] = draft if draft is not None else self.factory()
        return self.state[self.key]

    def get(self):
        draft = self.state.get(self.key)
        return draft if draft is not None else self.open()

    def update(self, **changes):
        self.state[self.key] = replace(self.get(), **changes)
        return self.state[self.key]

    def cancel(self) -> None:
        self.state[self.key] = None

    def submit(self, action: Callable[[object], bool]) -> bool:
        """Run action on the draft; close the dialog only if it reports success."""
        ok = bool(action(self.get()))
        if ok:
            self.cancel()
        return ok


def is_authenticated(state: MutableMapping) -> bool:
    return bool(state.get(KEY_AUTHENTICATED))


def mark_logged_out(state: MutableMapping) -> None:
    state[KEY_AUTHENTICATED] = False


def tutor_rate_drafts(state: MutableMapping) -> DraftStore:
    return DraftStore(state, KEY_TUTOR_RATE_DRAFT, RateDraft)


def parent_rate_drafts(state: MutableMapping) -> DraftStore:
    return DraftStore(state, KEY_PARENT_RATE_DRAFT, RateDraft)


def link_drafts(state: MutableMapping) -> DraftStore:
    return DraftStore(state, KEY_LINK_DRAFT, LinkDraft)
