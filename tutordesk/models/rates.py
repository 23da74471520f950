from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

import pytz

from tutordesk.config import CLASS_TYPES, EXPERIENCE_LEVELS
from tutordesk.utils.rate_parser import format_amount, parse_amount


def _parse_timestamp(value) -> Optional[datetime]:
    if not value:
        return None
    try:
        dt = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None
    if dt.tzinfo is None:
        return pytz.UTC.localize(dt)
    return dt.astimezone(pytz.UTC)


def _opt_str(value) -> Optional[str]:
    if value is None:
        return None
    s = str(value).strip()
    return s or None


# -----------------------------
# Rate catalogs
# -----------------------------
@dataclass
class RateFields:
    """Shape shared by tutor and parent rates."""

    id: str
    name: str
    rate: float
    class_type: str = "individual"
    description: Optional[str] = None
    subject: Optional[str] = None
    is_default: bool = False
    is_active: bool = True

    @property
    def rate_text(self) -> str:
        return format_amount(self.rate)

    @classmethod
    def _common_from_api(cls, data: dict) -> dict:
        class_type = data.get("classType") or "individual"
        if class_type not in CLASS_TYPES:
            class_type = "individual"
        return {
            "id": str(data.get("id", "")),
            "name": str(data.get("name", "")),
            "rate": parse_amount(data.get("rate")),
            "class_type": class_type,
            "description": _opt_str(data.get("description")),
            "subject": _opt_str(data.get("subject")),
            "is_default": bool(data.get("isDefault", False)),
            "is_active": bool(data.get("isActive", True)),
        }

    def to_payload(self) -> dict:
        return {
            "name": self.name,
            "description": self.description,
            "classType": self.class_type,
            "subject": self.subject,
            "rate": self.rate_text,
            "isDefault": self.is_default,
            "isActive": self.is_active,
        }

    def to_row(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "class_type": self.class_type,
            "subject": self.subject or "",
            "rate": self.rate_text,
            "is_default": self.is_default,
            "is_active": self.is_active,
            "description": self.description or "",
        }


@dataclass
class TutorRate(RateFields):
    tutor_id: Optional[str] = None
    experience_level: Optional[str] = None

    @classmethod
    def from_api(cls, data: dict) -> "TutorRate":
        level = _opt_str(data.get("experienceLevel"))
        return cls(
            **cls._common_from_api(data),
            tutor_id=_opt_str(data.get("tutorId")),
            experience_level=level if level in EXPERIENCE_LEVELS else None,
        )

    def to_payload(self) -> dict:
        payload = super().to_payload()
        payload["tutorId"] = self.tutor_id
        payload["experienceLevel"] = self.experience_level
        return payload


@dataclass
class ParentRate(RateFields):
    @classmethod
    def from_api(cls, data: dict) -> "ParentRate":
        return cls(**cls._common_from_api(data))


# -----------------------------
# Links, groups, assignments
# -----------------------------
@dataclass
class RateLink:
    id: str
    tutor_rate_id: str
    parent_rate_id: str
    created_at: Optional[datetime] = None

    @classmethod
    def from_api(cls, data: dict) -> "RateLink":
        # A pre-joined tutorRate/parentRate is ignored; the catalogs win
        return cls(
            id=str(data.get("id", "")),
            tutor_rate_id=str(data.get("tutorRateId", "")),
            parent_rate_id=str(data.get("parentRateId", "")),
            created_at=_parse_timestamp(data.get("createdAt")),
        )


@dataclass
class TutorGroup:
    id: str
    name: str
    description: Optional[str] = None
    is_active: bool = True
    tutor_ids: list[str] = field(default_factory=list)

    @classmethod
    def from_api(cls, data: dict) -> "TutorGroup":
        members = data.get("members") or []
        tutor_ids = data.get("tutorIds")
        if tutor_ids is None:
            tutor_ids = [m.get("tutorId") for m in members if isinstance(m, dict)]
        return cls(
            id=str(data.get("id", "")),
            name=str(data.get("name", "")),
            description=_opt_str(data.get("description")),
            is_active=bool(data.get("isActive", True)),
            tutor_ids=[str(t) for t in tutor_ids if t],
        )

    def to_payload(self) -> dict:
        return {
            "name": self.name,
            "description": self.description,
            "isActive": self.is_active,
            "tutorIds": list(self.tutor_ids),
        }


@dataclass
class RateAssignment:
    tutor_rate_id: str
    tutor_ids: list[str] = field(default_factory=list)
    tutor_group_ids: list[str] = field(default_factory=list)

    @property
    def is_scoped(self) -> bool:
        return bool(self.tutor_ids or self.tutor_group_ids)

    @classmethod
    def from_api(cls, tutor_rate_id: str, tutors: list, groups: list) -> "RateAssignment":
        return cls(
            tutor_rate_id=tutor_rate_id,
            tutor_ids=[str(r["tutorId"]) for r in tutors if r.get("tutorId")],
            tutor_group_ids=[str(r["tutorGroupId"]) for r in groups if r.get("tutorGroupId")],
        )


# -----------------------------
# Derived (never persisted)
# -----------------------------
@dataclass(frozen=True)
class ProfitEntry:
    link_id: str
    tutor_rate_id: str
    parent_rate_id: str
    tutor_rate_name: str
    parent_rate_name: str
    class_type: str
    tutor_amount: float
    parent_amount: float
    profit: float
    margin_percent: float

    @property
    def is_loss(self) -> bool:
        return self.profit < 0


@dataclass(frozen=True)
class ProfitSummary:
    count: int = 0
    avg_tutor_rate: float = 0.0
    avg_parent_rate: float = 0.0
    avg_profit: float = 0.0
    avg_margin_percent: float = 0.0
