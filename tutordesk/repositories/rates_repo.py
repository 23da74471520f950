import logging
from typing import Iterable, Optional, TypeVar

from tutordesk.config import PARENT_RATES_PATH, TUTOR_RATES_PATH
from tutordesk.models.rates import ParentRate, RateAssignment, RateFields, TutorRate
from tutordesk.services.api_client import ApiClient

logger = logging.getLogger(__name__)

R = TypeVar("R", bound=RateFields)


def _require_id(rate_id: str) -> str:
    if not isinstance(rate_id, str) or not rate_id.strip():
        raise ValueError("Rate id is required")
    return rate_id.strip()


# -----------------------------
# Tutor rates
# -----------------------------
def list_tutor_rates(client: ApiClient) -> list[TutorRate]:
    """All tutor rates, active and inactive."""
    records = client.get(TUTOR_RATES_PATH) or []
    return [TutorRate.from_api(r) for r in records]


def _with_assignments(payload: dict, tutor_ids, tutor_group_ids) -> dict:
    if tutor_ids is not None:
        payload["tutorIds"] = list(tutor_ids)
    if tutor_group_ids is not None:
        payload["tutorGroupIds"] = list(tutor_group_ids)
    return payload


def create_tutor_rate(
    client: ApiClient,
    rate: TutorRate,
    tutor_ids: Optional[Iterable[str]] = None,
    tutor_group_ids: Optional[Iterable[str]] = None,
) -> TutorRate:
    payload = _with_assignments(rate.to_payload(), tutor_ids, tutor_group_ids)
    created = TutorRate.from_api(client.post(TUTOR_RATES_PATH, payload))
    logger.info("created tutor rate %s (%s)", created.id, created.name)
    return created


def update_tutor_rate(
    client: ApiClient,
    rate_id: str,
    changes: dict,
    tutor_ids: Optional[Iterable[str]] = None,
    tutor_group_ids: Optional[Iterable[str]] = None,
) -> TutorRate:
    """
    `changes` is a partial wire payload (camelCase keys).
    Passing tutor_ids / tutor_group_ids replaces the rate's assignments;
    leaving them as None keeps the current ones.
    """
    rate_id = _require_id(rate_id)
    payload = _with_assignments(dict(changes), tutor_ids, tutor_group_ids)
    updated = TutorRate.from_api(client.patch(f"{TUTOR_RATES_PATH}/{rate_id}", payload))
    logger.info("updated tutor rate %s", rate_id)
    return updated


def delete_tutor_rate(client: ApiClient, rate_id: str) -> None:
    rate_id = _require_id(rate_id)
    client.delete(f"{TUTOR_RATES_PATH}/{rate_id}")
    logger.info("deleted tutor rate %s", rate_id)


def get_tutor_rate_assignments(client: ApiClient, rate_id: str) -> RateAssignment:
    rate_id = _require_id(rate_id)
    tutors = client.get(f"{TUTOR_RATES_PATH}/{rate_id}/tutors") or []
    groups = client.get(f"{TUTOR_RATES_PATH}/{rate_id}/tutor-groups") or []
    return RateAssignment.from_api(rate_id, tutors, groups)


# -----------------------------
# Parent rates
# -----------------------------
def list_parent_rates(client: ApiClient) -> list[ParentRate]:
    """All parent rates, active and inactive."""
    records = client.get(PARENT_RATES_PATH) or []
    return [ParentRate.from_api(r) for r in records]


def create_parent_rate(client: ApiClient, rate: ParentRate) -> ParentRate:
    created = ParentRate.from_api(client.post(PARENT_RATES_PATH, rate.to_payload()))
    logger.info("created parent rate %s (%s)", created.id, created.name)
    return created


def update_parent_rate(client: ApiClient, rate_id: str, changes: dict) -> ParentRate:
    rate_id = _require_id(rate_id)
    updated = ParentRate.from_api(client.patch(f"{PARENT_RATES_PATH}/{rate_id}", dict(changes)))
    logger.info("updated parent rate %s", rate_id)
    return updated


def delete_parent_rate(client: ApiClient, rate_id: str) -> None:
    rate_id = _require_id(rate_id)
    client.delete(f"{PARENT_RATES_PATH}/{rate_id}")
    logger.info("deleted parent rate %s", rate_id)


# -----------------------------
# Selection helpers
# -----------------------------
def find_rate_by_amount(rates: Iterable[R], amount: float) -> Optional[R]:
    """First active rate whose amount matches to the cent."""
    target = round(float(amount) * 100)
    for r in rates:
        if r.is_active and round(r.rate * 100) == target:
            return r
    return None


def applies_to_tutor(
    rate: TutorRate,
    assignment: Optional[RateAssignment],
    tutor_id: str,
    group_ids: Iterable[str] = (),
) -> bool:
    """Unscoped rates apply to every tutor."""
    scoped = bool(rate.tutor_id) or (assignment is not None and assignment.is_scoped)
    if not scoped:
        return True
    if rate.tutor_id == tutor_id:
        return True
    if assignment is None:
        return False
    if tutor_id in assignment.tutor_ids:
        return True
    return bool(set(group_ids) & set(assignment.tutor_group_ids))
