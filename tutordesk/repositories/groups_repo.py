import logging
from typing import Iterable, Optional

from tutordesk.config import TUTOR_GROUPS_PATH
from tutordesk.models.rates import TutorGroup
from tutordesk.services.api_client import ApiClient

logger = logging.getLogger(__name__)


def list_tutor_groups(client: ApiClient) -> list[TutorGroup]:
    records = client.get(TUTOR_GROUPS_PATH) or []
    return [TutorGroup.from_api(r) for r in records]


def create_tutor_group(client: ApiClient, group: TutorGroup) -> TutorGroup:
    created = TutorGroup.from_api(client.post(TUTOR_GROUPS_PATH, group.to_payload()))
    logger.info("created tutor group %s (%s)", created.id, created.name)
    return created


def update_tutor_group(
    client: ApiClient,
    group_id: str,
    changes: dict,
    tutor_ids: Optional[Iterable[str]] = None,
) -> TutorGroup:
    payload = dict(changes)
    if tutor_ids is not None:
        payload["tutorIds"] = list(tutor_ids)
    updated = TutorGroup.from_api(client.patch(f"{TUTOR_GROUPS_PATH}/{group_id}", payload))
    logger.info("updated tutor group %s", group_id)
    return updated


def delete_tutor_group(client: ApiClient, group_id: str) -> None:
    client.delete(f"{TUTOR_GROUPS_PATH}/{group_id}")
    logger.info("deleted tutor group %s", group_id)
