# tutordesk/repositories/links_repo.py
import logging

from tutordesk.config import RATE_LINKS_PATH
from tutordesk.models.rates import RateLink
from tutordesk.services.api_client import ApiClient

logger = logging.getLogger(__name__)


class LinkValidationError(ValueError):
    """A link action was attempted without the ids it needs."""


def _clean(value, label: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise LinkValidationError(f"Select a {label} first.")
    return value.strip()


def list_rate_links(client: ApiClient) -> list[RateLink]:
    records = client.get(RATE_LINKS_PATH) or []
    return [RateLink.from_api(r) for r in records]


def create_link(client: ApiClient, tutor_rate_id: str, parent_rate_id: str) -> RateLink:
    """
    Link one tutor rate to one parent rate for profit reporting.
    Both ids are checked before anything is sent.
    """
    payload = {
        "tutorRateId": _clean(tutor_rate_id, "tutor rate"),
        "parentRateId": _clean(parent_rate_id, "parent rate"),
    }
    link = RateLink.from_api(client.post(RATE_LINKS_PATH, payload))
    logger.info("linked tutor rate %s to parent rate %s (%s)", link.tutor_rate_id, link.parent_rate_id, link.id)
    return link


def delete_link(client: ApiClient, link_id: str) -> None:
    """Removes the association only; neither rate is touched."""
    link_id = _clean(link_id, "link")
    client.delete(f"{RATE_LINKS_PATH}/{link_id}")
    logger.info("removed rate link %s", link_id)
