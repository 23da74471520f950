import logging
from typing import Iterable, MutableMapping, Optional

from tutordesk.config import INVALIDATES, PARENT_RATES, RATE_LINKS, TUTOR_GROUPS, TUTOR_RATES
from tutordesk.models.rates import (
    ParentRate,
    ProfitEntry,
    ProfitSummary,
    RateAssignment,
    RateLink,
    TutorGroup,
    TutorRate,
)
from tutordesk.repositories import groups_repo, links_repo, rates_repo
from tutordesk.services.api_client import ApiClient
from tutordesk.services.profit import compute_profit_entries, summarize_profit
from tutordesk.ui.state import CollectionCache

logger = logging.getLogger(__name__)


class RateCatalog:
    """
    Reads go through the session cache; every mutation invalidates the
    collections listed for it in INVALIDATES, and only after it succeeded.
    """

    def __init__(self, client: ApiClient, state: MutableMapping):
        self.client = client
        self.cache = CollectionCache(state)

    def _after(self, mutation: str) -> None:
        names = INVALIDATES[mutation]
        logger.debug("%s invalidates %s", mutation, ", ".join(names))
        self.cache.invalidate(*names)

    # ---- reads ----
    def tutor_rates(self) -> list[TutorRate]:
        return self.cache.get(TUTOR_RATES, lambda: rates_repo.list_tutor_rates(self.client))

    def parent_rates(self) -> list[ParentRate]:
        return self.cache.get(PARENT_RATES, lambda: rates_repo.list_parent_rates(self.client))

    def rate_links(self) -> list[RateLink]:
        return self.cache.get(RATE_LINKS, lambda: links_repo.list_rate_links(self.client))

    def tutor_groups(self) -> list[TutorGroup]:
        return self.cache.get(TUTOR_GROUPS, lambda: groups_repo.list_tutor_groups(self.client))

    def tutor_rate_assignments(self, rate_id: str) -> RateAssignment:
        # fetched on demand, not cached
        return rates_repo.get_tutor_rate_assignments(self.client, rate_id)

    def rates_for_tutor(self, tutor_id: str) -> list[TutorRate]:
        """Tutor rates that apply to one tutor, directly or through a group."""
        group_ids = [g.id for g in self.tutor_groups() if tutor_id in g.tutor_ids]
        return [
            r
            for r in self.tutor_rates()
            if rates_repo.applies_to_tutor(r, self.tutor_rate_assignments(r.id), tutor_id, group_ids)
        ]

    def profit_report(self) -> tuple[list[ProfitEntry], ProfitSummary]:
        entries = compute_profit_entries(self.tutor_rates(), self.parent_rates(), self.rate_links())
        return entries, summarize_profit(entries)

    def refresh(self) -> None:
        self.cache.invalidate(TUTOR_RATES, PARENT_RATES, RATE_LINKS, TUTOR_GROUPS)

    # ---- tutor rates ----
    def create_tutor_rate(
        self,
        rate: TutorRate,
        tutor_ids: Optional[Iterable[str]] = None,
        tutor_group_ids: Optional[Iterable[str]] = None,
    ) -> TutorRate:
        created = rates_repo.create_tutor_rate(self.client, rate, tutor_ids, tutor_group_ids)
        self._after("create_tutor_rate")
        return created

    def update_tutor_rate(
        self,
        rate_id: str,
        changes: dict,
        tutor_ids: Optional[Iterable[str]] = None,
        tutor_group_ids: Optional[Iterable[str]] = None,
    ) -> TutorRate:
        updated = rates_repo.update_tutor_rate(self.client, rate_id, changes, tutor_ids, tutor_group_ids)
        self._after("update_tutor_rate")
        return updated

    def delete_tutor_rate(self, rate_id: str) -> None:
        rates_repo.delete_tutor_rate(self.client, rate_id)
        self._after("delete_tutor_rate")

    # ---- parent rates ----
    def create_parent_rate(self, rate: ParentRate) -> ParentRate:
        created = rates_repo.create_parent_rate(self.client, rate)
        self._after("create_parent_rate")
        return created

    def update_parent_rate(self, rate_id: str, changes: dict) -> ParentRate:
        updated = rates_repo.update_parent_rate(self.client, rate_id, changes)
        self._after("update_parent_rate")
        return updated

    def delete_parent_rate(self, rate_id: str) -> None:
        rates_repo.delete_parent_rate(self.client, rate_id)
        self._after("delete_parent_rate")

    # ---- links ----
    def create_link(self, tutor_rate_id: str, parent_rate_id: str) -> RateLink:
        link = links_repo.create_link(self.client, tutor_rate_id, parent_rate_id)
        self._after("create_link")
        return link

    def delete_link(self, link_id: str) -> None:
        links_repo.delete_link(self.client, link_id)
        self._after("delete_link")

    # ---- tutor groups ----
    def create_tutor_group(self, group: TutorGroup) -> TutorGroup:
        created = groups_repo.create_tutor_group(self.client, group)
        self._after("create_tutor_group")
        return created

    def update_tutor_group(
        self, group_id: str, changes: dict, tutor_ids: Optional[Iterable[str]] = None
    ) -> TutorGroup:
        updated = groups_repo.update_tutor_group(self.client, group_id, changes, tutor_ids)
        self._after("update_tutor_group")
        return updated

    def delete_tutor_group(self, group_id: str) -> None:
        groups_repo.delete_tutor_group(self.client, group_id)
        self._after("delete_tutor_group")
