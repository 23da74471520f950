import pandas as pd
from typing import Iterable

from tutordesk.config import PROFIT_COLUMNS
from tutordesk.models.rates import ParentRate, ProfitEntry, ProfitSummary, RateLink, TutorRate
from tutordesk.utils.rate_parser import format_amount, format_margin


def _margin(profit: float, parent_amount: float) -> float:
    # parent amount 0 means no margin, never NaN/inf
    if parent_amount > 0:
        return profit / parent_amount * 100
    return 0.0


def compute_profit_entries(
    tutor_rates: Iterable[TutorRate],
    parent_rates: Iterable[ParentRate],
    links: Iterable[RateLink],
) -> list[ProfitEntry]:
    """
    One entry per link whose tutor and parent rate both still exist.
    Links pointing at a deleted rate are dropped without error.
    """
    tutors = {r.id: r for r in tutor_rates}
    parents = {r.id: r for r in parent_rates}

    out = []
    for link in links:
        t = tutors.get(link.tutor_rate_id)
        p = parents.get(link.parent_rate_id)
        if t is None or p is None:
            continue

        profit = p.rate - t.rate
        out.append(
            ProfitEntry(
                link_id=link.id,
                tutor_rate_id=t.id,
                parent_rate_id=p.id,
                tutor_rate_name=t.name,
                parent_rate_name=p.name,
                class_type=t.class_type,
                tutor_amount=t.rate,
                parent_amount=p.rate,
                profit=profit,
                margin_percent=_margin(profit, p.rate),
            )
        )
    return out


def orphaned_links(
    tutor_rates: Iterable[TutorRate],
    parent_rates: Iterable[ParentRate],
    links: Iterable[RateLink],
) -> list[RateLink]:
    """Links left out of the profit table because one of their rates is gone."""
    tutor_ids = {r.id for r in tutor_rates}
    parent_ids = {r.id for r in parent_rates}
    return [
        link for link in links if link.tutor_rate_id not in tutor_ids or link.parent_rate_id not in parent_ids
    ]


def summarize_profit(entries: list[ProfitEntry]) -> ProfitSummary:
    count = len(entries)
    if count == 0:
        return ProfitSummary()

    avg_tutor = sum(e.tutor_amount for e in entries) / count
    avg_parent = sum(e.parent_amount for e in entries) / count
    avg_profit = avg_parent - avg_tutor
    return ProfitSummary(
        count=count,
        avg_tutor_rate=avg_tutor,
        avg_parent_rate=avg_parent,
        avg_profit=avg_profit,
        avg_margin_percent=_margin(avg_profit, avg_parent),
    )


def profit_table_df(entries: list[ProfitEntry]) -> pd.DataFrame:
    if not entries:
        return pd.DataFrame(columns=PROFIT_COLUMNS)

    df = pd.DataFrame(
        [
            {
                "tutor_rate": e.tutor_rate_name,
                "parent_rate": e.parent_rate_name,
                "class_type": e.class_type,
                "tutor_amount": format_amount(e.tutor_amount),
                "parent_amount": format_amount(e.parent_amount),
                "profit": format_amount(e.profit),
                "margin": format_margin(e.margin_percent),
            }
            for e in entries
        ]
    )
    return df[PROFIT_COLUMNS]
