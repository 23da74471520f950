import math

import pytest

from tutordesk.models.rates import ParentRate, RateLink, TutorRate
from tutordesk.services.profit import (
    compute_profit_entries,
    orphaned_links,
    profit_table_df,
    summarize_profit,
)


def _tutor(id, rate, **kw):
    return TutorRate(id=id, name=f"Tutor {id}", rate=rate, **kw)


def _parent(id, rate, **kw):
    return ParentRate(id=id, name=f"Parent {id}", rate=rate, **kw)


def test_single_link_profit_and_margin():
    entries = compute_profit_entries(
        [_tutor("t1", 18.0)], [_parent("p1", 30.0)], [RateLink("l1", "t1", "p1")]
    )

    assert len(entries) == 1
    e = entries[0]
    assert e.link_id == "l1"
    assert e.profit == pytest.approx(12.0)
    assert e.margin_percent == pytest.approx(40.0)
    assert not e.is_loss


def test_deleting_tutor_rate_drops_link_and_zeroes_summary():
    links = [RateLink("l1", "t1", "p1")]

    entries = compute_profit_entries([], [_parent("p1", 30.0)], links)
    summary = summarize_profit(entries)

    assert entries == []
    assert summary.count == 0
    assert summary.avg_tutor_rate == 0
    assert summary.avg_parent_rate == 0
    assert summary.avg_profit == 0
    assert summary.avg_margin_percent == 0


def test_zero_parent_amount_has_zero_margin():
    entries = compute_profit_entries(
        [_tutor("t1", 20.0)], [_parent("p1", 0.0)], [RateLink("l1", "t1", "p1")]
    )

    e = entries[0]
    assert e.margin_percent == 0
    assert math.isfinite(e.margin_percent)
    assert e.profit == pytest.approx(-20.0)


def test_summary_with_only_zero_parent_amounts():
    entries = compute_profit_entries(
        [_tutor("t1", 0.0)], [_parent("p1", 0.0)], [RateLink("l1", "t1", "p1")]
    )
    summary = summarize_profit(entries)

    assert summary.count == 1
    assert summary.avg_margin_percent == 0


def test_negative_profit_is_a_loss_not_an_error():
    entries = compute_profit_entries(
        [_tutor("t1", 35.0)], [_parent("p1", 30.0)], [RateLink("l1", "t1", "p1")]
    )

    assert entries[0].is_loss
    assert entries[0].margin_percent == pytest.approx(-5.0 / 30.0 * 100)


def test_orphan_links_excluded_from_entries_and_summary():
    tutors = [_tutor("t1", 18.0), _tutor("t2", 22.0)]
    parents = [_parent("p1", 30.0), _parent("p2", 40.0)]
    links = [
        RateLink("l1", "t1", "p1"),
        RateLink("l2", "gone", "p2"),
        RateLink("l3", "t2", "gone"),
        RateLink("l4", "t2", "p2"),
    ]

    entries = compute_profit_entries(tutors, parents, links)
    summary = summarize_profit(entries)

    assert [e.link_id for e in entries] == ["l1", "l4"]
    assert summary.count == 2
    assert summary.avg_tutor_rate == pytest.approx(20.0)
    assert summary.avg_parent_rate == pytest.approx(35.0)
    assert [link.id for link in orphaned_links(tutors, parents, links)] == ["l2", "l3"]


def test_aggregates_follow_averages():
    tutors = [_tutor("t1", 18.0), _tutor("t2", 25.5), _tutor("t3", 40.0)]
    parents = [_parent("p1", 30.0), _parent("p2", 45.0)]
    links = [
        RateLink("l1", "t1", "p1"),
        RateLink("l2", "t2", "p2"),
        RateLink("l3", "t3", "p2"),
        RateLink("l4", "t1", "p2"),
    ]

    summary = summarize_profit(compute_profit_entries(tutors, parents, links))

    avg_tutor = (18.0 + 25.5 + 40.0 + 18.0) / 4
    avg_parent = (30.0 + 45.0 + 45.0 + 45.0) / 4
    assert summary.count == 4
    assert summary.avg_tutor_rate == pytest.approx(avg_tutor)
    assert summary.avg_parent_rate == pytest.approx(avg_parent)
    assert summary.avg_profit == pytest.approx(summary.avg_parent_rate - summary.avg_tutor_rate)
    assert summary.avg_margin_percent == pytest.approx((avg_parent - avg_tutor) / avg_parent * 100)


def test_same_rate_may_appear_in_many_links():
    entries = compute_profit_entries(
        [_tutor("t1", 18.0)],
        [_parent("p1", 30.0), _parent("p2", 36.0)],
        [RateLink("l1", "t1", "p1"), RateLink("l2", "t1", "p2"), RateLink("l3", "t1", "p1")],
    )

    assert len(entries) == 3


def test_inputs_are_not_mutated():
    tutors = [_tutor("t1", 18.0)]
    parents = [_parent("p1", 30.0)]
    links = [RateLink("l1", "t1", "p1"), RateLink("l2", "t9", "p1")]

    compute_profit_entries(tutors, parents, links)

    assert tutors == [_tutor("t1", 18.0)]
    assert parents == [_parent("p1", 30.0)]
    assert len(links) == 2


def test_profit_table_rounds_margin_for_display_only():
    entries = compute_profit_entries(
        [_tutor("t1", 20.0)], [_parent("p1", 30.0)], [RateLink("l1", "t1", "p1")]
    )

    df = profit_table_df(entries)

    assert list(df.columns) == [
        "tutor_rate",
        "parent_rate",
        "class_type",
        "tutor_amount",
        "parent_amount",
        "profit",
        "margin",
    ]
    row = df.iloc[0]
    assert row["margin"] == "33.3%"
    assert row["profit"] == "10.00"
    assert entries[0].margin_percent == pytest.approx(100 / 3)


def test_profit_table_empty():
    df = profit_table_df([])
    assert df.empty
    assert "margin" in df.columns
