from datetime import datetime

import pytz

from conftest import parent_rate_json, tutor_rate_json
from tutordesk.models.rates import ParentRate, RateAssignment, RateLink, TutorGroup, TutorRate


def test_tutor_rate_from_api():
    rate = TutorRate.from_api(
        tutor_rate_json(
            "t1",
            rate="18.50",
            classType="group",
            subject="Maths",
            experienceLevel="senior",
            isDefault=True,
        )
    )

    assert rate.id == "t1"
    assert rate.rate == 18.5
    assert rate.rate_text == "18.50"
    assert rate.class_type == "group"
    assert rate.subject == "Maths"
    assert rate.experience_level == "senior"
    assert rate.is_default is True
    assert rate.is_active is True


def test_unknown_enums_fall_back():
    rate = TutorRate.from_api(tutor_rate_json("t1", classType="workshop", experienceLevel="guru"))

    assert rate.class_type == "individual"
    assert rate.experience_level is None


def test_rate_payload_sends_amount_as_decimal_string():
    payload = ParentRate(id="", name="GCSE 1:1", rate=30).to_payload()

    assert payload["rate"] == "30.00"
    assert payload["classType"] == "individual"
    assert payload["isActive"] is True
    assert "tutorId" not in payload


def test_tutor_payload_carries_scope_fields():
    payload = TutorRate(id="", name="Senior", rate=25, tutor_id="u1", experience_level="senior").to_payload()

    assert payload["tutorId"] == "u1"
    assert payload["experienceLevel"] == "senior"


def test_parent_rate_blank_optional_fields_become_none():
    rate = ParentRate.from_api(parent_rate_json("p1", description="  ", subject=""))

    assert rate.description is None
    assert rate.subject is None
    assert rate.to_row()["subject"] == ""


def test_rate_link_ignores_joined_rates():
    link = RateLink.from_api(
        {
            "id": "l1",
            "tutorRateId": "t1",
            "parentRateId": "p1",
            "createdAt": "2026-01-05T10:00:00Z",
            "tutorRate": tutor_rate_json("t1"),
            "parentRate": parent_rate_json("p1"),
        }
    )

    assert link == RateLink(
        id="l1",
        tutor_rate_id="t1",
        parent_rate_id="p1",
        created_at=datetime(2026, 1, 5, 10, 0, tzinfo=pytz.UTC),
    )


def test_tutor_group_members_from_join_rows():
    group = TutorGroup.from_api(
        {"id": "g1", "name": "Seniors", "members": [{"tutorId": "u1"}, {"tutorId": "u2"}]}
    )

    assert group.tutor_ids == ["u1", "u2"]
    assert group.to_payload()["tutorIds"] == ["u1", "u2"]


def test_assignment_scope():
    unscoped = RateAssignment.from_api("t1", [], [])
    scoped = RateAssignment.from_api("t1", [{"tutorRateId": "t1", "tutorId": "u1"}], [])

    assert not unscoped.is_scoped
    assert scoped.is_scoped
    assert scoped.tutor_ids == ["u1"]
