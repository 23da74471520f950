import pandas as pd
import streamlit as st

from tutordesk.config import (
    CLASS_TYPES,
    RATE_COLUMNS,
    configure_logging,
    get_setting,
)
from tutordesk.models.rates import TutorGroup
from tutordesk.services.api_client import get_api_client
from tutordesk.services.catalog import RateCatalog
from tutordesk.services.profit import orphaned_links, profit_table_df
from tutordesk.ui.feedback import run_action
from tutordesk.ui.state import (
    KEY_AUTHENTICATED,
    LinkDraft,
    RateDraft,
    is_authenticated,
    link_drafts,
    parent_rate_drafts,
    tutor_rate_drafts,
)
from tutordesk.utils.rate_parser import format_amount, format_margin

configure_logging()


def require_password():
    if is_authenticated(st.session_state):
        return

    with st.form("login"):
        pw = st.text_input("Password", type="password")
        ok = st.form_submit_button("Login")

    if not ok:
        st.stop()

    if pw and pw == get_setting("APP_PASSWORD"):
        st.session_state[KEY_AUTHENTICATED] = True
        st.rerun()
    else:
        st.error("Incorrect password")
        st.stop()


def _load(action, fallback):
    ok, result = run_action(action)
    if not ok:
        if not is_authenticated(st.session_state):
            st.rerun()
        return fallback
    return result


def _rates_df(rates) -> pd.DataFrame:
    if not rates:
        return pd.DataFrame(columns=RATE_COLUMNS)
    return pd.DataFrame([r.to_row() for r in rates])[RATE_COLUMNS]


def _rate_label(rate) -> str:
    status = "" if rate.is_active else " (inactive)"
    return f"{rate.name} — {format_amount(rate.rate)}/h, {rate.class_type}{status}"


def _after_mutation(ok: bool) -> None:
    if ok:
        st.rerun()
    if not is_authenticated(st.session_state):
        st.rerun()


def render_rate_form(store, *, prefix: str, scoped: bool = False, groups=None, others=None) -> RateDraft:
    """Form fields for the draft held in `store`; returns the edited draft."""
    draft = store.get()
    name = st.text_input("Name", value=draft.name, key=f"{prefix}_name")
    rate = st.text_input("Hourly rate", value=draft.rate, key=f"{prefix}_rate", help='e.g. "30" or "1,200/40"')

    c1, c2 = st.columns(2)
    with c1:
        class_type = st.selectbox(
            "Class type",
            CLASS_TYPES,
            index=CLASS_TYPES.index(draft.class_type) if draft.class_type in CLASS_TYPES else 0,
            key=f"{prefix}_class_type",
        )
    with c2:
        subject = st.text_input("Subject (optional)", value=draft.subject, key=f"{prefix}_subject")

    description = st.text_input("Description (optional)", value=draft.description, key=f"{prefix}_description")

    c3, c4 = st.columns(2)
    with c3:
        is_default = st.checkbox("Default", value=draft.is_default, key=f"{prefix}_default")
    with c4:
        is_active = st.checkbox("Active", value=draft.is_active, key=f"{prefix}_active")

    tutor_group_ids = draft.tutor_group_ids
    if scoped and groups is not None and draft.assignments_known:
        by_id = {g.id: g.name for g in groups}
        tutor_group_ids = st.multiselect(
            "Tutor groups (empty = all tutors)",
            list(by_id),
            default=[g for g in (draft.tutor_group_ids or []) if g in by_id],
            format_func=lambda gid: by_id.get(gid, gid),
            key=f"{prefix}_groups",
        )
    elif scoped:
        st.caption("Tutor groups could not be loaded; assignments are left unchanged.")

    draft = store.update(
        name=name,
        rate=rate,
        class_type=class_type,
        subject=subject,
        description=description,
        is_default=is_default,
        is_active=is_active,
        tutor_group_ids=list(tutor_group_ids) if tutor_group_ids is not None else None,
    )
    if others is not None:
        match = draft.matching_rate(others)
        if match is not None:
            st.info(f"Same amount as active rate: {match.name}")
    return draft


def _save_rate(catalog: RateCatalog, d: RateDraft, *, is_tutor: bool) -> bool:
    if is_tutor:
        rate = d.to_tutor_rate()
        if d.rate_id:
            changes, tutor_ids, tutor_group_ids = d.to_tutor_update()
            action = lambda: catalog.update_tutor_rate(
                d.rate_id, changes, tutor_ids=tutor_ids, tutor_group_ids=tutor_group_ids
            )
        else:
            action = lambda: catalog.create_tutor_rate(
                rate, tutor_ids=d.tutor_ids or None, tutor_group_ids=d.tutor_group_ids or None
            )
    else:
        rate = d.to_parent_rate()
        if d.rate_id:
            action = lambda: catalog.update_parent_rate(d.rate_id, rate.to_payload())
        else:
            action = lambda: catalog.create_parent_rate(rate)

    verb = "Updated" if d.rate_id else "Created"
    ok, _ = run_action(action, success=f"{verb} rate: {rate.name}")
    return ok


def render_rate_tab(catalog: RateCatalog, *, kind: str) -> None:
    is_tutor = kind == "tutor"
    store = tutor_rate_drafts(st.session_state) if is_tutor else parent_rate_drafts(st.session_state)
    rates = _load(catalog.tutor_rates if is_tutor else catalog.parent_rates, [])
    # None when the fetch failed, so the form cannot clear assignments
    groups = _load(catalog.tutor_groups, None) if is_tutor else None

    st.subheader("Tutor rates (paid to tutors)" if is_tutor else "Parent rates (billed to parents)")
    show_inactive = st.checkbox("Show inactive", value=True, key=f"{kind}_show_inactive")
    shown = rates if show_inactive else [r for r in rates if r.is_active]
    if is_tutor:
        tutor_id = st.text_input("Only rates for tutor id", key="tutor_rates_for_tutor").strip()
        if tutor_id:
            for_tutor = _load(lambda: catalog.rates_for_tutor(tutor_id), None)
            if for_tutor is not None:
                applicable = {r.id for r in for_tutor}
                shown = [r for r in shown if r.id in applicable]
    st.dataframe(_rates_df(shown), use_container_width=True, hide_index=True)

    if not store.is_open:
        if st.button("New rate", key=f"{kind}_new_btn"):
            store.open(RateDraft())
            st.rerun()
    else:
        draft = store.get()
        st.markdown("**Edit rate**" if draft.rate_id else "**New rate**")
        draft = render_rate_form(
            store,
            prefix=f"{kind}_{draft.rate_id or 'new'}",
            scoped=is_tutor,
            groups=groups,
            others=rates,
        )
        b1, b2, _ = st.columns([1, 1, 6])
        with b1:
            save = st.button("Save", type="primary", key=f"{kind}_save_btn")
        with b2:
            if st.button("Cancel", key=f"{kind}_cancel_btn"):
                store.cancel()
                st.rerun()

        if save:
            errors = draft.validate()
            for e in errors:
                st.error(e)
            if not errors:
                _after_mutation(store.submit(lambda d: _save_rate(catalog, d, is_tutor=is_tutor)))

    if not rates:
        return

    st.divider()
    by_id = {r.id: r for r in rates}
    selected = st.selectbox(
        "Select a rate",
        list(by_id),
        format_func=lambda rid: _rate_label(by_id[rid]),
        key=f"{kind}_selected",
    )
    rate = by_id[selected]

    assignment = None
    if is_tutor:
        assignment = _load(lambda: catalog.tutor_rate_assignments(rate.id), None)
        if assignment is not None:
            if assignment.is_scoped:
                names = {g.id: g.name for g in (groups or [])}
                group_names = [names.get(g, g) for g in assignment.tutor_group_ids]
                st.caption(
                    f"Assigned to {len(assignment.tutor_ids)} tutor(s)"
                    + (f" and groups: {', '.join(group_names)}" if group_names else "")
                )
            else:
                st.caption("Applies to all tutors")

    b1, b2, b3, b4, _ = st.columns([2, 2, 2, 2, 2])
    with b1:
        if st.button("Edit", key=f"{kind}_edit_btn"):
            store.open(RateDraft.from_rate(rate, assignment))
            st.rerun()
    with b2:
        if st.button("Deactivate" if rate.is_active else "Activate", key=f"{kind}_toggle_btn"):
            update = catalog.update_tutor_rate if is_tutor else catalog.update_parent_rate
            ok, _ = run_action(
                lambda: update(rate.id, {"isActive": not rate.is_active}),
                success="Rate updated.",
            )
            _after_mutation(ok)
    with b3:
        if st.button("Make default", disabled=rate.is_default, key=f"{kind}_default_btn"):
            update = catalog.update_tutor_rate if is_tutor else catalog.update_parent_rate
            ok, _ = run_action(lambda: update(rate.id, {"isDefault": True}), success="Rate updated.")
            _after_mutation(ok)
    with b4:
        if st.button("Delete", key=f"{kind}_delete_btn"):
            delete = catalog.delete_tutor_rate if is_tutor else catalog.delete_parent_rate
            ok, _ = run_action(lambda: delete(rate.id), success=f"Deleted rate: {rate.name}")
            _after_mutation(ok)


def render_links_tab(catalog: RateCatalog) -> None:
    tutor_rates = _load(catalog.tutor_rates, [])
    parent_rates = _load(catalog.parent_rates, [])
    links = _load(catalog.rate_links, [])

    st.subheader("Link a tutor rate to a parent rate")
    st.caption("Links are for profit reporting only; they never change billing or pay.")

    store = link_drafts(st.session_state)
    tutor_by_id = {r.id: r for r in tutor_rates}
    parent_by_id = {r.id: r for r in parent_rates}

    c1, c2 = st.columns(2)
    with c1:
        t_id = st.selectbox(
            "Tutor rate",
            [""] + list(tutor_by_id),
            format_func=lambda rid: _rate_label(tutor_by_id[rid]) if rid else "Select...",
            key="link_tutor_rate",
        )
    with c2:
        p_id = st.selectbox(
            "Parent rate",
            [""] + list(parent_by_id),
            format_func=lambda rid: _rate_label(parent_by_id[rid]) if rid else "Select...",
            key="link_parent_rate",
        )
    draft = store.update(tutor_rate_id=t_id, parent_rate_id=p_id)

    if st.button("Create link", type="primary", disabled=not draft.can_submit, key="create_link_btn"):
        def _submit(d: LinkDraft) -> bool:
            ok, _ = run_action(
                lambda: catalog.create_link(d.tutor_rate_id, d.parent_rate_id),
                success="Rates linked.",
            )
            return ok

        _after_mutation(store.submit(_submit))

    report = _load(catalog.profit_report, None)
    if report is None:
        return
    entries, summary = report

    st.subheader("Profit by link")
    c1, c2, c3, c4 = st.columns(4)
    c1.metric("Links", summary.count)
    c2.metric("Avg tutor rate", format_amount(summary.avg_tutor_rate))
    c3.metric("Avg parent rate", format_amount(summary.avg_parent_rate))
    c4.metric(
        "Avg profit",
        format_amount(summary.avg_profit),
        delta=format_margin(summary.avg_margin_percent),
    )

    if not entries:
        st.info("No linked rates yet.")
    else:
        st.dataframe(profit_table_df(entries), use_container_width=True, hide_index=True)
        losses = [e for e in entries if e.is_loss]
        if losses:
            st.warning(f"{len(losses)} link(s) pay the tutor more than the parent is billed.")

    orphans = orphaned_links(tutor_rates, parent_rates, links)
    labels = {e.link_id: f"{e.tutor_rate_name} ↔ {e.parent_rate_name}" for e in entries}
    labels.update({link.id: f"link {link.id} (linked rate deleted)" for link in orphans})
    if not labels:
        return

    st.divider()
    link_id = st.selectbox("Remove a link", list(labels), format_func=labels.get, key="unlink_selected")
    if st.button("Unlink", key="unlink_btn"):
        ok, _ = run_action(lambda: catalog.delete_link(link_id), success="Link removed. Both rates were kept.")
        _after_mutation(ok)

    if orphans:
        st.caption(f"{len(orphans)} link(s) left out of the profit table because a linked rate was deleted.")


def render_groups_tab(catalog: RateCatalog) -> None:
    groups = _load(catalog.tutor_groups, [])

    st.subheader("Tutor groups")
    df = pd.DataFrame(
        [
            {"name": g.name, "members": len(g.tutor_ids), "is_active": g.is_active, "description": g.description or ""}
            for g in groups
        ],
        columns=["name", "members", "is_active", "description"],
    )
    st.dataframe(df, use_container_width=True, hide_index=True)

    with st.form("new_group", clear_on_submit=True):
        name = st.text_input("Group name")
        description = st.text_input("Description (optional)")
        tutor_ids = st.text_input("Tutor ids (comma separated)")
        submitted = st.form_submit_button("Create group")

    if submitted:
        if not name.strip():
            st.error("Group name is required.")
        else:
            group = TutorGroup(
                id="",
                name=name.strip(),
                description=description.strip() or None,
                tutor_ids=[t.strip() for t in tutor_ids.split(",") if t.strip()],
            )
            ok, _ = run_action(lambda: catalog.create_tutor_group(group), success=f"Created group: {group.name}")
            _after_mutation(ok)

    if groups:
        by_id = {g.id: g for g in groups}
        gid = st.selectbox("Select a group", list(by_id), format_func=lambda i: by_id[i].name, key="group_selected")
        group = by_id[gid]
        if st.button("Deactivate group" if group.is_active else "Activate group", key="toggle_group_btn"):
            ok, _ = run_action(
                lambda: catalog.update_tutor_group(gid, {"isActive": not group.is_active}),
                success="Group updated.",
            )
            _after_mutation(ok)
        if st.button("Delete group", key="delete_group_btn"):
            ok, _ = run_action(lambda: catalog.delete_tutor_group(gid), success="Group deleted.")
            _after_mutation(ok)


# -----------------------------
# Streamlit UI
# -----------------------------
require_password()

catalog = RateCatalog(get_api_client(), st.session_state)

st.title("Rates")
if st.button("Refresh", key="refresh_btn"):
    catalog.refresh()
    st.rerun()

tab_tutor, tab_parent, tab_links, tab_groups = st.tabs(
    ["Tutor Rates", "Parent Rates", "Rate Links & Profit", "Tutor Groups"]
)

with tab_tutor:
    render_rate_tab(catalog, kind="tutor")

with tab_parent:
    render_rate_tab(catalog, kind="parent")

with tab_links:
    render_links_tab(catalog)

with tab_groups:
    render_groups_tab(catalog)
