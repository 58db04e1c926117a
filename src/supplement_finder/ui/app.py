from __future__ import annotations

import traceback
from typing import List, Tuple

import streamlit as st

from supplement_finder.config import (
    APP_NAME,
    APP_VERSION,
    ENABLE_LLM_COACH,
    MASTER_CSV_PATH,
    SearchConfig,
    load_search_config,
)
from supplement_finder.core.classifiers import TIER_LABELS
from supplement_finder.core.coach import GroupSummary, build_coach_summary, build_group_summary
from supplement_finder.core.llm_coach import (
    CoachRequest,
    CoachTextResult,
    generate_coaching_text,
    request_from_record,
    to_paragraphs,
)
from supplement_finder.core.normalizer import flag_label
from supplement_finder.core.pipeline import (
    EVIDENCE_FILTER_ALL,
    EVIDENCE_FILTERS,
    SORT_AZ,
    SORT_EVIDENCE,
    Query,
    rank_records,
)
from supplement_finder.core.presentation import CardView, DetailRow, build_card, status_message
from supplement_finder.core.record_store import RecordStoreError, RecordTable, timed_load_record_table
from supplement_finder.core.records import SupplementRecord

# Cards that get an AI panel, counted from the top of the result list
AI_PANEL_LIMIT = 5

SEARCH_KEY = "search_text"
EVIDENCE_KEY = "evidence_filter"
SORT_KEY = "sort_mode"

SORT_LABELS = {
    SORT_EVIDENCE: "Evidence (strongest first)",
    SORT_AZ: "A–Z",
}


def _flag_key(col: str) -> str:
    return f"flag_{col}"


@st.cache_resource(show_spinner="Loading supplement table…")
def _load_table(source: str, config: SearchConfig) -> Tuple[RecordTable, float]:
    return timed_load_record_table(source, config=config)


@st.cache_data(show_spinner=False)
def _cached_coaching_text(
    supplement_name: str,
    field_items: Tuple[Tuple[str, str], ...],
    goals: Tuple[str, ...],
) -> CoachTextResult:
    request = CoachRequest(supplement_name=supplement_name, fields=dict(field_items), selected_goals=list(goals))
    return generate_coaching_text(request)


def _reset_controls(config: SearchConfig) -> None:
    st.session_state[SEARCH_KEY] = ""
    st.session_state[EVIDENCE_KEY] = EVIDENCE_FILTER_ALL
    st.session_state[SORT_KEY] = SORT_EVIDENCE
    for col in config.flag_cols:
        st.session_state[_flag_key(col)] = False


def _render_controls(config: SearchConfig) -> Query:
    text = st.text_input("Search supplements", key=SEARCH_KEY, placeholder="e.g. magnesium, B12, omega")

    st.write("Indications (all selected must apply):")
    cols = st.columns(max(1, len(config.flag_cols)))
    selected: List[str] = []
    for i, col in enumerate(config.flag_cols):
        with cols[i]:
            if st.checkbox(flag_label(col), key=_flag_key(col)):
                selected.append(col)

    colA, colB, colC = st.columns([2, 2, 1])
    with colA:
        evidence = st.selectbox(
            "Evidence",
            options=list(EVIDENCE_FILTERS),
            format_func=lambda v: "All tiers" if v == EVIDENCE_FILTER_ALL else TIER_LABELS.get(v, v),
            key=EVIDENCE_KEY,
        )
    with colB:
        sort = st.radio(
            "Sort by",
            options=[SORT_EVIDENCE, SORT_AZ],
            format_func=lambda v: SORT_LABELS.get(v, v),
            key=SORT_KEY,
            horizontal=True,
        )
    with colC:
        st.button("Reset", on_click=_reset_controls, args=(config,))

    return Query.from_inputs(text=text, flags=selected, evidence=evidence, sort=sort)


def _render_rows(rows: List[DetailRow]) -> None:
    for row in rows:
        if row.is_link:
            st.markdown(f"**{row.label}:** [Source link]({row.value})")
        elif row.value:
            st.markdown(f"**{row.label}:** {row.value}")
        else:
            st.markdown(f"**{row.label}:** —")


def _render_coach_summary(record: SupplementRecord, config: SearchConfig) -> None:
    summary = build_coach_summary(record, config)
    with st.expander("Coach Summary", expanded=False):
        st.markdown(f"**Evidence tier:** {summary.evidence.label} ({summary.level_text or 'n/a'})")
        st.markdown(f"**Mechanistic rationale:** {summary.mechanisms or '—'}")
        dose = f"{summary.dosage} • " if summary.dosage else ""
        st.markdown(f"**Trial protocol:** {dose}Time-boxed trial: {summary.trial_window}")
        st.markdown("**Monitor:**\n" + "\n".join(f"- {m}" for m in summary.monitor))
        if summary.benefits:
            st.markdown("**Benefits:** " + "  \n".join(summary.benefits))
        st.markdown(f"**Risks/Notes:** {summary.risks or '—'}")
        if summary.coach_tip:
            st.markdown(f"**Coach tip:** {summary.coach_tip}")


def _render_ai_panel(record: SupplementRecord, config: SearchConfig, query: Query) -> None:
    request = request_from_record(record, config, selected_flags=query.flags)
    with st.expander("AI-Generated Coaching Insights", expanded=False):
        with st.spinner("Generating…"):
            result = _cached_coaching_text(
                request.supplement_name,
                tuple(sorted(request.fields.items())),
                tuple(request.selected_goals),
            )
        for paragraph in to_paragraphs(result.text if result.ok else ""):
            st.write(paragraph)


def _render_card(record: SupplementRecord, config: SearchConfig, query: Query, with_ai: bool) -> None:
    card: CardView = build_card(record, config)
    with st.container(border=True):
        heading = f"### {card.title}"
        if card.cost.band:
            heading += f"  `{card.cost.band}`"
        st.markdown(heading)
        if card.subtitle:
            st.caption(card.subtitle)
        if card.badges:
            st.markdown(" ".join(f"`{b}`" for b in card.badges))

        _render_coach_summary(record, config)
        if with_ai:
            _render_ai_panel(record, config, query)

        with st.expander("Details", expanded=False):
            _render_rows(card.details)
        with st.expander("Recommended brands", expanded=False):
            _render_rows(card.brands)
        with st.expander("Indications", expanded=True):
            st.markdown(f"**For:** {card.indications}")


def _render_group_summary(summary: GroupSummary) -> None:
    if not summary.items:
        return
    st.subheader("Coach Group Summary")
    st.caption(f"Top picks by evidence tier for your {summary.context}:")
    lines = []
    for item in summary.items:
        reason = item.reason or "—"
        lines.append(f"- **{item.title}** ({item.tier_label}): {reason}")
    st.markdown("\n".join(lines))


def _render_backend_status(table: RecordTable, elapsed: float, source: str) -> None:
    with st.expander("Data status (developer view)", expanded=False):
        st.write(f"Source: {source}")
        st.write(f"Loaded: {len(table)} rows × {len(table.columns)} columns in {elapsed:0.2f}s")
        if table.dropped:
            st.warning(f"{table.dropped} malformed row(s) skipped (field count did not match header).")
        st.dataframe(table.frame, use_container_width=True)


def run_app() -> None:
    st.set_page_config(page_title=APP_NAME, page_icon="🧠", layout="wide")
    st.title(APP_NAME)
    st.caption(f"Prototype version {APP_VERSION}")

    try:
        config = load_search_config()
        table, elapsed = _load_table(MASTER_CSV_PATH, config)
    except RecordStoreError as err:
        st.error(f"Error loading CSV. Ensure {MASTER_CSV_PATH} is present. ({err})")
        st.text_area("Traceback", value=traceback.format_exc(), height=220)
        return
    except Exception as e:
        st.error("Unexpected error while loading the supplement table.")
        st.code(repr(e))
        st.text_area("Traceback", value=traceback.format_exc(), height=220)
        return

    query = _render_controls(config)

    if query.is_idle:
        results: List[SupplementRecord] = []
    else:
        results = rank_records(table.records, config, query)
    st.session_state["filtered"] = results

    st.info(status_message(results, query))

    if results:
        _render_group_summary(build_group_summary(results, query))
        for i, record in enumerate(results):
            _render_card(record, config, query, with_ai=ENABLE_LLM_COACH and i < AI_PANEL_LIMIT)

    _render_backend_status(table, elapsed, MASTER_CSV_PATH)
