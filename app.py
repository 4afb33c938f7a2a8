"""
IEP Minute Pro: Streamlit app
Local JSON storage with optional sync to a Google Sheet or web app endpoint.

Run with:  streamlit run app.py
"""

import logging
from datetime import date
from html import escape

import streamlit as st
import pandas as pd
import plotly.graph_objects as go
from google.auth.exceptions import GoogleAuthError

from iepminutes import aggregation as agg
from iepminutes.config import Config
from iepminutes.errors import BackupFormatError, SessionValidationError, StudentValidationError
from iepminutes.exporters import backup_filename, csv_filename
from iepminutes.periods import month_label, months_available, weeks_in_month
from iepminutes.render import (
    GRADE_COLOR, SUBJ_COLOR, note_card_html, progress_bar_html, staff_chips_html, staff_color,
    staff_total_html, subject_label,
)
from iepminutes.schemas import GRADES, SUBJECTS, Subject
from iepminutes.store import LocalStore
from iepminutes.sync import SheetsSync, SyncClient, WebAppSync
from iepminutes.tracker import Tracker

# ── set_page_config MUST be the very first Streamlit call ─────────────────────
st.set_page_config(
    page_title="IEP Minute Pro",
    page_icon="📋",
    layout="wide",
    initial_sidebar_state="collapsed",
)

logger = logging.getLogger("iepminutes.app")

SELECT = "— select —"
DEFAULT_GOALS = {Subject.MATH: 30, Subject.ENGLISH: 30, Subject.TASK_COMPLETION: 0}


# ══════════════════════════════════════════════════════════════════════════════
# CSS
# ══════════════════════════════════════════════════════════════════════════════
def inject_css():
    st.markdown(
        """
<style>
@import url('https://fonts.googleapis.com/css2?family=Inter:wght@400;500;600;700;800&display=swap');
html, body, [class*="css"] { font-family: 'Inter', sans-serif !important; }
.stApp { background-color: #f4f5f7; }
.stButton > button {
    border-radius: 8px !important; font-family: 'Inter', sans-serif !important;
    font-weight: 600 !important; border: 1px solid #e5e7eb !important;
    background: #ffffff !important; color: #4b5563 !important; transition: all 0.15s;
}
.stButton > button:hover {
    border-color: #4f46e5 !important; color: #4f46e5 !important; background: #eef2ff !important;
}
h1 { font-weight: 800 !important; letter-spacing: -0.5px !important; }
h2 { font-weight: 700 !important; }
h3 { font-weight: 600 !important; }
#MainMenu { visibility: hidden; } footer { visibility: hidden; } header { visibility: hidden; }
.stTabs [data-baseweb="tab"] { font-family: 'Inter', sans-serif; font-weight: 600; font-size: 13px; }
div[data-testid="stForm"] { background: white; border: 1px solid #e5e7eb; border-radius: 12px; padding: 16px; }
</style>
""",
        unsafe_allow_html=True,
    )


# ══════════════════════════════════════════════════════════════════════════════
# SETUP
# ══════════════════════════════════════════════════════════════════════════════
@st.cache_resource
def get_config() -> Config:
    config = Config.from_env()
    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    return config


def sheets_backend():
    """SheetsSync from st.secrets["gcp_service_account"], if configured."""
    try:
        creds_info = st.secrets["gcp_service_account"]
    except (KeyError, FileNotFoundError):
        return None
    try:
        return SheetsSync.from_service_account(creds_info)
    except (GoogleAuthError, ValueError):
        logger.exception("Google service account credentials are unusable")
        return None


@st.cache_resource
def get_tracker() -> Tracker:
    config = get_config()
    sync = SyncClient(
        web=WebAppSync(timeout=config.sync_timeout, envelope=config.sync_envelope),
        sheets=sheets_backend(),
    )
    logger.info("Using data directory %s", config.data_dir)
    return Tracker(LocalStore(config.data_dir), sync=sync)


def refresh():
    st.rerun()


# ══════════════════════════════════════════════════════════════════════════════
# UI COMPONENTS
# ══════════════════════════════════════════════════════════════════════════════
def render_period_picker(tracker: Tracker):
    c_month, c_week = st.columns(2)
    months = months_available(tracker.logs)
    with c_month:
        month = st.selectbox(
            "Month", months, index=months.index(month_label()), key="period_month",
        )
    weeks = weeks_in_month(month, tracker.logs)
    labels = dict(weeks)
    with c_week:
        week = st.selectbox(
            "Week", [None] + [k for k, _ in weeks], key="period_week",
            format_func=lambda k: "Whole month" if k is None else labels.get(k, k),
        )
    return month, week


def render_subject_cards(totals: dict):
    cols = st.columns(len(SUBJECTS))
    for col, subj in zip(cols, SUBJECTS):
        col.markdown(
            f"<div style='background:white;border:1px solid #e5e7eb;border-radius:12px;"
            f"padding:14px 18px'>"
            f"<div style='font-size:10px;font-weight:800;color:#9ca3af;"
            f"text-transform:uppercase;letter-spacing:1.5px'>{subj.value}</div>"
            f"<div style='font-size:24px;font-weight:800;color:{SUBJ_COLOR[subj]}'>"
            f"{totals[subj]}m</div></div>",
            unsafe_allow_html=True,
        )


def render_subject_chart(totals: dict):
    fig = go.Figure(go.Bar(
        x=[s.value for s in SUBJECTS],
        y=[totals[s] for s in SUBJECTS],
        marker_color=[SUBJ_COLOR[s] for s in SUBJECTS],
        hovertemplate="<b>%{x}</b><br>%{y} minutes<extra></extra>",
    ))
    fig.update_layout(
        plot_bgcolor="white", paper_bgcolor="white",
        yaxis=dict(gridcolor="#f3f4f6", zeroline=False, title="Minutes"),
        margin=dict(l=10, r=10, t=20, b=10), height=300, font=dict(family="Inter"),
    )
    st.plotly_chart(fig, use_container_width=True)


def render_summary_row(label: str, df: pd.DataFrame, tracker: Tracker):
    by_staff    = agg.staff_totals(df)
    grand_total = sum(by_staff.values())
    cols        = st.columns([1] + [2] * max(len(by_staff), 1) + [1])

    cols[0].markdown(
        f"<div style='font-size:10px;font-weight:700;color:#4f46e5;"
        f"text-transform:uppercase;letter-spacing:1.2px;padding-top:6px'>{label}</div>",
        unsafe_allow_html=True,
    )
    for i, (name, mins) in enumerate(by_staff.items()):
        cols[i + 1].markdown(
            staff_total_html(name, mins, tracker.staff),
            unsafe_allow_html=True,
        )
    cols[-1].markdown(
        f"<div style='text-align:right;font-size:13px;font-weight:700;"
        f"color:#111827;padding-top:4px'>{grand_total}m total</div>",
        unsafe_allow_html=True,
    )


def render_goal_chart(df: pd.DataFrame, tracker: Tracker, month: str):
    df_chart = agg.goal_hits_by_week(df, tracker.students, month)
    max_y    = max(len(tracker.students), 1)
    fig      = go.Figure()

    for subj in SUBJECTS:
        fig.add_trace(go.Scatter(
            x=df_chart["Week"],
            y=df_chart[subj.value],
            mode="lines+markers",
            name=subject_label(subj),
            line=dict(color=SUBJ_COLOR[subj], width=2.5),
            marker=dict(size=8, color=SUBJ_COLOR[subj], line=dict(width=2, color="white")),
            hovertemplate=(
                f"<b>{subject_label(subj)}</b><br>"
                "%{x}<br>%{y} students hit goal<extra></extra>"
            ),
        ))

    fig.update_layout(
        title=dict(
            text=(
                "<b>Weekly Goal Progress</b><br>"
                "<span style='font-size:11px;color:#9ca3af'>"
                "Students hitting their weekly minutes goal, by subject</span>"
            ),
            font=dict(size=14, family="Inter"), x=0, xanchor="left",
        ),
        plot_bgcolor="white", paper_bgcolor="white",
        yaxis=dict(
            range=[-0.2, max_y + 0.5], tickvals=list(range(max_y + 1)),
            gridcolor="#f3f4f6", zeroline=False, title="Students hitting goal",
            title_font=dict(size=11, color="#9ca3af"),
        ),
        xaxis=dict(gridcolor="#f3f4f6", title=""),
        legend=dict(orientation="h", yanchor="bottom", y=1.02, xanchor="right", x=1, font=dict(size=11)),
        margin=dict(l=10, r=10, t=80, b=10),
        height=280, font=dict(family="Inter"), hovermode="x unified",
    )
    st.plotly_chart(fig, use_container_width=True)


def render_student_card(student, df: pd.DataFrame, tracker: Tracker, month: str, week):
    sid         = student.id
    gc          = GRADE_COLOR.get(student.grade, "#9ca3af")
    subj_key    = f"active_subj_{sid}"
    active_subj = st.session_state.get(subj_key, Subject.MATH)
    progress    = agg.goal_progress(df, student, active_subj, month, week)

    st.markdown(
        f"<div style='height:3px;background:{SUBJ_COLOR[active_subj]};border-radius:3px 3px 0 0'></div>",
        unsafe_allow_html=True,
    )
    st.markdown(
        f"<span style='background:{gc}18;color:{gc};font-size:10px;"
        f"font-weight:700;border-radius:4px;padding:2px 7px'>{student.grade.value}</span>"
        f"&nbsp;<b style='font-size:13px;color:#111827'>{escape(student.name)}</b>"
        + ("&nbsp;✅" if progress.accomplished else ""),
        unsafe_allow_html=True,
    )

    subj_cols = st.columns(len(SUBJECTS))
    for i, subj in enumerate(SUBJECTS):
        with subj_cols[i]:
            if st.button(subject_label(subj), key=f"subj_{sid}_{subj.name}",
                         use_container_width=True,
                         type="primary" if subj == active_subj else "secondary"):
                st.session_state[subj_key] = subj
                refresh()

    st.markdown(progress_bar_html(progress, tracker.staff), unsafe_allow_html=True)
    chips = staff_chips_html(progress.segments, tracker.staff)
    if chips:
        st.markdown(chips, unsafe_allow_html=True)

    with st.expander("⚙ Edit Student"):
        new_name  = st.text_input("Name", value=student.name, key=f"ename_{sid}")
        new_grade = st.selectbox(
            "Grade", GRADES, index=GRADES.index(student.grade),
            format_func=lambda g: g.value, key=f"egrade_{sid}",
        )
        new_goals = {}
        for subj in SUBJECTS:
            new_goals[subj] = st.number_input(
                f"{subject_label(subj)} weekly goal (min)", min_value=0,
                value=student.weekly_goal(subj), key=f"egoal_{sid}_{subj.name}",
            )
        if st.button("Save", key=f"esave_{sid}"):
            try:
                tracker.update_student(sid, new_name, new_grade, {k: int(v) for k, v in new_goals.items()})
            except StudentValidationError as e:
                st.error(str(e))
            else:
                refresh()

    with st.expander("📝 Show Notes"):
        period_df = agg.filter_by_period(df, month, week)
        notes_df  = agg.session_notes(period_df, sid, active_subj)
        if notes_df.empty:
            st.caption(f"No notes for {active_subj.value}")
        else:
            for _, nr in notes_df.iterrows():
                st.markdown(
                    note_card_html(nr["staff_name"], nr["date"], nr["notes"], tracker.staff),
                    unsafe_allow_html=True,
                )
    st.markdown("---")


def render_dashboard(tracker: Tracker, month: str, week):
    df        = agg.logs_frame(tracker.logs)
    period_df = agg.filter_by_period(df, month, week)

    st.markdown("### Team Tracker")
    render_subject_cards(agg.subject_totals(period_df))
    with st.container(border=True):
        render_summary_row("Selected week" if week else "This month", period_df, tracker)

    c_bar, c_line = st.columns(2)
    with c_bar, st.container(border=True):
        render_subject_chart(agg.subject_totals(period_df))
    with c_line, st.container(border=True):
        render_goal_chart(df, tracker, month)

    st.markdown("---")
    hdr_col, flt_col = st.columns([2, 2])
    with hdr_col:
        st.markdown("### Individual Student Progress")
        st.caption("Goals ×4 for the whole month" if not week else "Weekly goals")
    with flt_col:
        grade_filter = st.radio(
            "Filter by grade", GRADES, horizontal=True, format_func=lambda g: g.value,
            label_visibility="collapsed", key="dash_grade_filter",
        )

    vis_students = tracker.students_in_grade(grade_filter)
    if not vis_students:
        st.info(
            "No students yet — go to **Add Student** to get started."
            if not tracker.students else f"No {grade_filter.value} grade students."
        )
        return

    n_cols = 3
    for row_start in range(0, len(vis_students), n_cols):
        row_items = vis_students[row_start: row_start + n_cols]
        cols      = st.columns(n_cols)
        for col_idx, student in enumerate(row_items):
            with cols[col_idx]:
                render_student_card(student, df, tracker, month, week)


def render_add_student(tracker: Tracker):
    st.subheader("Add Student")
    with st.form("add_student_form", clear_on_submit=True):
        c1, c2 = st.columns([3, 1])
        with c1:
            name = st.text_input("Student Name", placeholder="Full name…")
        with c2:
            grade = st.selectbox("Grade", GRADES, format_func=lambda g: g.value)
        st.markdown("**Weekly Goals (minutes)**")
        g_cols = st.columns(len(SUBJECTS))
        goals  = {}
        for i, subj in enumerate(SUBJECTS):
            with g_cols[i]:
                goals[subj] = st.number_input(
                    f"{subject_label(subj)} (min/wk)", value=DEFAULT_GOALS[subj],
                    min_value=0, key=f"new_goal_{subj.name}",
                )
        if st.form_submit_button("+ Add Student", use_container_width=True):
            try:
                student = tracker.add_student(name, grade, {k: int(v) for k, v in goals.items()})
            except StudentValidationError as e:
                st.error(str(e))
            else:
                st.success(f"✓ {student.name} added!")
                st.session_state["dash_grade_filter"] = student.grade
                refresh()


def render_log_session(tracker: Tracker):
    st.subheader("Log Session")
    col_form, col_recent = st.columns([1, 1], gap="large")

    with col_form:
        r1c1, r1c2 = st.columns(2)
        with r1c1:
            grade_sel = st.selectbox(
                "Grade", [SELECT] + GRADES, key="ls_grade",
                format_func=lambda g: g if g == SELECT else g.value,
            )
        with r1c2:
            subj_sel = st.selectbox("Subject", SUBJECTS, format_func=lambda s: s.value, key="ls_subject")

        staff_names = [m.name for m in tracker.staff]
        staff_idx   = (staff_names.index(tracker.last_staff_name) + 1
                       if tracker.last_staff_name in staff_names else 0)
        r2c1, r2c2 = st.columns(2)
        with r2c1:
            staff_sel = st.selectbox("Staff", [SELECT] + staff_names, index=staff_idx, key="ls_staff")
        with r2c2:
            mins_val = st.text_input("Minutes", value="50", key="ls_minutes")

        log_date = st.date_input("Date", value=date.today(), key="ls_date")

        st.markdown("**Students**")
        selected_ids = []
        if grade_sel == SELECT:
            st.info("Select a grade above to see students.")
        else:
            grade_students = tracker.students_in_grade(grade_sel)
            if not grade_students:
                st.warning(f"No students in {grade_sel.value} grade yet.")
            else:
                sa_col, sn_col = st.columns(2)
                with sa_col:
                    if st.button("Select All", key="ls_all"):
                        for s in grade_students:
                            st.session_state[f"ls_stu_{s.id}"] = True
                with sn_col:
                    if st.button("Select None", key="ls_none"):
                        for s in grade_students:
                            st.session_state[f"ls_stu_{s.id}"] = False
                for stu in grade_students:
                    goal = stu.weekly_goal(subj_sel)
                    if st.checkbox(f"{stu.name}  ·  goal {goal}m", key=f"ls_stu_{stu.id}"):
                        selected_ids.append(stu.id)

        note_val  = st.text_area("Notes (optional)", placeholder="What did you work on?", key="ls_note")
        n_sel     = len(selected_ids)
        btn_label = (
            f"Log {n_sel} Student{'s' if n_sel != 1 else ''} ✓"
            if n_sel > 0 else "Log Session ✓"
        )

        if st.button(btn_label, key="ls_submit", use_container_width=True):
            try:
                tracker.log_session(
                    selected_ids, subj_sel, mins_val, log_date,
                    staff_name="" if staff_sel == SELECT else staff_sel,
                    notes=note_val,
                )
            except SessionValidationError as e:
                for err in e.errors:
                    st.error(err)
            else:
                st.success(f"✓ Logged {n_sel} student{'s' if n_sel != 1 else ''}!")
                refresh()

    with col_recent:
        st.markdown("**Recent Sessions**")
        if not tracker.logs:
            st.caption("No sessions logged yet.")
        for log in tracker.logs[:8]:
            stu      = tracker.get_student(log.student_id)
            stu_name = stu.name if stu else "Former Student"
            stu_grd  = stu.grade.value if stu else ""
            gc       = GRADE_COLOR.get(stu.grade, "#9ca3af") if stu else "#9ca3af"
            sc       = staff_color(log.staff_name, tracker.staff)
            st.markdown(
                f"<div style='background:#f4f5f7;border:1px solid #e5e7eb;"
                f"border-radius:8px;padding:7px 12px;margin-bottom:5px;font-size:12px'>"
                f"<span style='display:inline-block;width:7px;height:7px;"
                f"border-radius:50%;background:{sc};margin-right:6px'></span>"
                f"<b style='color:#111827'>{escape(stu_name)}</b>"
                f"<span style='margin-left:6px;background:{gc}18;color:{gc};"
                f"border-radius:4px;padding:1px 5px;font-size:9px;font-weight:700'>{stu_grd}</span>"
                f"<span style='float:right;color:#9ca3af'>{subject_label(log.subject)} &nbsp;"
                f"<b style='color:#111827'>{log.minutes}m</b>"
                f"&nbsp; {log.date.isoformat()[5:]}</span>"
                f"</div>",
                unsafe_allow_html=True,
            )


def render_history(tracker: Tracker, month: str, week):
    st.subheader("Session History")
    period_df = agg.filter_by_period(agg.logs_frame(tracker.logs), month, week)
    st.download_button(
        "⬇ Export CSV", data=tracker.export_csv(month, week),
        file_name=csv_filename(month), mime="text/csv",
    )
    if period_df.empty:
        st.caption("No sessions in this period.")
        return
    table = pd.DataFrame({
        "Date":    period_df["date"],
        "Staff":   period_df["staff_name"],
        "Student": period_df["student_id"].map(tracker.student_name),
        "Subject": period_df["subject"].map(lambda s: s.value),
        "Minutes": period_df["minutes"],
        "Notes":   period_df["notes"],
    })
    st.dataframe(table, hide_index=True, use_container_width=True)


def render_team_setup(tracker: Tracker):
    st.markdown("#### Team Setup — Edit Staff Names")
    with st.form("staff_form"):
        new_names = []
        for i, member in enumerate(tracker.staff):
            c_dot, c_inp = st.columns([1, 10])
            with c_dot:
                st.markdown(
                    f"<div style='width:12px;height:12px;border-radius:50%;"
                    f"background:{member.color};margin-top:34px'></div>",
                    unsafe_allow_html=True,
                )
            with c_inp:
                new_names.append(st.text_input(
                    label=f"staff_{i}", value=member.name,
                    key=f"sname_{i}", label_visibility="collapsed",
                ))
        if st.form_submit_button("Save Changes", use_container_width=True):
            tracker.rename_staff(new_names)
            st.success("✓ Staff names updated!")
            refresh()


def render_settings(tracker: Tracker, config: Config):
    st.subheader("Settings")

    st.markdown("#### Cloud Sync")
    url = st.text_input(
        "Apps Script Web App or Google Sheet URL", value=tracker.sync_url,
        placeholder="https://script.google.com/macros/s/...", key="sync_url",
    )
    st.caption(
        "Every log submission is sent to this URL in the background. "
        "The endpoint must accept a POST with the new logs as JSON."
    )
    if st.button("Save Sync URL", key="sync_save"):
        tracker.set_sync_url(url)
        st.success("✓ Sync URL saved")

    if config.pull_enabled:
        st.warning("Pull mode: replaces ALL local logs with the remote copy.")
        if st.button("Pull logs from sync URL", key="sync_pull"):
            if tracker.pull_logs():
                st.success(f"✓ Loaded {len(tracker.logs)} logs")
                refresh()
            else:
                st.error("Could not load logs from the sync URL.")

    st.markdown("#### Backup")
    st.download_button(
        "⬇ Export Team Setup", data=tracker.export_backup(),
        file_name=backup_filename(), mime="application/json",
    )
    uploaded = st.file_uploader("Import Setup", type=["json"], key="backup_upload")
    if uploaded is not None:
        confirm = st.checkbox(
            "This will overwrite your current student list and logs with the imported file.",
            key="backup_confirm",
        )
        if st.button("Import", key="backup_import", disabled=not confirm):
            try:
                tracker.import_backup(uploaded.getvalue())
            except BackupFormatError as e:
                st.error(str(e))
            else:
                st.success("✓ Setup imported")
                refresh()

    render_team_setup(tracker)

    st.markdown("---")
    reset_ok = st.checkbox("Clear everything?", key="reset_confirm")
    if st.button("Factory Reset App", key="reset", disabled=not reset_ok):
        tracker.factory_reset()
        refresh()


# ══════════════════════════════════════════════════════════════════════════════
# MAIN
# ══════════════════════════════════════════════════════════════════════════════
def main():
    inject_css()

    config  = get_config()
    tracker = get_tracker()

    st.markdown(
        "<div style='display:flex;align-items:center;gap:10px;margin-bottom:4px'>"
        "<div style='width:32px;height:32px;background:#4f46e5;border-radius:8px;"
        "display:flex;align-items:center;justify-content:center;"
        "color:white;font-weight:800;font-size:16px'>I</div>"
        "<span style='font-size:20px;font-weight:800;color:#111827;"
        "letter-spacing:-0.5px'>IEP Minute Pro</span></div>",
        unsafe_allow_html=True,
    )
    st.caption("Monitoring service delivery — " + month_label())

    month, week = render_period_picker(tracker)

    tab_dash, tab_log, tab_add, tab_hist, tab_set = st.tabs(
        ["📊 Dashboard", "✏️ Log Session", "➕ Add Student", "🗂 History", "⚙️ Settings"]
    )

    with tab_dash:
        render_dashboard(tracker, month, week)

    with tab_log:
        render_log_session(tracker)

    with tab_add:
        render_add_student(tracker)

    with tab_hist:
        render_history(tracker, month, week)

    with tab_set:
        render_settings(tracker, config)


if __name__ == "__main__":
    main()
