"""HTML snippets for the Streamlit views."""

from html import escape

from iepminutes.schemas import Grade, Subject

SUBJ_COLOR = {
    Subject.MATH:            "#6366f1",
    Subject.ENGLISH:         "#8b5cf6",
    Subject.TASK_COMPLETION: "#10b981",
}
GRADE_COLOR = {
    Grade.SIXTH:   "#f59e0b",
    Grade.SEVENTH: "#6366f1",
    Grade.EIGHTH:  "#10b981",
}
FALLBACK_COLOR = "#9ca3af"


def subject_label(subject) -> str:
    return "Tasks" if Subject(subject) == Subject.TASK_COMPLETION else Subject(subject).value


def staff_color(name: str, staff) -> str:
    for member in staff:
        if member.name == name:
            return member.color
    return FALLBACK_COLOR


def segment_width(percentage: float) -> float:
    """Segments overflow past 100% when over goal; the bar never does."""
    return max(0.0, min(float(percentage), 100.0))


def progress_bar_html(progress, staff) -> str:
    goal      = progress.effective_goal
    total     = progress.total_minutes
    segs_html = ""
    for seg in progress.segments:
        if seg.minutes > 0 and goal > 0:
            segs_html += (
                f"<div title='{escape(seg.name)}: {seg.minutes}m' "
                f"style='width:{segment_width(seg.percentage):.1f}%;"
                f"background:{staff_color(seg.name, staff)};"
                f"height:100%;display:inline-block'></div>"
            )
    if not progress.segments:
        segs_html = (
            "<span style='font-size:9px;color:#9ca3af;padding-left:6px'>"
            "No logs recorded</span>"
        )
    pct_label  = min(int(total / goal * 100), 100) if goal > 0 else 0
    goal_color = "#10b981" if progress.accomplished else FALLBACK_COLOR
    fw         = "600" if progress.accomplished else "400"
    return (
        f"<div style='background:#f3f4f6;border-radius:6px;height:10px;"
        f"overflow:hidden;border:1px solid #e5e7eb;display:flex;margin-bottom:3px'>"
        f"{segs_html}</div>"
        f"<div style='display:flex;justify-content:space-between;"
        f"font-size:10px;color:#9ca3af'>"
        f"<span>{total}m / {goal}m</span>"
        f"<span style='color:{goal_color};font-weight:{fw}'>{pct_label}%</span>"
        f"</div>"
    )


def staff_chips_html(segments, staff) -> str:
    chips = ""
    for seg in segments:
        if seg.minutes > 0:
            chips += (
                f"<span style='display:inline-flex;align-items:center;gap:3px;"
                f"background:#f4f5f7;border:1px solid #e5e7eb;border-radius:4px;"
                f"padding:2px 6px;font-size:9px;color:#4b5563;margin:2px'>"
                f"<span style='display:inline-block;width:5px;height:5px;"
                f"border-radius:50%;background:{staff_color(seg.name, staff)}'></span>"
                f"{escape(seg.name)}: {seg.minutes}m</span>"
            )
    return chips


def staff_total_html(name: str, minutes: int, staff) -> str:
    return (
        f"<div style='display:flex;align-items:center;gap:5px;font-size:11px;color:#4b5563'>"
        f"<span style='display:inline-block;width:7px;height:7px;"
        f"border-radius:50%;background:{staff_color(name, staff)}'></span>"
        f"{escape(name)}: <b style='color:#111827'>{minutes}m</b></div>"
    )


def note_card_html(staff_name: str, day, notes: str, staff) -> str:
    """One session note; notes may come from a shared sync pull."""
    return (
        f"<div style='background:#f4f5f7;border:1px solid #e5e7eb;"
        f"border-radius:7px;padding:7px 10px;margin-bottom:5px'>"
        f"<div style='display:flex;justify-content:space-between;margin-bottom:3px'>"
        f"<span style='font-size:10px;color:#4b5563'>"
        f"<span style='display:inline-block;width:5px;height:5px;"
        f"border-radius:50%;background:{staff_color(staff_name, staff)};margin-right:4px'></span>"
        f"{escape(staff_name or 'Unknown')}</span>"
        f"<span style='font-size:10px;color:#9ca3af'>{day.isoformat()}</span>"
        f"</div>"
        f"<p style='font-size:11px;color:#4b5563;margin:0'>{escape(notes or '')}</p>"
        f"</div>"
    )
