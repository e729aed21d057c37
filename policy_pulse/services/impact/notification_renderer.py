"""Plan-change notification rendering for affected patients.

Only builds the message bodies; delivery belongs to whichever mail
collaborator the caller wires in.
"""

from datetime import date
from html import escape
from typing import List, Optional

from policy_pulse.schemas.coverage import CoverageEntry
from policy_pulse.schemas.impact import AffectedPatient, ImpactReport, PlanChangeMessage
from policy_pulse.utils.logging import get_logger

LOGGER = get_logger(__name__)

EVENT_HEADER = "X-PolicyPulse-Event"
PATIENT_HEADER = "X-PolicyPulse-PatientId"
POLICY_UPDATED_EVENT = "policy.updated"

_SIGNATURE = "— PolicyPulse"


def default_subject(today: Optional[date] = None) -> str:
    day = (today or date.today()).isoformat()
    return f"Your medical plan has updates — {day}"


def _label(entry: Optional[CoverageEntry]) -> str:
    return entry.describe() if entry is not None else "not listed"


def build_change_summary(patient: AffectedPatient) -> List[str]:
    """One line per impacted medication, e.g. ``metformin: covered → 50% covered``."""
    return [
        f"{impact.medication}: {_label(impact.old)} → {_label(impact.next)}"
        for impact in patient.medications_impacted
    ]


def _greeting(name: Optional[str]) -> str:
    return f"Hello {name}," if name else "Hello,"


def render_plan_change_message(
    patient: AffectedPatient,
    subject: Optional[str] = None,
) -> PlanChangeMessage:
    """Render the plain-text and HTML bodies of a plan-change email.

    Args:
        patient: Affected patient with their impacted medications
        subject: Optional subject; defaults to a dated one

    Returns:
        PlanChangeMessage ready to hand to a mailer
    """
    lines = build_change_summary(patient)
    summary_text = "\n".join(f"- {line}" for line in lines)

    text = "\n\n".join([
        "Medical plan updates",
        _greeting(patient.name),
        "We're writing to let you know that your insurance plan has recent changes "
        "affecting medications you take.",
        summary_text,
        _SIGNATURE,
    ])

    items = "".join(f"<li>{escape(line)}</li>" for line in lines)
    html = (
        "<!doctype html>\n"
        "<html>\n"
        "  <head><meta charset=\"utf-8\"/></head>\n"
        "  <body>\n"
        "    <h2>Medical plan updates</h2>\n"
        f"    <p>{escape(_greeting(patient.name))}</p>\n"
        "    <p>We're writing to let you know that your insurance plan has recent changes "
        "affecting medications you take.</p>\n"
        f"    <ul>{items}</ul>\n"
        f"    <p>{escape(_SIGNATURE)}</p>\n"
        "  </body>\n"
        "</html>"
    )

    return PlanChangeMessage(
        to=patient.email,
        patient_id=patient.user_id,
        subject=subject or default_subject(),
        text=text,
        html=html,
        headers={
            PATIENT_HEADER: patient.user_id,
            EVENT_HEADER: POLICY_UPDATED_EVENT,
        },
    )


def render_report_messages(report: ImpactReport, subject: Optional[str] = None) -> List[PlanChangeMessage]:
    """Render one message per affected patient in an impact report."""
    messages = [render_plan_change_message(patient, subject) for patient in report.affected_patients]
    LOGGER.info(
        f"Rendered {len(messages)} plan-change messages",
        extra={"run_id": report.run_id, "message_count": len(messages)},
    )
    return messages
