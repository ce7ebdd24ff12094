from datetime import timezone
from typing import List

from ...schemas.analysis.analysis import HistoryRecord
from ...schemas.auth.auth import Profile

REPORT_TITLE = "Pathology Analysis Report"


def _preparer_line(profile: Profile) -> str:
    parts = [profile.name]
    if profile.qualifications:
        parts[0] = f"{profile.name}, {profile.qualifications}"
    if profile.title:
        parts.append(profile.title)
    if profile.hospital:
        parts.append(profile.hospital)
    return " | ".join(parts)


def render_transcript(record: HistoryRecord, profile: Profile) -> str:
    """Plain-text report for pasting into notes or email."""
    result = record.result
    lines: List[str] = [
        REPORT_TITLE,
        "=" * len(REPORT_TITLE),
        f"Prepared by: {_preparer_line(profile)}",
        f"Date: {record.date.astimezone(timezone.utc).strftime('%Y-%m-%d %H:%M UTC')}",
        "",
        "Overall Impression",
        "------------------",
        result.overall_impression,
        "",
        "Key Findings",
        "------------",
    ]
    if result.key_findings:
        for n, finding in enumerate(result.key_findings, start=1):
            lines.append(f"{n}. {finding.finding}: {finding.description}")
    else:
        lines.append("None reported.")
    lines += [
        "",
        "Differential Diagnosis",
        "----------------------",
        result.differential_diagnosis,
        "",
        "Recommendations",
        "---------------",
    ]
    if result.recommendations:
        lines += [f"- {rec}" for rec in result.recommendations]
    else:
        lines.append("None.")
    return "\n".join(lines) + "\n"
