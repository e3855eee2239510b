"""Intent routing and canned replies for chat messages.

A message is matched against keyword lists in a fixed order (compliance,
glossary, resolution, dashboard); the first list with a hit decides the
intent. Messages that match none go to the model.

The render functions turn stored compliance issues and glossary terms into
plain-text replies.
"""

import re
from collections.abc import Sequence
from dataclasses import dataclass

from glossary_extractor.core.config import ChatConfig
from glossary_extractor.pydantic_models.chat_models import ChatIntent
from glossary_extractor.pydantic_models.glossary_models import GlossaryTerm
from glossary_extractor.pydantic_models.report_models import ComplianceReportRow

INTENT_KEYWORDS: tuple[tuple[ChatIntent, tuple[str, ...]], ...] = (
    (ChatIntent.COMPLIANCE, ("comp-", "issue", "compliance", "violation", "duplicate", "threshold", "policy")),
    (ChatIntent.GLOSSARY, ("definition", "what is", "explain", "define", "meaning", "glossary", "term")),
    (ChatIntent.RESOLUTION, ("resolve", "fix", "solution", "how to", "workflow", "process", "steps")),
    (ChatIntent.DASHBOARD, ("dashboard", "stats", "metrics", "kpi", "performance", "activity", "summary")),
)

ISSUE_ID = re.compile(r"comp-\d+", re.IGNORECASE)

NO_TERM_FOUND = (
    "I couldn't find any matching terms in the data glossary. "
    "Could you be more specific about what you'd like to know?"
)

FALLBACK_REPLY = (
    "I can help you with compliance issues, data definitions, and resolution workflows. "
    "Try asking about specific issues or terms."
)

GENERAL_WORKFLOW = (
    ("Analysis", "Review issue details and impact"),
    ("Action Selection", "Choose appropriate resolution method"),
    ("Execution", "Implement the chosen solution"),
    ("Verification", "Confirm the issue is resolved"),
    ("Documentation", "Record resolution details"),
)

RESOLUTION_STEPS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("duplicate", (
        "Identify all duplicate records using matching criteria",
        "Determine the master record to keep",
        "Merge or consolidate data from duplicates",
        "Update references and relationships",
        "Remove or archive duplicate entries",
        "Implement prevention measures",
    )),
    ("threshold", (
        "Review current threshold settings",
        "Analyze business impact of violation",
        "Determine appropriate threshold adjustment",
        "Update system configuration",
        "Test new threshold behavior",
        "Monitor for future violations",
    )),
    ("policy", (
        "Review policy requirements",
        "Assess current implementation gaps",
        "Design compliance solution",
        "Implement policy controls",
        "Validate compliance status",
        "Document policy adherence",
    )),
)

DEFAULT_RESOLUTION_STEPS = (
    "Analyze issue details and root cause",
    "Develop resolution strategy",
    "Implement corrective actions",
    "Verify resolution effectiveness",
    "Update documentation",
    "Monitor for recurrence",
)

# (keyword, title) used when the model cannot title a session
FALLBACK_TITLES = (
    ("compliance", "Compliance Discussion"),
    ("issue", "Issue Resolution"),
    ("data", "Data Analysis"),
)
GENERIC_TITLE = "Chat Session"


def classify_intent(message: str) -> ChatIntent:
    lower = message.lower()
    for intent, keywords in INTENT_KEYWORDS:
        if any(keyword in lower for keyword in keywords):
            return intent
    return ChatIntent.GENERAL


def asks_for_resolution(message: str) -> bool:
    lower = message.lower()
    return any(keyword in lower for keyword in dict(INTENT_KEYWORDS)[ChatIntent.RESOLUTION])


def find_issue_id(message: str) -> str | None:
    """First ``COMP-<n>`` reference in the message, uppercased."""
    match = ISSUE_ID.search(message)
    return match.group(0).upper() if match else None


def find_issue(issues: Sequence[ComplianceReportRow], issue_id: str) -> ComplianceReportRow | None:
    return next((issue for issue in issues if issue.issue_id.upper() == issue_id), None)


def resolution_steps(issue_type: str) -> tuple[str, ...]:
    lower = (issue_type or "").lower()
    for keyword, steps in RESOLUTION_STEPS:
        if keyword in lower:
            return steps
    return DEFAULT_RESOLUTION_STEPS


@dataclass
class IssueStats:
    """Counts shown in the dashboard reply."""

    total: int = 0
    open: int = 0
    in_progress: int = 0
    resolved: int = 0
    high_severity: int = 0
    recent_activity: int = 0

    @classmethod
    def from_issues(cls, issues: Sequence[ComplianceReportRow], recent_activity: int = 0) -> "IssueStats":
        statuses = [issue.status.strip().lower() for issue in issues]
        return cls(
            total=len(issues),
            open=statuses.count("open"),
            in_progress=statuses.count("in progress"),
            resolved=statuses.count("closed"),
            high_severity=sum("high" in issue.severity.lower() for issue in issues),
            recent_activity=recent_activity,
        )


def render_issue(issue: ComplianceReportRow) -> str:
    lines = [
        f"{issue.issue_id}: {issue.issue_type} [{issue.status}]",
        f"Entity: {issue.entity}",
        f"Severity: {issue.severity}",
        f"Reported: {issue.report_date}",
    ]
    if issue.description:
        lines += ["", issue.description]
    lines += ["", "Would you like me to help you resolve this issue or explain the resolution process?"]
    return "\n".join(lines)


def render_duplicate_summary(issues: Sequence[ComplianceReportRow]) -> str:
    lines = [f"I found {len(issues)} duplicate record issues:"]
    lines += [f"• {issue.issue_id or 'unnumbered'} ({issue.entity}) - {issue.status}" for issue in issues]
    lines += [
        "",
        "Duplicate records occur when the same entity exists multiple times with different "
        "identifiers. Would you like help resolving any of these specific issues?",
    ]
    return "\n".join(lines)


def render_term(term: GlossaryTerm) -> str:
    lines = [f"{term.term} [{term.category_or_default}]", term.definition]
    if term.synonyms:
        lines.append(f"Also called: {', '.join(term.synonyms)}")
    if term.sample_values:
        lines.append(f'Example: "{term.sample_values[0]}"')
    return "\n".join(lines)


def render_resolution(issue: ComplianceReportRow) -> str:
    steps = resolution_steps(issue.issue_type)
    lines = [f"Resolution workflow for {issue.issue_id}:", ""]
    lines += [f"{n}. {step}" for n, step in enumerate(steps, start=1)]
    lines += ["", f"Current status: {issue.status}", "", "Would you like me to guide you through any of these steps?"]
    return "\n".join(lines)


def render_general_workflow() -> str:
    lines = ["Standard Issue Resolution Workflow:", ""]
    lines += [f"{n}. {name} - {detail}" for n, (name, detail) in enumerate(GENERAL_WORKFLOW, start=1)]
    lines += [
        "",
        "Each step includes validation checkpoints and can be customized based on issue type and severity.",
    ]
    return "\n".join(lines)


def render_dashboard(stats: IssueStats) -> str:
    lines = [
        "Your Dashboard Summary:",
        "",
        f"• Total Issues: {stats.total}",
        f"• Open: {stats.open} | In Progress: {stats.in_progress} | Resolved: {stats.resolved}",
        f"• High Severity: {stats.high_severity}",
        f"• Recent Activity: {stats.recent_activity} uploads",
        "",
    ]
    if stats.open:
        lines.append(f"You have {stats.open} issues that need attention. Would you like me to help prioritize them?")
    else:
        lines.append("Great job! No open issues at the moment.")
    return "\n".join(lines)


def clean_title(raw: str, max_length: int = ChatConfig.MAX_TITLE_LENGTH) -> str:
    """Model title without quotes, cut to ``max_length``."""
    return re.sub(r"['\"]", "", raw).strip()[:max_length].strip()


def fallback_title(first_message: str) -> str:
    lower = first_message.lower()
    for keyword, title in FALLBACK_TITLES:
        if keyword in lower:
            return title
    return GENERIC_TITLE
