"""
Render Templates - deterministic chat summaries for tool envelopes

Every tool definition carries one template. The orchestrator uses it when the
model called tools but produced no text of its own, so the summary format is
declared next to the tool whose envelope it reads.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional


# =============================================================================
# Value formatters
# =============================================================================

def format_euro(value: Any) -> str:
    return f"{float(value or 0):.2f} €"


def _as_datetime(value: Any) -> Any:
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    return value


def format_date(value: Any) -> str:
    parsed = _as_datetime(value)
    if not parsed:
        return str(value or "")
    return parsed.strftime("%d.%m.%Y")


def format_datetime(value: Any) -> str:
    parsed = _as_datetime(value)
    if not parsed:
        return str(value or "")
    return parsed.strftime("%d.%m.%Y %H:%M")


def format_customer_type(is_prospect: Any) -> str:
    return "Interessent" if is_prospect else "Kunde"


_STATUS_LABELS = {
    "DRAFT": "Entwurf",
    "SENT": "Versendet",
    "ACCEPTED": "Angenommen",
    "DECLINED": "Abgelehnt",
    "PAID": "Bezahlt",
}


def format_status(value: Any) -> str:
    return _STATUS_LABELS.get(str(value), str(value or ""))


def _lookup(data: Dict[str, Any], path: str) -> Any:
    value: Any = data
    for part in path.split("."):
        if not isinstance(value, dict):
            return None
        value = value.get(part)
    return value


def _cell(value: Any) -> str:
    text = "" if value is None else str(value)
    return text.replace("|", "\\|").replace("\n", " ")


def render_failure(envelope: Dict[str, Any]) -> str:
    """Error-flavoured chat message for a failed tool call."""
    message = envelope.get("message") or "Die Aktion konnte nicht ausgeführt werden."
    return f"❌ {message}"


# =============================================================================
# Templates
# =============================================================================

@dataclass
class TemplateField:
    """One value taken from a record: `path` is a dotted key or a format string"""
    label: str
    path: str
    formatter: Optional[Callable[[Any], str]] = None

    def value(self, record: Dict[str, Any]) -> str:
        if "{" in self.path:
            # Format string over the record, e.g. "{customer[firstName]} {customer[lastName]}"
            try:
                return self.path.format(**record).strip()
            except (KeyError, IndexError, TypeError):
                return ""
        raw = _lookup(record, self.path)
        if self.formatter is not None:
            return self.formatter(raw)
        return "" if raw is None else str(raw)


class RenderTemplate(ABC):
    """Turns a tool envelope into a Markdown chat reply."""

    @abstractmethod
    def render(self, envelope: Dict[str, Any]) -> str:
        ...


@dataclass
class TableTemplate(RenderTemplate):
    """Markdown table over the list stored under `collection_key`."""
    collection_key: str
    columns: List[TemplateField]
    empty_text: str

    def render(self, envelope: Dict[str, Any]) -> str:
        if not envelope.get("success"):
            return render_failure(envelope)

        rows = envelope.get(self.collection_key) or []
        lines = [envelope.get("message", "")]
        if not rows:
            lines.append("")
            lines.append(self.empty_text)
            return "\n".join(lines).strip()

        lines.append("")
        lines.append("| " + " | ".join(c.label for c in self.columns) + " |")
        lines.append("|" + "|".join("---" for _ in self.columns) + "|")
        for row in rows:
            lines.append("| " + " | ".join(_cell(c.value(row)) for c in self.columns) + " |")
        return "\n".join(lines).strip()


@dataclass
class SummaryTemplate(RenderTemplate):
    """
    Confirmation block for a single record under `entity_key`.

    `title` is formatted with the record's top-level fields; without a title the
    envelope message is used. Fields with empty values are skipped.
    """
    entity_key: str
    fields: List[TemplateField] = field(default_factory=list)
    title: Optional[str] = None
    icon: str = "✅"

    def render(self, envelope: Dict[str, Any]) -> str:
        if not envelope.get("success"):
            return render_failure(envelope)

        record = envelope.get(self.entity_key) or {}
        if self.title:
            try:
                heading = self.title.format(**record)
            except (KeyError, IndexError, ValueError):
                heading = envelope.get("message", "")
        else:
            heading = envelope.get("message", "")

        lines = [f"{self.icon} **{heading}**"]
        details = []
        for f in self.fields:
            value = f.value(record)
            if value:
                details.append(f"- **{f.label}:** {value}")
        if details:
            lines.append("")
            lines.extend(details)
        return "\n".join(lines)
