"""Digest email templates."""

from __future__ import annotations

import html
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Final, List, Optional, Sequence

from loguru import logger

from ..database.models import Category, Note


EMPTY_BATCH_MESSAGE: Final[str] = "Nothing was captured this period."
DIGEST_SUBJECT: Final[str] = "Thought App, Weekly Round up"


class TemplateError(Exception):
    """Raised when a digest template cannot be rendered."""
    pass


@dataclass(frozen=True)
class RenderedDigest:
    """Subject and bodies ready to hand to the email service."""
    subject: str
    text_content: str
    html_content: str


@dataclass(frozen=True)
class DigestContext:
    """Everything a digest needs: the batch, the optional analysis, who it is for."""
    notes: Sequence[Note]
    recipient_name: str
    send_timestamp: datetime
    analysis: Optional[str] = None
    app_name: str = "Thought App"

    def grouped(self) -> List[tuple[Category, List[Note]]]:
        """Thoughts grouped by category in canonical category order.

        Claim order is kept inside each group; empty groups are dropped.
        """
        groups: List[tuple[Category, List[Note]]] = []
        for category in Category:
            members: List[Note] = [note for note in self.notes if note.category is category]
            if members:
                groups.append((category, members))
        return groups

    def to_dict(self) -> Dict[str, Any]:
        counts: str = ", ".join(f"{len(members)} {category.value}" for category, members in self.grouped())
        return {
            "app_name": self.app_name,
            "recipient_name": self.recipient_name or "there",
            "notes_count": len(self.notes),
            "category_counts": counts or "none",
            "send_date": self.send_timestamp.strftime("%Y-%m-%d"),
            "send_datetime_formatted": self.send_timestamp.strftime("%B %d, %Y at %I:%M %p"),
        }


class SimpleTemplateEngine:
    """Substitutes ``{{name}}`` placeholders from a flat context dictionary."""

    VARIABLE_PATTERN: re.Pattern[str] = re.compile(r"\{\{\s*([a-z_]+)\s*\}\}")

    def render(self, template: str, context: Dict[str, Any]) -> str:
        """Render template with context data.

        Raises:
            TemplateError: If a placeholder has no value in the context.
        """
        def replace_variable(match: re.Match[str]) -> str:
            name: str = match.group(1)
            if name not in context:
                raise TemplateError(f"Template variable has no value: {name}")
            return str(context[name])

        return self.VARIABLE_PATTERN.sub(replace_variable, template)


TEXT_TEMPLATE: Final[str] = """Hi {{recipient_name}},

Here is your {{app_name}} round up for {{send_date}}.
{{notes_count}} thoughts captured ({{category_counts}}).

{{notes_text}}{{analysis_text}}
--
Sent by {{app_name}} on {{send_datetime_formatted}}
"""

HTML_TEMPLATE: Final[str] = """<!DOCTYPE html>
<html lang="en">
<head><meta charset="UTF-8"><title>{{app_name}} round up</title></head>
<body style="font-family: -apple-system, 'Segoe UI', Roboto, Arial, sans-serif; line-height: 1.6; color: #333; padding: 20px;">
  <div style="max-width: 760px; margin: 0 auto;">
    <h1 style="color: #2c3e50; font-size: 24px;">{{app_name}} round up, {{send_date}}</h1>
    <p>Hi {{recipient_name}}, {{notes_count}} thoughts captured ({{category_counts}}).</p>
    {{notes_html}}
    {{analysis_html}}
    <p style="color: #6c757d; font-size: 12px; border-top: 1px solid #e9ecef; padding-top: 12px;">Sent by {{app_name}} on {{send_datetime_formatted}}</p>
  </div>
</body>
</html>
"""


class DigestTemplate:
    """Renders a digest context into subject, plain text and HTML."""

    def __init__(
        self,
        text_template: str = TEXT_TEMPLATE,
        html_template: str = HTML_TEMPLATE,
        subject: str = DIGEST_SUBJECT
    ) -> None:
        self.text_template: str = text_template
        self.html_template: str = html_template
        self.subject: str = subject
        self.engine: SimpleTemplateEngine = SimpleTemplateEngine()

    def render(self, context: DigestContext) -> RenderedDigest:
        """Render both bodies.

        An empty batch renders an explicit "nothing this period" message
        rather than an empty list.

        Raises:
            TemplateError: If rendering fails.
        """
        values: Dict[str, Any] = context.to_dict()
        values.update(
            notes_text=self._notes_text(context),
            notes_html=self._notes_html(context),
            analysis_text=self._analysis_text(context.analysis),
            analysis_html=self._analysis_html(context.analysis),
        )

        try:
            rendered: RenderedDigest = RenderedDigest(
                subject=f"{self.subject} ({len(context.notes)} thoughts)",
                text_content=self.engine.render(self.text_template, values),
                html_content=self.engine.render(self.html_template, values),
            )
        except TemplateError:
            raise
        except Exception as e:
            logger.error(f"Digest rendering failed: {e}")
            raise TemplateError(f"Failed to render digest: {e}") from e

        logger.debug(f"Rendered digest for {len(context.notes)} thoughts")
        return rendered

    @staticmethod
    def _format_captured(note: Note) -> str:
        if note.created_at is None:
            return ""
        return f" ({note.created_at.strftime('%Y-%m-%d %H:%M')})"

    def _notes_text(self, context: DigestContext) -> str:
        if not context.notes:
            return EMPTY_BATCH_MESSAGE + "\n"

        parts: List[str] = []
        for category, members in context.grouped():
            parts.append(f"== {category.value} ({len(members)}) ==")
            for note in members:
                parts.append(f"- {note.body}{self._format_captured(note)}")
            parts.append("")
        return "\n".join(parts)

    def _notes_html(self, context: DigestContext) -> str:
        if not context.notes:
            return f'<p style="font-style: italic;">{html.escape(EMPTY_BATCH_MESSAGE)}</p>'

        parts: List[str] = []
        for category, members in context.grouped():
            parts.append(f'<h2 style="color: #495057; font-size: 18px;">{category.value} ({len(members)})</h2>')
            parts.append("<ul>")
            for note in members:
                parts.append(
                    f"<li>{html.escape(note.body)}"
                    f'<span style="color: #6c757d; font-size: 12px;">{html.escape(self._format_captured(note))}</span></li>'
                )
            parts.append("</ul>")
        return "\n    ".join(parts)

    @staticmethod
    def _analysis_text(analysis: Optional[str]) -> str:
        if not analysis:
            return ""
        return f"\n== Analysis ==\n{analysis.strip()}\n"

    @staticmethod
    def _analysis_html(analysis: Optional[str]) -> str:
        if not analysis:
            return ""
        return (
            '<h2 style="color: #495057; font-size: 18px;">Analysis</h2>\n'
            f'    <pre style="white-space: pre-wrap; font-family: inherit; background: #f8f9fa; padding: 16px;">'
            f"{html.escape(analysis.strip())}</pre>"
        )
