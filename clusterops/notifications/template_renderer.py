"""HTML email template rendering.

Templates are stored on disk and rendered with escaped placeholders.
"""

from __future__ import annotations

import html
import re
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any

_PLACEHOLDER_RE = re.compile(r"\{\{\s*([a-zA-Z0-9_]+)\s*\}\}")


@dataclass(frozen=True)
class NotificationTemplate:
  template_id: str
  subject_template: str
  html_filename: str
  text_filename: str
  required_placeholders: set[str]


_TEMPLATE_DIR = Path(__file__).resolve().parent / "templates"

TEMPLATES: dict[str, NotificationTemplate] = {
  "cluster_ready_v1": NotificationTemplate(
    template_id="cluster_ready_v1",
    subject_template="Your cluster {{cluster_name}} is ready",
    html_filename="cluster_ready_v1.html",
    text_filename="cluster_ready_v1.txt",
    required_placeholders={"cluster_name", "connection_string", "project_name"},
  ),
}


def render_email_template(*, template_id: str, placeholders: dict[str, Any]) -> tuple[str, str, str]:
  """Render subject/text/html for a template id using escaped placeholders."""
  template = TEMPLATES.get(template_id)
  if template is None:
    raise ValueError(f"Unknown notification template: {template_id}")
  missing = sorted(template.required_placeholders - set(placeholders.keys()))
  if missing:
    raise ValueError(f"Missing placeholders for template '{template.template_id}': {', '.join(missing)}")
  subject = _render_text(template.subject_template, placeholders=placeholders, escape_html=False)
  html_payload = _render_text(_load_template_file(template.html_filename), placeholders=placeholders, escape_html=True)
  text_payload = _render_text(_load_template_file(template.text_filename), placeholders=placeholders, escape_html=False)
  return subject, text_payload, html_payload


def _render_text(raw_template: str, *, placeholders: dict[str, Any], escape_html: bool) -> str:
  def _replace(match: re.Match[str]) -> str:
    value = placeholders.get(match.group(1), "")
    rendered = str(value) if value is not None else ""
    if escape_html:
      return html.escape(rendered, quote=True)
    return rendered

  return _PLACEHOLDER_RE.sub(_replace, raw_template)


@lru_cache(maxsize=8)
def _load_template_file(filename: str) -> str:
  return (_TEMPLATE_DIR / filename).read_text(encoding="utf-8")
