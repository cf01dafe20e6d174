"""Issue body templates.

Templates live in ``issue_proxy/templates/`` as markdown files with a small
frontmatter block::

    ---
    title_prefix: "[Bug] "
    label: bug
    ---

    Body text containing a single {description} placeholder.

They are read once at import time and never change afterwards. ``footer.md``
is appended to every rendered body.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType

from issue_proxy.models.issue import IssueType

logger = logging.getLogger(__name__)

FRONTMATTER_MARKER = "---"
PLACEHOLDER = "{description}"
DEFAULT_ISSUE_TYPE = IssueType.QUESTION

_TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "templates"


@dataclass(frozen=True)
class IssueTemplate:
    title_prefix: str
    label: str
    body: str


@dataclass(frozen=True)
class RenderedIssue:
    title_prefix: str
    label: str
    body: str


def parse_template(raw: str) -> IssueTemplate:
    """Split a template into frontmatter metadata and body.

    Text without a complete ``---`` block is returned as the body with empty
    metadata.
    """
    title_prefix = ""
    label = ""
    body = raw

    if raw.startswith(FRONTMATTER_MARKER):
        start = len(FRONTMATTER_MARKER)
        end = raw.find(FRONTMATTER_MARKER, start)
        if end != -1:
            frontmatter = raw[start:end]
            body = raw[end + len(FRONTMATTER_MARKER) :].lstrip()

            for line in frontmatter.splitlines():
                key, sep, value = line.partition(":")
                if not sep:
                    continue
                value = value.strip().strip('"')
                key = key.strip()
                if key == "title_prefix":
                    title_prefix = value
                elif key == "label":
                    label = value

    return IssueTemplate(title_prefix=title_prefix, label=label, body=body)


def _read(name: str) -> str:
    return (_TEMPLATE_DIR / name).read_text(encoding="utf-8")


def _load_templates() -> MappingProxyType:
    templates = {
        issue_type: parse_template(_read(f"{issue_type.value}.md"))
        for issue_type in IssueType
    }
    logger.debug("Loaded %d issue templates from %s", len(templates), _TEMPLATE_DIR)
    return MappingProxyType(templates)


TEMPLATES: MappingProxyType = _load_templates()
FOOTER: str = _read("footer.md")


def get_template(issue_type: IssueType | str) -> IssueTemplate:
    """Return the template for a classification, defaulting to questions."""
    return TEMPLATES.get(IssueType.parse(issue_type), TEMPLATES[DEFAULT_ISSUE_TYPE])


def render(issue_type: IssueType | str, description: str) -> RenderedIssue:
    """Fill the template for *issue_type* with *description* and add the footer.

    The description is inserted verbatim; GitHub renders the body as markdown
    but nothing here interprets it.
    """
    template = get_template(issue_type)
    body = template.body.replace(PLACEHOLDER, description)
    return RenderedIssue(
        title_prefix=template.title_prefix,
        label=template.label,
        body=f"{body.rstrip()}{FOOTER}",
    )
