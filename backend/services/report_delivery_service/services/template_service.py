"""
Template service for rendering report emails.

Slides are rendered to an HTML fragment with Jinja2 (templates/
report_slides.html). The fragment is then placed into one of the email
skeletons in templates/email/ through the same {name} substitution used
for subject lines, so authors see one placeholder convention everywhere.

Variable values are HTML-escaped before they are placed into a skeleton.
Only two values are inserted as markup: email_content (the escaped custom
content with line breaks turned into <br>) and report_content (the slide
fragment).
"""

from decimal import Decimal
from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, TemplateError, TemplateNotFound
from loguru import logger
from markupsafe import Markup, escape

from services.report_delivery_service.models.content import Slide
from services.report_delivery_service.services.variable_resolver import substitute

EMAIL_SKELETON_DIR = "email"
DEFAULT_EMAIL_CONTENT = "Please find the latest results of {report_name} below."


class TemplateService:
    """Renders slides and email skeletons into the final HTML body."""

    def __init__(self, default_template: str = "professional"):
        templates_dir = Path(__file__).parent.parent / "templates"

        self.env = Environment(
            loader=FileSystemLoader(str(templates_dir)),
            autoescape=True,
        )
        self.env.filters["nl2br"] = self._nl2br_filter
        self.env.filters["cell"] = self._cell_filter
        self.default_template = default_template

    def available_templates(self) -> list[str]:
        """Ids of the email skeletons shipped with the service."""
        names = self.env.list_templates(
            filter_func=lambda name: name.startswith(f"{EMAIL_SKELETON_DIR}/") and name.endswith(".html")
        )
        return sorted(Path(name).stem for name in names)

    def load_skeleton(self, template_id: str | None) -> str:
        """
        Raw skeleton HTML for template_id.

        Unknown ids fall back to the default skeleton.
        """
        candidates = [template_id, self.default_template, "professional"]
        for candidate in candidates:
            if not candidate or "/" in candidate or "\\" in candidate:
                continue
            try:
                source, _, _ = self.env.loader.get_source(
                    self.env, f"{EMAIL_SKELETON_DIR}/{candidate}.html"
                )
            except TemplateNotFound:
                logger.warning(f"Email template {candidate!r} not found, falling back")
                continue
            return source
        msg = "No email skeleton available"
        raise TemplateNotFound(msg)

    def render_slides(self, slides: list[Slide]) -> str:
        """Render slides to an HTML fragment."""
        if not slides:
            return ""
        try:
            template = self.env.get_template("report_slides.html")
            return template.render(slides=slides)
        except TemplateError as e:
            logger.error(f"Error rendering slides template: {e}")
            return self._render_fallback_slides(slides)

    def render_email(
        self,
        template_id: str | None,
        variables: dict[str, str],
        custom_content: str | None = None,
        slides: list[Slide] | None = None,
    ) -> str:
        """
        Render the HTML body of a report email.

        Args:
            template_id: Email skeleton id ("professional", "minimal",
                "dashboard"). Unknown ids use the default skeleton.
            variables: Resolved variables for this render.
            custom_content: Body text with placeholders already substituted.
                When empty a default sentence is used.
            slides: Resolved slides rendered into {report_content}.

        Returns:
            Complete HTML document.
        """
        html_variables: dict[str, Any] = {
            name: escape("" if value is None else value) for name, value in variables.items()
        }
        body_text = custom_content or substitute(DEFAULT_EMAIL_CONTENT, variables)
        html_variables["email_content"] = self._nl2br_filter(body_text)
        html_variables["report_content"] = Markup(self.render_slides(slides or []))

        return substitute(self.load_skeleton(template_id), html_variables)

    def _render_fallback_slides(self, slides: list[Slide]) -> str:
        parts = []
        for slide in slides:
            parts.append(f"<h3>{escape(slide.title)}</h3>")
            for element in slide.elements:
                if element.type == "text":
                    parts.append(f"<p>{escape(element.content.text)}</p>")
                elif element.type == "metric":
                    parts.append(
                        f"<p><strong>{escape(element.display_value())}</strong> "
                        f"{escape(element.content.label)}</p>"
                    )
        return "\n".join(parts)

    def _nl2br_filter(self, value: Any) -> Markup:
        """Escape value and turn newlines into <br> tags."""
        escaped = escape("" if value is None else str(value))
        return Markup(escaped.replace("\r\n", "\n").replace("\n", Markup("<br>\n")))

    def _cell_filter(self, value: Any) -> str:
        """Display a table cell value."""
        if value is None:
            return ""
        if isinstance(value, float):
            return f"{value:,.2f}"
        if isinstance(value, Decimal):
            return f"{value:,}"
        return str(value)
