from pathlib import Path
from typing import Optional

from jinja2 import Environment, FileSystemLoader, StrictUndefined

from core.contracts.models import ChangeKind, ProcessingResult
from utils.errors import FormatterError


class Jinja2Formatter:
    """
    Renders generation prompts and result summaries from Jinja2 templates.
    """

    def __init__(
        self,
        template_dir: Optional[str] = None,
        prompt_template: str = "prompt.j2",
        summary_template: str = "summary.j2",
    ):
        if template_dir is None:
            template_dir = str(Path(__file__).parent / "templates")

        self.template_dir = template_dir
        self.prompt_template = prompt_template
        self.summary_template = summary_template
        self.env = Environment(
            loader=FileSystemLoader(self.template_dir),
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
            undefined=StrictUndefined,
        )

    def _render(self, template_name: str, **context) -> str:
        try:
            return self.env.get_template(template_name).render(**context)
        except Exception as e:
            raise FormatterError(f"Failed to render template {template_name}: {e}") from e

    def render_prompt(self, change_kind: ChangeKind, file_path: str, diff: str) -> str:
        """Builds the generation prompt for one change."""
        return self._render(
            self.prompt_template,
            kind=change_kind.value,
            file_path=file_path,
            diff=diff,
        ).strip()

    def render_summary(self, result: ProcessingResult) -> str:
        """Builds the human-readable summary returned by the commit tool."""
        return self._render(self.summary_template, result=result)
