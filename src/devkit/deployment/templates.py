"""Rendering environment templates.

Templates ship with the package under ``devkit/templates``. Each
sub-directory is rendered into a target directory as a whole: every file is
a Jinja2 template, and a trailing ``.j2`` is dropped from the output name.
"""

from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, StrictUndefined
from rich.markup import escape

from devkit.io.output import CommandOutput
from devkit.io.step_level import StepLevel

TEMPLATE_DIR = Path(__file__).parent.parent / "templates"

_jinja_env: Environment | None = None


def get_jinja_env() -> Environment:
    global _jinja_env
    if _jinja_env is None:
        _jinja_env = Environment(
            loader=FileSystemLoader(str(TEMPLATE_DIR)),
            undefined=StrictUndefined,
            keep_trailing_newline=True,
        )
    return _jinja_env


def render_template(template: str, variables: dict[str, Any]) -> str:
    """Render one template, named relative to :data:`TEMPLATE_DIR`."""
    return get_jinja_env().get_template(template).render(variables)


def render_template_dir(
    template_root: str,
    render_to: Path,
    variables: dict[str, Any],
    output: CommandOutput,
    overwrite: bool = True,
) -> list[Path]:
    """Render every template under ``TEMPLATE_DIR / template_root`` into ``render_to``.

    Runs as a secondary step, so it must be called inside a primary step.

    Args:
        template_root: Sub-directory of the template dir, e.g. ``"docker"``
        render_to: Directory to write the rendered files into
        variables: Template context
        overwrite: Replace files that already exist in ``render_to``

    Returns:
        Paths of the rendered files
    """
    render_to = Path(render_to)
    source_dir = TEMPLATE_DIR / template_root
    output.start_step(StepLevel.SECONDARY, f"Rendering templates into [info]{escape(render_to.name)}[/info]")

    rendered = []
    for template_file in sorted(source_dir.rglob("*")):
        if template_file.is_dir():
            continue
        relative = template_file.relative_to(source_dir)
        output.writeln(f"Rendering [info]{escape(relative.name)}[/info]")

        output_path = render_to / relative
        if output_path.suffix == ".j2":
            output_path = output_path.with_suffix("")
        if not overwrite and output_path.exists():
            output.writeln(f"Keeping existing [info]{escape(output_path.name)}[/info]")
            continue
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(render_template(template_file.relative_to(TEMPLATE_DIR).as_posix(), variables))
        rendered.append(output_path)

    output.end_step(StepLevel.SECONDARY, "Finished rendering templates")
    return rendered
