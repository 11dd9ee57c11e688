"""Template rendering utilities."""

import logging
from typing import Any
from jinja2 import Environment, BaseLoader, TemplateError, StrictUndefined


logger = logging.getLogger(__name__)


class StringTemplateLoader(BaseLoader):
    """Template loader for string templates."""

    def __init__(self, template_string: str):
        self.template_string = template_string

    def get_source(self, environment, template):
        return self.template_string, None, lambda: True


def render_template(template_str: str, **context: Any) -> str:
    """Render a Jinja2 template string with given context."""
    try:
        env = Environment(
            loader=StringTemplateLoader(template_str),
            undefined=StrictUndefined,
            keep_trailing_newline=False,
        )
        return env.get_template("").render(**context)
    except TemplateError as e:
        logger.error(f"Template rendering error: {e}")
        raise
