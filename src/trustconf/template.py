import logging
import os
from typing import Optional

from jinja2 import Environment
from jinja2 import FileSystemLoader
from jinja2 import PackageLoader
from jinja2 import TemplateError
from jinja2 import select_autoescape

logger = logging.getLogger(__name__)


class TemplateService(object):
    """
    Renders and writes configuration files.

    :param template_dir: Directory with templates overriding the ones that comes with
        the package.
    """

    def __init__(self, template_dir: Optional[str] = None):
        if template_dir:
            loader = FileSystemLoader(template_dir)
        else:
            loader = PackageLoader("trustconf", "templates")

        self.env = Environment(loader=loader, autoescape=select_autoescape(["xml"]),
                               trim_blocks=True, lstrip_blocks=True,
                               keep_trailing_newline=True)

    def render(self, template_id: str, context: dict) -> Optional[str]:
        try:
            return self.env.get_template(template_id).render(**context)
        except TemplateError as err:
            logger.error(f"Failed to render {template_id}: {err}")
            return None

    def write(self, path: str, text: Optional[str]) -> bool:
        if text is None:
            return False

        try:
            os.makedirs(os.path.dirname(path), exist_ok=True)
            with open(path, "w") as fp:
                fp.write(text)
        except OSError as err:
            logger.error(f"Failed to write {path}: {err}")
            return False

        logger.debug(f"Wrote {path}")
        return True
