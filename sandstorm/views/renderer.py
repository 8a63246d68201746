"""
View Renderer - renders queued views with Jinja2.

Runs when a controller is finalized: every queued view is rendered in
order, with the view data, into the output buffer.
"""

import logging
from pathlib import Path
from typing import Any, Dict, Optional

from jinja2 import Environment, FileSystemLoader, select_autoescape

from ..faults import ViewMissingError, SystemFault
from ..output import OutputBuffer
from .state import ViewState


logger = logging.getLogger("sandstorm.views")

SCAFFOLD_EXTENSIONS = (".html", ".htm")

STARTER_PAGE = """<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="UTF-8">
<meta name="viewport" content="width=device-width, initial-scale=1.0">
<title>Welcome to the Sandstorm</title>
</head>
<body>
<h1>Hello, World!</h1>
</body>
</html>
"""


class ViewRenderer:
    """
    Jinja2 renderer rooted at the site directory.

    Args:
        site_root: Directory templates are loaded from
        dev_mode: Create starter pages for missing views
    """

    def __init__(self, site_root: Path, *, dev_mode: bool = False):
        self.site_root = Path(site_root)
        self.dev_mode = dev_mode
        self.env = Environment(
            loader=FileSystemLoader(str(self.site_root)),
            autoescape=select_autoescape(["html", "htm", "xml"]),
        )

    def resolve(self, page: str) -> Path:
        if not page:
            raise SystemFault(
                "VIEW_ADDRESS_MISSING",
                "Could not load the view because no address has been specified",
            )
        return self.site_root / page

    def scaffold(self, page: str) -> Optional[Path]:
        """Create a starter page (and its folders) for a missing view."""
        path = self.resolve(page)
        if path.exists():
            return None

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise SystemFault("VIEW_FOLDER_FAILED", f"Failed to create folder: {path.parent}") from e

        if path.suffix in SCAFFOLD_EXTENSIONS:
            path.write_text(STARTER_PAGE, encoding="utf-8")
            logger.info("Scaffolded view %s", path)
            return path
        return None

    def render_file(self, path: Path, data: Dict[str, Any]) -> str:
        """Render one template file."""
        path = Path(path)
        if not path.is_file():
            raise ViewMissingError(str(path))

        try:
            name = path.resolve().relative_to(self.site_root.resolve()).as_posix()
            template = self.env.get_template(name)
        except ValueError:
            template = self.env.from_string(path.read_text(encoding="utf-8"))
        return template.render({**data, "start": str(self.site_root)})

    def embed(self, page: str, data: Dict[str, Any]) -> str:
        """Render a page relative to the site root and return the text."""
        return self.render_file(self.resolve(page), data)

    def render(self, state: ViewState, output: OutputBuffer) -> int:
        """
        Render all queued views into the buffer.

        Nothing is written if any view fails.

        Returns:
            Number of views rendered

        Raises:
            ViewMissingError: A queued view does not exist
        """
        if not state:
            return 0

        data = state.data
        rendered = [self.render_file(path, data) for path in state.paths]
        for text in rendered:
            output.write(text)

        logger.debug("Rendered %d view(s)", len(rendered))
        return len(rendered)
