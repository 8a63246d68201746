"""
ViewState - request-scoped queue of views and their data.
"""

from pathlib import Path
from typing import Any, Dict, List


class ViewState:
    """
    Views queued by a controller during one request, plus the flat data
    set they are rendered with.
    """

    def __init__(self):
        self._paths: List[Path] = []
        self._data: Dict[str, Any] = {}

    def add_path(self, path: Path) -> None:
        self._paths.append(Path(path))

    def set(self, name: str, value: Any) -> None:
        self._data[name] = value

    @property
    def paths(self) -> List[Path]:
        return list(self._paths)

    @property
    def data(self) -> Dict[str, Any]:
        return dict(self._data)

    def __bool__(self) -> bool:
        return bool(self._paths)
