"""
Output buffer.

Everything a request writes is held here until the entry point flushes it,
once, after the handler has been finalized.
"""

import io
import json
from typing import Any, Dict, List, Optional, Tuple


class OutputBuffer:
    """
    Buffered response body plus status and headers.

    ``headers_sent`` becomes True after the first flush; header changes
    after that point are ignored.
    """

    def __init__(self):
        self._body = io.StringIO()
        self._raw: List[bytes] = []
        self.status: int = 200
        self._headers: Dict[str, Tuple[str, str]] = {}
        self.headers_sent = False
        self.flush_count = 0

    # ------------------------------------------------------------------
    # Body
    # ------------------------------------------------------------------

    def write(self, data: Any) -> None:
        if isinstance(data, (bytes, bytearray)):
            self._drain_text()
            self._raw.append(bytes(data))
        else:
            self._body.write(str(data))

    def write_json(self, data: Any) -> None:
        self.set_header("Content-Type", "application/json; charset=utf-8")
        self.write(json.dumps(data))

    def _drain_text(self) -> None:
        text = self._body.getvalue()
        if text:
            self._raw.append(text.encode("utf-8"))
            self._body = io.StringIO()

    def getvalue(self) -> bytes:
        """Buffered body so far, without clearing it."""
        self._drain_text()
        return b"".join(self._raw)

    def clear(self) -> None:
        self._body = io.StringIO()
        self._raw = []

    def flush(self) -> bytes:
        """Return and clear the buffered body; marks headers as sent."""
        data = self.getvalue()
        self.clear()
        self.headers_sent = True
        self.flush_count += 1
        return data

    # ------------------------------------------------------------------
    # Headers
    # ------------------------------------------------------------------

    def set_header(self, name: str, value: str, replace: bool = True) -> bool:
        """Set a header. Returns False when headers were already sent."""
        if self.headers_sent:
            return False
        key = name.lower()
        if replace or key not in self._headers:
            self._headers[key] = (name, str(value))
        return True

    def get_header(self, name: str) -> Optional[str]:
        entry = self._headers.get(name.lower())
        return entry[1] if entry else None

    def set_status(self, status: int) -> bool:
        if self.headers_sent:
            return False
        self.status = status
        return True

    @property
    def headers(self) -> List[Tuple[str, str]]:
        return list(self._headers.values())
