"""
Class Resolver - on-demand loading of definitions by symbolic name.

Resolution order for a name (first hit wins):

1. Explicit registrations (``resolver.register(name, obj)``)
2. Namespaced names (``shop.Cart`` or ``shop\\Cart``) map to
   ``<app_root>/app/shop/Cart.py``
3. Plain names try ``<library_root>/<Name>.py``, then ``<system_root>/<Name>.py``
4. Framework helper names import from their package (``Controller`` ...)

Every successful resolution is recorded once in the ``HandlerRegistry``.
A name already recorded is returned from the registry without reloading.
"""

import importlib
import importlib.util
import logging
import re
import sys
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from types import ModuleType
from typing import Any, Dict, List, Optional

from .config import Settings
from .faults import ResolutionError


logger = logging.getLogger("sandstorm.resolver")

NAMESPACE_SEPARATORS = ("\\", ".")


@dataclass(frozen=True)
class HandlerRegistration:
    """A resolved name, where it came from and when it was first seen."""
    name: str
    path: str
    kind: str
    timestamp: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "path": self.path,
            "kind": self.kind,
            "timestamp": self.timestamp,
        }


class HandlerRegistry:
    """
    Append-only registry of resolved names.

    Entries are never mutated or removed. Inserts are serialized.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._entries: Dict[str, HandlerRegistration] = {}
        self._objects: Dict[str, Any] = {}

    def record(self, name: str, path: str, kind: str, obj: Any = None) -> HandlerRegistration:
        """Insert an entry unless the name is already present; returns the stored entry."""
        with self._lock:
            existing = self._entries.get(name)
            if existing is not None:
                return existing

            entry = HandlerRegistration(
                name=name,
                path=str(path),
                kind=kind,
                timestamp=time.monotonic(),
            )
            self._entries[name] = entry
            if obj is not None:
                self._objects[name] = obj
            return entry

    def get(self, name: str) -> Optional[HandlerRegistration]:
        return self._entries.get(name)

    def get_object(self, name: str) -> Any:
        return self._objects.get(name)

    def snapshot(self) -> Dict[str, HandlerRegistration]:
        """Copy of all entries, in insertion order."""
        with self._lock:
            return dict(self._entries)

    def __contains__(self, name: str) -> bool:
        return name in self._entries

    def __len__(self) -> int:
        return len(self._entries)


class ClassResolver:
    """
    Resolves symbolic names to loaded definitions, at most once per name.

    Example:
        resolver = ClassResolver(settings)
        Cart = resolver.resolve("shop.Cart")
        module = resolver.load_file(settings.site_root / "blog/blog.py")
    """

    def __init__(self, settings: Settings, registry: Optional[HandlerRegistry] = None):
        self.settings = settings
        self.registry = registry or HandlerRegistry()
        self._load_lock = threading.RLock()
        self._modules: Dict[str, ModuleType] = {}
        self.load_count = 0

    # ------------------------------------------------------------------
    # Names
    # ------------------------------------------------------------------

    def register(self, name: str, obj: Any, path: str = "<registered>") -> HandlerRegistration:
        """Register a definition explicitly under ``name``."""
        return self.registry.record(name, path, "registered", obj)

    def resolve(self, name: str) -> Any:
        """
        Return the definition for ``name``, loading it on first use.

        Raises:
            ResolutionError: No candidate location holds the definition
        """
        obj = self.registry.get_object(name)
        if obj is not None:
            return obj

        with self._load_lock:
            obj = self.registry.get_object(name)
            if obj is not None:
                return obj

            obj, path, kind = self._locate(name)
            self.registry.record(name, path, kind, obj)
            logger.debug("Resolved %s from %s (%s)", name, path, kind)
            return obj

    def candidates(self, name: str) -> List[Path]:
        """Candidate files for a name, in resolution order."""
        ext = self.settings.extension
        if any(sep in name for sep in NAMESPACE_SEPARATORS):
            parts = re.split(r"[\\.]", name.strip("\\."))
            return [Path(self.settings.app_root, "app", *parts[:-1], parts[-1] + ext)]

        return [
            Path(self.settings.library_root, name + ext),
            Path(self.settings.system_root, name + ext),
        ]

    def _locate(self, name: str):
        attempted: Optional[Path] = None
        short_name = re.split(r"[\\.]", name.strip("\\."))[-1]

        for path in self.candidates(name):
            attempted = path
            if not path.is_file():
                continue
            module = self._load_module(path)
            if not hasattr(module, short_name):
                raise ResolutionError(name, str(path))
            return getattr(module, short_name), str(path), self._kind_of(path)

        is_namespaced = any(sep in name for sep in NAMESPACE_SEPARATORS)
        if not is_namespaced and name in self.settings.helpers:
            module = importlib.import_module(self.settings.helpers[name])
            if not hasattr(module, name):
                raise ResolutionError(name, module.__file__)
            return getattr(module, name), module.__file__ or self.settings.helpers[name], "helper"

        raise ResolutionError(
            name,
            str(attempted) if attempted else None,
            reason=f"Could not find file {attempted} for '{name}'",
        )

    def _kind_of(self, path: Path) -> str:
        if path.parent == Path(self.settings.library_root):
            return "library"
        if path.parent == Path(self.settings.system_root):
            return "system"
        return "app"

    # ------------------------------------------------------------------
    # Files
    # ------------------------------------------------------------------

    def load_file(self, path: Path, kind: str = "site") -> ModuleType:
        """
        Execute a source file once and return its module.

        Raises:
            ResolutionError: The file does not exist
        """
        path = Path(path)
        if not path.is_file():
            raise ResolutionError(path.stem, str(path), reason=f"Could not find file {path}")

        module = self._load_module(path)
        self.registry.record(str(path), str(path), kind)
        return module

    def _load_module(self, path: Path) -> ModuleType:
        key = str(path.resolve())

        with self._load_lock:
            module = self._modules.get(key)
            if module is not None:
                return module

            module_name = "sandstorm_loaded_" + re.sub(r"\W", "_", key)
            spec = importlib.util.spec_from_file_location(module_name, path)
            if spec is None or spec.loader is None:
                raise ResolutionError(path.stem, str(path), reason=f"Cannot load {path}")

            module = importlib.util.module_from_spec(spec)
            sys.modules[module_name] = module
            try:
                spec.loader.exec_module(module)
            except BaseException:
                sys.modules.pop(module_name, None)
                raise

            self._modules[key] = module
            self.load_count += 1
            logger.debug("Loaded %s", path)
            return module

    @staticmethod
    def find_class(module: ModuleType, class_name: str) -> Optional[type]:
        """Find a class in a module by name, ignoring case."""
        exact = getattr(module, class_name, None)
        if isinstance(exact, type):
            return exact

        wanted = class_name.lower()
        for attr, value in vars(module).items():
            if attr.lower() == wanted and isinstance(value, type):
                return value
        return None
