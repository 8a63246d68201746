"""
Route Registry / Generator - persisted rewrite rules (dev-mode tooling).

Each route an action declares is compiled with the same compiler the
dispatcher uses live and persisted as one line of a rewrite-rule file::

    RewriteRule "^user/([0-9]{1,11})/profile$" - [E=CONTROLLER:user/user.py|user|profile,L]

A reverse proxy (or ``RuleFile.lookup``) matches the request path against
the rules and installs the directive on a hit.
"""

import logging
import os
import re
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from .config import Settings
from .controller.decorators import ActionRecord, iter_actions
from .faults import ResolutionError
from .patterns import PatternCache, normalize_path
from .resolver import ClassResolver


logger = logging.getLogger("sandstorm.rules")

_RULE_RE = re.compile(
    r'^RewriteRule\s+"(?P<regex>(?:[^"\\]|\\.)*)"\s+-\s+'
    r'\[E=CONTROLLER:(?P<directive>[^,\]]*)(?:,[^\]]*)?\]\s*$'
)

_append_lock = threading.Lock()


@dataclass(frozen=True)
class RewriteRule:
    """An anchored pattern and the directive installed when it matches."""
    regex: str
    directive: str

    def to_line(self) -> str:
        escaped = self.regex.replace('"', '\\"')
        return f'RewriteRule "{escaped}" - [E=CONTROLLER:{self.directive},L]'

    @classmethod
    def from_line(cls, line: str) -> Optional["RewriteRule"]:
        match = _RULE_RE.match(line.strip())
        if match is None:
            return None
        return cls(
            regex=match.group("regex").replace('\\"', '"'),
            directive=match.group("directive"),
        )

    def matches(self, path: str) -> bool:
        return re.match(self.regex, normalize_path(path)) is not None


class RuleFile:
    """
    Append-only rule file.

    Appends write one whole line per ``os.write`` on an ``O_APPEND``
    descriptor, so concurrent writers never interleave within a line.
    Appending a rule that is already present is a no-op.
    """

    def __init__(self, path: Path):
        self.path = Path(path)

    def load(self) -> List[RewriteRule]:
        if not self.path.is_file():
            return []

        rules = []
        for number, line in enumerate(self.path.read_text(encoding="utf-8").splitlines(), 1):
            if not line.strip() or line.lstrip().startswith("#"):
                continue
            rule = RewriteRule.from_line(line)
            if rule is None:
                logger.warning("Skipping unreadable rule at %s:%d", self.path, number)
                continue
            rules.append(rule)
        return rules

    def __contains__(self, rule: RewriteRule) -> bool:
        return rule in self.load()

    def append(self, rule: RewriteRule) -> bool:
        """Append a rule. Returns False when it was already present."""
        with _append_lock:
            if rule in self:
                return False

            self.path.parent.mkdir(parents=True, exist_ok=True)
            data = (rule.to_line() + "\n").encode("utf-8")
            fd = os.open(self.path, os.O_WRONLY | os.O_APPEND | os.O_CREAT, 0o644)
            try:
                os.write(fd, data)
            finally:
                os.close(fd)

        logger.info("Added rewrite rule %s", rule.to_line())
        return True

    def lookup(self, path: str) -> Optional[str]:
        """Directive of the first rule matching ``path``."""
        for rule in self.load():
            if rule.matches(path):
                return rule.directive
        return None


CONTROLLER_TEMPLATE = '''"""
{class_name} - generated in dev-mode.
"""

from sandstorm import Controller


class {class_name}(Controller):

    def {action}(self, *args):
        self.echo("{class_name}.{action}")
'''


class RouteGenerator:
    """
    Builds rewrite rules from the routes declared by site controllers.

    Example:
        generator = RouteGenerator(settings, resolver)
        added = generator.apply_rules()
    """

    def __init__(
        self,
        settings: Settings,
        resolver: ClassResolver,
        cache: Optional[PatternCache] = None,
    ):
        self.settings = settings
        self.resolver = resolver
        self.cache = cache or PatternCache()
        self.rule_file = RuleFile(Path(settings.rule_file)) if settings.rule_file else None

    def rule_for(self, group: str, handler: str, record: ActionRecord) -> RewriteRule:
        """Rewrite rule equivalent to the live compiled rule of an action."""
        compiled = self.cache.compile(record.expression)
        return RewriteRule(
            regex=compiled.regex,
            directive=f"{group}|{handler}|{record.target}",
        )

    def discover(self) -> List[RewriteRule]:
        """Rules for every routed action of every controller under the site root."""
        site_root = Path(self.settings.site_root)
        if not site_root.is_dir():
            return []

        suffix = self.settings.controller_suffix.lower()
        rules = []

        for path in sorted(site_root.rglob("*" + self.settings.extension)):
            module = self.resolver.load_file(path)
            group = path.relative_to(site_root).as_posix()

            for name, value in vars(module).items():
                if not isinstance(value, type) or value.__module__ != module.__name__:
                    continue
                if not name.lower().endswith(suffix) or len(name) == len(suffix):
                    continue

                handler = name[:-len(suffix)].lower()
                for record in iter_actions(value):
                    rules.append(self.rule_for(group, handler, record))
        return rules

    def apply_rules(self) -> List[RewriteRule]:
        """Append every discovered rule missing from the rule file."""
        if self.rule_file is None:
            logger.debug("No rule file configured, skipping rule generation")
            return []

        added = [rule for rule in self.discover() if self.rule_file.append(rule)]
        if added:
            logger.info("Generated %d rewrite rule(s) in %s", len(added), self.rule_file.path)
        return added

    def ensure(self, path: str) -> Optional[str]:
        """Directive for ``path``, generating rules first when none matches yet."""
        if self.rule_file is None:
            return None

        directive = self.rule_file.lookup(path)
        if directive is None:
            self.apply_rules()
            directive = self.rule_file.lookup(path)
        return directive

    def scaffold(self, group: str, handler: str, action: str) -> Optional[Path]:
        """Create a starter controller file for a missing group."""
        target = self.target_path(group)
        if target.exists():
            return None

        class_name = handler[:1].upper() + handler[1:] + self.settings.controller_suffix
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(
            CONTROLLER_TEMPLATE.format(class_name=class_name, action=action),
            encoding="utf-8",
        )
        logger.info("Scaffolded controller %s in %s", class_name, target)
        return target

    def target_path(self, group: str) -> Path:
        """
        Site file for a handler group; the extension is added when missing.

        Raises:
            ResolutionError: The group points outside the site root
        """
        root = Path(self.settings.site_root)
        path = root / group
        base, resolved = root.resolve(), path.resolve()
        if resolved != base and base not in resolved.parents:
            raise ResolutionError(group, reason=f"Handler group '{group}' is outside the site root")
        if group and not path.suffix:
            path = path.with_suffix(self.settings.extension)
        return path
