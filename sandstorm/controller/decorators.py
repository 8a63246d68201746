"""
Controller Action Decorators

Attach a route expression to a controller method without import-time
side effects. The dispatcher reads the metadata back when the action is
selected; nothing parses docstrings.
"""

from dataclasses import dataclass
from typing import Any, Callable, List, Optional, TypeVar
import inspect

from ..patterns import parse_annotation
from ..patterns.grammar import ANNOTATION_TAG, ANNOTATION_SEPARATOR


F = TypeVar('F', bound=Callable[..., Any])


@dataclass(frozen=True)
class ActionRecord:
    """
    A named action and its declared route expression.

    ``expression`` is None when the action declares no route.
    ``target`` is the action named by the annotation form, defaulting to
    the method name.
    """
    name: str
    expression: Optional[str]
    target: str


def route(expression: str) -> Callable[[F], F]:
    """
    Declare the route expression of an action.

    Example:
        class UserController(Controller):

            @route("user/{number(1-11):id}/profile")
            def profile(self, id):
                ...

            @route("@router blog/{string:slug} -> show")
            def show(self, slug):
                ...

    An annotation-form string without ``->`` declares no route.
    """
    def decorator(func: F) -> F:
        text = expression.strip()
        target = func.__name__

        if text.startswith(ANNOTATION_TAG) or ANNOTATION_SEPARATOR in text:
            annotation = parse_annotation(text)
            if annotation is None:
                declared = None
            else:
                declared, target = annotation.expression, annotation.target or target
        else:
            declared = text

        func.__route_metadata__ = ActionRecord(
            name=func.__name__,
            expression=declared,
            target=target,
        )
        return func

    return decorator


def get_action_record(handler: Any, action: str) -> Optional[ActionRecord]:
    """Route metadata of ``handler.action``, if declared."""
    method = getattr(handler, action, None)
    if method is None:
        return None
    func = getattr(method, "__func__", method)
    return getattr(func, "__route_metadata__", None)


def iter_actions(controller_class: type) -> List[ActionRecord]:
    """All actions of a class that declare a route, in definition order."""
    records = []
    seen = set()
    for klass in reversed(controller_class.__mro__):
        for name, member in vars(klass).items():
            if not inspect.isfunction(member):
                continue
            record = getattr(member, "__route_metadata__", None)
            if record is None or record.expression is None:
                continue
            if name in seen:
                records = [r for r in records if r.name != name]
            seen.add(name)
            records.append(record)
    return records
