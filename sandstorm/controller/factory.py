"""
Controller Factory

Instantiates handler classes for one request and binds the dispatch
context to them.
"""

import inspect
from typing import Any, Dict, Type


class ControllerFactory:
    """
    Creates handler instances.

    Constructors that accept a ``ctx`` argument receive the dispatch
    context; every instance with a ``bind`` method is bound afterwards.
    """

    _ctor_accepts_ctx: Dict[Type, bool] = {}

    def create(self, controller_class: Type, ctx: Any) -> Any:
        if self._accepts_ctx(controller_class):
            instance = controller_class(ctx=ctx)
        else:
            instance = controller_class()

        bind = getattr(instance, "bind", None)
        if callable(bind):
            bind(ctx)
        return instance

    def _accepts_ctx(self, controller_class: Type) -> bool:
        cached = self._ctor_accepts_ctx.get(controller_class)
        if cached is not None:
            return cached

        try:
            params = inspect.signature(controller_class).parameters
        except (TypeError, ValueError):
            params = {}

        accepts = "ctx" in params or any(
            p.kind is inspect.Parameter.VAR_KEYWORD for p in params.values()
        )
        self._ctor_accepts_ctx[controller_class] = accepts
        return accepts
