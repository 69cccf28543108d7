"""Lifecycle hook tables and the two-tier dispatcher.

Hooks are named callables attached to a lifecycle point. Every agent type owns a
type-scope table shared by all of its instances, and every agent instance owns an
instance-scope table. Dispatch walks the type-scope chain first and the
instance-scope chain second, each in registration order.

Pre-hooks are called as ``hook(agent, kwargs)`` and may return a replacement
argument mapping. Post-hooks are called as ``hook(agent, kwargs, output)`` and may
return a replacement output. Returning ``None`` keeps the current value. Hooks may
be plain functions or coroutine functions. A hook that raises is logged and skipped;
the chain continues with the last good value.
"""

import copy
import inspect
import logging
from dataclasses import dataclass
from enum import Enum
from typing import (
    Any,
    Awaitable,
    Callable,
    ClassVar,
    Dict,
    Iterable,
    Iterator,
    List,
    Optional,
    Tuple,
)

from reagent.domain.exceptions import HookRegistrationError

logger = logging.getLogger(__name__)

HookFunc = Callable[..., Any]


class LifecyclePoint(str, Enum):
    """Closed set of extension points an agent dispatches."""

    PRE_REPLY = "pre_reply"
    POST_REPLY = "post_reply"
    PRE_PRINT = "pre_print"
    POST_PRINT = "post_print"
    PRE_OBSERVE = "pre_observe"
    POST_OBSERVE = "post_observe"
    PRE_REASONING = "pre_reasoning"
    POST_REASONING = "post_reasoning"
    PRE_ACTING = "pre_acting"
    POST_ACTING = "post_acting"


BASE_POINTS: Tuple[LifecyclePoint, ...] = (
    LifecyclePoint.PRE_REPLY,
    LifecyclePoint.POST_REPLY,
    LifecyclePoint.PRE_PRINT,
    LifecyclePoint.POST_PRINT,
    LifecyclePoint.PRE_OBSERVE,
    LifecyclePoint.POST_OBSERVE,
)

REACT_POINTS: Tuple[LifecyclePoint, ...] = BASE_POINTS + (
    LifecyclePoint.PRE_REASONING,
    LifecyclePoint.POST_REASONING,
    LifecyclePoint.PRE_ACTING,
    LifecyclePoint.POST_ACTING,
)


@dataclass(frozen=True)
class HookEntry:
    """A named hook function attached to one lifecycle point."""

    name: str
    func: HookFunc


class HookTable:
    """Ordered hook chains keyed by lifecycle point.

    Args:
        points: Lifecycle points this table accepts.
    """

    def __init__(self, points: Iterable[LifecyclePoint]) -> None:
        self._chains: Dict[LifecyclePoint, Dict[str, HookFunc]] = {
            LifecyclePoint(point): {} for point in points
        }

    @property
    def points(self) -> Tuple[LifecyclePoint, ...]:
        """Lifecycle points accepted by this table."""

        return tuple(self._chains)

    def register(self, point: LifecyclePoint, name: str, func: HookFunc) -> None:
        """Attach a hook, replacing any hook with the same name in place.

        Raises:
            HookRegistrationError: If the point is not supported by this table.
        """

        self._chain(point)[name] = func

    def remove(self, point: LifecyclePoint, name: str) -> None:
        """Detach a hook by name.

        Raises:
            HookRegistrationError: If the point is unsupported or the name is absent.
        """

        chain = self._chain(point)
        if name not in chain:
            raise HookRegistrationError(
                f"Hook '{name}' is not registered on '{LifecyclePoint(point).value}'."
            )
        del chain[name]

    def clear(self, point: Optional[LifecyclePoint] = None) -> None:
        """Remove every hook on one point, or on all points when point is None."""

        if point is None:
            for chain in self._chains.values():
                chain.clear()
            return
        self._chain(point).clear()

    def entries(self, point: LifecyclePoint) -> List[HookEntry]:
        """Return a snapshot of the chain for a point in registration order."""

        chain = self._chains.get(LifecyclePoint(point), {})
        return [HookEntry(name=name, func=func) for name, func in chain.items()]

    def _chain(self, point: LifecyclePoint) -> Dict[str, HookFunc]:
        try:
            return self._chains[LifecyclePoint(point)]
        except (KeyError, ValueError):
            raise HookRegistrationError(
                f"Unsupported hook point: {getattr(point, 'value', point)}"
            ) from None


class Hookable:
    """Mixin that gives a class a type-scope hook table and its instances an
    instance-scope table, plus the fail-soft dispatcher.

    Subclasses declare the points they support through ``supported_hook_points``;
    each subclass receives its own, initially empty, type-scope table.
    """

    supported_hook_points: ClassVar[Tuple[LifecyclePoint, ...]] = BASE_POINTS
    _type_hooks: ClassVar[HookTable]

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        cls._type_hooks = HookTable(cls.supported_hook_points)

    def __init__(self) -> None:
        self._instance_hooks = HookTable(type(self).supported_hook_points)

    @classmethod
    def register_type_hook(
        cls, point: LifecyclePoint, name: str, func: HookFunc
    ) -> None:
        """Attach a hook shared by every instance of this exact type."""

        cls._type_hooks.register(point, name, func)
        logger.debug(
            "Registered type hook",
            extra={
                "agent_type": cls.__name__,
                "hook_point": LifecyclePoint(point).value,
                "hook_name": name,
            },
        )

    @classmethod
    def remove_type_hook(cls, point: LifecyclePoint, name: str) -> None:
        """Detach a type-scope hook by name."""

        cls._type_hooks.remove(point, name)

    @classmethod
    def clear_type_hooks(cls, point: Optional[LifecyclePoint] = None) -> None:
        """Remove type-scope hooks on one point or on every point."""

        cls._type_hooks.clear(point)

    def register_instance_hook(
        self, point: LifecyclePoint, name: str, func: HookFunc
    ) -> None:
        """Attach a hook to this instance only."""

        self._instance_hooks.register(point, name, func)
        logger.debug(
            "Registered instance hook",
            extra={
                "agent_type": type(self).__name__,
                "hook_point": LifecyclePoint(point).value,
                "hook_name": name,
            },
        )

    def remove_instance_hook(self, point: LifecyclePoint, name: str) -> None:
        """Detach an instance-scope hook by name."""

        self._instance_hooks.remove(point, name)

    def clear_instance_hooks(self, point: Optional[LifecyclePoint] = None) -> None:
        """Remove instance-scope hooks on one point or on every point."""

        self._instance_hooks.clear(point)

    def _iter_hooks(self, point: LifecyclePoint) -> Iterator[Tuple[str, HookEntry]]:
        for entry in type(self)._type_hooks.entries(point):
            yield "type", entry
        for entry in self._instance_hooks.entries(point):
            yield "instance", entry

    async def _dispatch_pre(
        self, point: LifecyclePoint, kwargs: Dict[str, Any]
    ) -> Dict[str, Any]:
        """Run the pre-hook chain for a point.

        Every hook works on its own copy of the current arguments; changes are
        adopted only when the hook returns without raising, either through its
        return value or by mutating the copy in place.

        Args:
            point: Lifecycle point being entered.
            kwargs: Arguments of the wrapped operation.

        Returns:
            The argument mapping produced by the last successful hook.
        """

        current = copy.deepcopy(kwargs)
        for scope, entry in self._iter_hooks(point):
            candidate = copy.deepcopy(current)
            ok, result = await self._call_hook(point, scope, entry, self, candidate)
            if not ok:
                continue
            if result is None:
                current = candidate
            elif isinstance(result, dict):
                current = result
            else:
                logger.warning(
                    "Pre-hook returned a non-mapping result; ignoring it",
                    extra=self._hook_log_context(point, scope, entry),
                )
        return current

    async def _dispatch_post(
        self, point: LifecyclePoint, kwargs: Dict[str, Any], output: Any
    ) -> Any:
        """Run the post-hook chain for a point over the operation output.

        Args:
            point: Lifecycle point being left.
            kwargs: Arguments the wrapped operation ran with.
            output: Output of the wrapped operation.

        Returns:
            The output produced by the last successful hook.
        """

        current = output
        for scope, entry in self._iter_hooks(point):
            candidate = copy.deepcopy(current)
            ok, result = await self._call_hook(
                point, scope, entry, self, copy.deepcopy(kwargs), candidate
            )
            if not ok:
                continue
            current = candidate if result is None else result
        return current

    async def _run_hooked(
        self,
        pre: LifecyclePoint,
        post: LifecyclePoint,
        func: Callable[..., Awaitable[Any]],
        kwargs: Dict[str, Any],
    ) -> Any:
        """Run ``func(**kwargs)`` between the pre and post chains of a point pair."""

        effective = await self._dispatch_pre(pre, kwargs)
        output = await func(**effective)
        return await self._dispatch_post(post, effective, output)

    async def _call_hook(
        self,
        point: LifecyclePoint,
        scope: str,
        entry: HookEntry,
        *args: Any,
    ) -> Tuple[bool, Any]:
        try:
            result = entry.func(*args)
            if inspect.isawaitable(result):
                result = await result
            return True, result
        except Exception:
            logger.exception(
                "Hook execution failed",
                extra=self._hook_log_context(point, scope, entry),
            )
            return False, None

    def _hook_log_context(
        self, point: LifecyclePoint, scope: str, entry: HookEntry
    ) -> Dict[str, Any]:
        return {
            "agent_type": type(self).__name__,
            "agent_name": getattr(self, "name", None),
            "hook_point": LifecyclePoint(point).value,
            "hook_scope": scope,
            "hook_name": entry.name,
        }


Hookable._type_hooks = HookTable(Hookable.supported_hook_points)
