from __future__ import annotations

import inspect
import weakref
from typing import (
    Any,
    Callable,
    Generic,
    Iterator,
    List,
    MutableSet,
    Optional,
    Type,
    TypeVar,
    Union,
    cast,
)

from typing_extensions import ParamSpec

__all__ = ["event", "Event"]

_TResult = TypeVar("_TResult")
_TParams = ParamSpec("_TParams")


class Event(Generic[_TParams, _TResult]):
    """A set of weakly referenced listeners.

    Calling the event calls every listener and returns the list of results. A
    listener that raises contributes its exception to the result list instead of
    interrupting the remaining listeners.
    """

    def __init__(self) -> None:
        self._listeners: MutableSet[weakref.ref[Any]] = set()

    def __remove_listener(self, ref: Any) -> None:
        self._listeners.discard(ref)

    def add(self, callback: Callable[_TParams, _TResult]) -> None:
        if inspect.ismethod(callback):
            self._listeners.add(weakref.WeakMethod(callback, self.__remove_listener))
        else:
            self._listeners.add(weakref.ref(callback, self.__remove_listener))

    def remove(self, callback: Callable[_TParams, _TResult]) -> None:
        if inspect.ismethod(callback):
            self._listeners.discard(weakref.WeakMethod(callback))
        else:
            self._listeners.discard(weakref.ref(callback))

    def __contains__(self, obj: Any) -> bool:
        if inspect.ismethod(obj):
            return weakref.WeakMethod(obj) in self._listeners

        return weakref.ref(obj) in self._listeners

    def __len__(self) -> int:
        return len(self._listeners)

    def __bool__(self) -> bool:
        return len(self._listeners) > 0

    def __iter__(self) -> Iterator[Callable[_TParams, _TResult]]:
        for r in list(self._listeners):
            c = r()
            if c is not None:
                yield c

    def __call__(self, *args: _TParams.args, **kwargs: _TParams.kwargs) -> List[Union[_TResult, BaseException]]:
        result: List[Union[_TResult, BaseException]] = []

        for method in list(self):
            try:
                result.append(method(*args, **kwargs))
            except (SystemExit, KeyboardInterrupt):
                raise
            except BaseException as e:
                result.append(e)

        return result


class event(Generic[_TParams, _TResult]):  # noqa: N801
    """Declares an `Event` per instance; the decorated function only documents the signature."""

    def __init__(self, _func: Callable[_TParams, _TResult]) -> None:
        self._func = _func
        self._owner: Optional[Any] = None

    def __set_name__(self, owner: Any, name: str) -> None:
        self._owner = owner

    def __get__(self, obj: Any, objtype: Type[Any]) -> Event[_TParams, _TResult]:
        if obj is None:
            return self  # type: ignore

        name = f"__event_{self._func.__name__}__"
        if name not in obj.__dict__:
            obj.__dict__[name] = Event()

        return cast("Event[_TParams, _TResult]", obj.__dict__[name])
