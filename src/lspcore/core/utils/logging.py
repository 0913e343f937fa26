from __future__ import annotations

import functools
import inspect
import logging
import os
import reprlib
from typing import (
    Any,
    Callable,
    ClassVar,
    List,
    Mapping,
    NamedTuple,
    Optional,
    Type,
    TypeVar,
    Union,
    cast,
    overload,
)

__all__ = ["LoggingDescriptor", "TRACE"]

TRACE = logging.DEBUG - 6
logging.addLevelName(TRACE, "TRACE")

_repr_instance = reprlib.Repr()
_repr_instance.maxother = 100
_repr_instance.maxstring = 100


def _repr(o: Any) -> str:
    return _repr_instance.repr(o)


def _env_flag(name: str) -> bool:
    return name in os.environ and os.environ[name] not in ("", "0")


class _CallEntry(NamedTuple):
    level: int
    prefix: str
    entering: bool
    exiting: bool
    exception: bool


_F = TypeVar("_F", bound=Callable[..., Any])

_MessageType = Union[str, Callable[[], str]]


class LoggerError(Exception):
    pass


class LoggingDescriptor:
    """Lazily creates a `logging.Logger` named after the class it is assigned to.

    Use it as a class attribute, `__logger = LoggingDescriptor()`. Messages can be
    given as callables, which are only evaluated if the level is enabled.
    """

    _call_tracing_enabled: ClassVar[bool] = _env_flag("LSPCORE_CALL_TRACING_ENABLED")
    _call_tracing_default_level: ClassVar[int] = TRACE

    def __init__(
        self,
        *,
        name: Optional[str] = None,
        postfix: str = "",
        level: int = logging.NOTSET,
    ) -> None:
        self.__name = name
        self.__postfix = postfix
        self.__level = level
        self.__owner: Optional[Type[Any]] = None
        self.__logger: Optional[logging.Logger] = None

    def __set_name__(self, owner: Type[Any], name: str) -> None:
        self.__owner = owner

    def __get__(self, obj: Any, objtype: Type[Any]) -> LoggingDescriptor:
        return self

    @property
    def logger(self) -> logging.Logger:
        if self.__logger is None:
            if self.__name is not None:
                name = self.__name
            elif self.__owner is not None:
                name = self.__owner.__module__ + "." + self.__owner.__qualname__
            else:
                raise LoggerError("Can't determine a logger name for an unbound LoggingDescriptor")

            self.__logger = logging.getLogger(name + self.__postfix)
            if self.__level != logging.NOTSET:
                self.__logger.setLevel(self.__level)

        return self.__logger

    @property
    def name(self) -> str:
        return self.logger.name

    def is_enabled_for(self, level: int) -> bool:
        return self.logger.isEnabledFor(level)

    def log(
        self,
        level: int,
        msg: Any,
        condition: Optional[Callable[[], bool]] = None,
        *args: Any,
        stacklevel: int = 2,
        extra: Optional[Mapping[str, object]] = None,
        **kwargs: Any,
    ) -> None:
        if not self.is_enabled_for(level):
            return
        if condition is not None and not condition():
            return

        self.logger.log(
            level,
            msg() if callable(msg) else msg,
            *args,
            stacklevel=stacklevel,
            extra=extra,
            **kwargs,
        )

    def trace(self, msg: _MessageType, condition: Optional[Callable[[], bool]] = None, **kwargs: Any) -> None:
        self.log(TRACE, msg, condition, stacklevel=3, **kwargs)

    def debug(self, msg: _MessageType, condition: Optional[Callable[[], bool]] = None, **kwargs: Any) -> None:
        self.log(logging.DEBUG, msg, condition, stacklevel=3, **kwargs)

    def info(self, msg: _MessageType, condition: Optional[Callable[[], bool]] = None, **kwargs: Any) -> None:
        self.log(logging.INFO, msg, condition, stacklevel=3, **kwargs)

    def warning(self, msg: _MessageType, condition: Optional[Callable[[], bool]] = None, **kwargs: Any) -> None:
        self.log(logging.WARNING, msg, condition, stacklevel=3, **kwargs)

    def error(self, msg: _MessageType, condition: Optional[Callable[[], bool]] = None, **kwargs: Any) -> None:
        self.log(logging.ERROR, msg, condition, stacklevel=3, **kwargs)

    def critical(self, msg: _MessageType, condition: Optional[Callable[[], bool]] = None, **kwargs: Any) -> None:
        self.log(logging.CRITICAL, msg, condition, stacklevel=3, **kwargs)

    def exception(
        self,
        msg: Union[BaseException, _MessageType],
        condition: Optional[Callable[[], bool]] = None,
        exc_info: Any = True,
        *,
        level: Optional[int] = None,
        **kwargs: Any,
    ) -> None:
        if isinstance(msg, BaseException):
            text = type(msg).__qualname__
            if str(msg):
                text += ": " + str(msg)
            msg = text

        self.log(
            logging.ERROR if level is None else level,
            msg,
            condition,
            exc_info=exc_info,
            stacklevel=3,
            **kwargs,
        )

    def __repr__(self) -> str:
        logger = self.logger
        level = logging.getLevelName(logger.getEffectiveLevel())
        return f"{type(self).__name__}(name={logger.name!r}, level={level!r})"

    @classmethod
    def set_call_tracing(cls, value: bool) -> None:
        cls._call_tracing_enabled = value

    @classmethod
    def set_call_tracing_default_level(cls, level: int) -> None:
        cls._call_tracing_default_level = level

    @overload
    def call(self, _func: _F) -> _F: ...

    @overload
    def call(
        self,
        *,
        level: Optional[int] = None,
        prefix: str = "",
        entering: bool = True,
        exiting: bool = False,
        exception: bool = False,
    ) -> Callable[[_F], _F]: ...

    def call(
        self,
        _func: Optional[_F] = None,
        *,
        level: Optional[int] = None,
        prefix: str = "",
        entering: bool = True,
        exiting: bool = False,
        exception: bool = False,
    ) -> Any:
        """Logs calls of the decorated function while call tracing is enabled."""

        def _decorator(func: _F) -> _F:
            entry = _CallEntry(
                level=type(self)._call_tracing_default_level if level is None else level,
                prefix=prefix,
                entering=entering,
                exiting=exiting,
                exception=exception,
            )
            unwrapped = inspect.unwrap(func)
            skip_self = "." in unwrapped.__qualname__.split(".<locals>.")[-1]

            @functools.wraps(func)
            def _wrapper(*args: Any, **kwargs: Any) -> Any:
                if not type(self)._call_tracing_enabled:
                    return func(*args, **kwargs)

                name = unwrapped.__qualname__

                if entry.entering:
                    message_args: List[str] = [_repr(a) for a in (args[1:] if skip_self else args)]
                    message_args.extend(f"{k!s}={_repr(v)}" for k, v in kwargs.items())
                    self.log(entry.level, lambda: f"{entry.prefix}{name}({', '.join(message_args)})", stacklevel=3)

                try:
                    result = func(*args, **kwargs)
                except BaseException as e:
                    if entry.exception:
                        self.log(
                            logging.ERROR,
                            lambda: f"{entry.prefix}{name}(...) -> {type(e).__qualname__}: {e}",
                            exc_info=True,
                            stacklevel=3,
                        )
                    raise

                if entry.exiting:
                    self.log(entry.level, lambda: f"{entry.prefix}{name}(...) -> {_repr(result)}", stacklevel=3)

                return result

            return cast(_F, _wrapper)

        if _func is None:
            return _decorator

        return _decorator(_func)
