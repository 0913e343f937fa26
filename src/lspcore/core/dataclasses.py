import dataclasses
import enum
import functools
import inspect
import json
import re
from typing import (
    Any,
    Callable,
    Dict,
    Iterable,
    List,
    Literal,
    Mapping,
    Optional,
    Sequence,
    Set,
    Tuple,
    Type,
    TypeVar,
    Union,
    cast,
    get_args,
    get_origin,
    get_type_hints,
)

__all__ = [
    "to_snake_case",
    "to_camel_case",
    "as_dict",
    "as_json",
    "from_dict",
    "from_json",
    "CamelSnakeMixin",
]

_T = TypeVar("_T")

NONETYPE = type(None)

_RE_SNAKE_CASE_1 = re.compile(r"[\-\.\s]")
_RE_SNAKE_CASE_2 = re.compile(r"[A-Z]")


@functools.lru_cache(maxsize=None)
def to_snake_case(s: str) -> str:
    s = _RE_SNAKE_CASE_1.sub("_", s)
    if not s:
        return s
    return s[0].lower() + _RE_SNAKE_CASE_2.sub(lambda matched: "_" + matched.group(0).lower(), s[1:])


_RE_CAMEL_CASE_1 = re.compile(r"^[\-_\.]")
_RE_CAMEL_CASE_2 = re.compile(r"[\-_\.\s]([a-z])")


@functools.lru_cache(maxsize=None)
def to_camel_case(s: str) -> str:
    s = _RE_CAMEL_CASE_1.sub("", s)
    if not s:
        return s
    return s[0].lower() + _RE_CAMEL_CASE_2.sub(lambda matched: str(matched.group(1)).upper(), s[1:])


class CamelSnakeMixin:
    """Field names are snake_case in Python and camelCase on the wire."""

    @classmethod
    def _encode_case(cls, s: str) -> str:
        return to_camel_case(s)

    @classmethod
    def _decode_case(cls, s: str) -> str:
        return to_snake_case(s)


@functools.lru_cache(maxsize=None)
def _fields(t: Type[Any]) -> Tuple["dataclasses.Field[Any]", ...]:
    return dataclasses.fields(t)


@functools.lru_cache(maxsize=None)
def _type_hints(t: Type[Any]) -> Dict[str, Any]:
    return get_type_hints(t)


@functools.lru_cache(maxsize=None)
def _signature(t: Type[Any]) -> inspect.Signature:
    return inspect.signature(t)


def _encode_field_name(t: Type[Any], field: "dataclasses.Field[Any]") -> str:
    alias = field.metadata.get("alias", None)
    if alias:
        return str(alias)
    if hasattr(t, "_encode_case"):
        return str(t._encode_case(field.name))
    return field.name


def _decode_member_name(t: Type[Any], name: str) -> str:
    if dataclasses.is_dataclass(t):
        for f in _fields(t):
            if f.metadata.get("alias", None) == name:
                return f.name
    if hasattr(t, "_decode_case"):
        return str(t._decode_case(name))
    return name


def _skip_field(field: "dataclasses.Field[Any]", value: Any) -> bool:
    # optional members are left out instead of being sent as `null`
    if not (field.init or field.metadata.get("force_json", False)):
        return True
    if field.metadata.get("nosave", False):
        return True
    return value is None and (
        field.default is not dataclasses.MISSING or field.default_factory is not dataclasses.MISSING
    )


def _as_dict_inner(value: Any) -> Any:
    if value is None or isinstance(value, (bool, int, float, str)) and not isinstance(value, enum.Enum):
        return value

    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        t = type(value)
        return {
            _encode_field_name(t, f): _as_dict_inner(getattr(value, f.name))
            for f in _fields(t)
            if not _skip_field(f, getattr(value, f.name))
        }

    if isinstance(value, enum.Enum):
        return _as_dict_inner(value.value)

    if isinstance(value, Mapping):
        return {str(k): _as_dict_inner(v) for k, v in value.items()}

    if isinstance(value, (list, tuple, set, frozenset)):
        return [_as_dict_inner(v) for v in value]

    raise TypeError(f"Can't convert type {type(value)} with value {value!r}")


def as_dict(value: Any) -> Any:
    """Converts dataclasses, enums and containers to plain JSON compatible values."""
    return _as_dict_inner(value)


def as_json(value: Any, indent: Optional[bool] = None, compact: Optional[bool] = None) -> str:
    return json.dumps(
        _as_dict_inner(value),
        indent=4 if indent else None,
        separators=(",", ":") if compact else None,
    )


class NamedTypeError(TypeError):
    def __init__(self, name: str, message: str) -> None:
        super().__init__(f'Invalid value for "{name}": {message}')
        self.name = name
        self.message = message


def _from_dict_with_name(name: str, value: Any, types: Any, strict: bool) -> Any:
    try:
        return from_dict(value, types, strict=strict)
    except NamedTypeError as e:
        raise NamedTypeError(name + "." + e.name, e.message) from e
    except TypeError as e:
        raise NamedTypeError(name, str(e)) from e


def _is_subclass(t: Any, base: Type[Any]) -> bool:
    return inspect.isclass(t) and issubclass(t, base)


def _handle_basic_types(value: Any, t: Type[Any], strict: bool) -> Tuple[Any, bool]:
    # bool is a subclass of int but is never a valid int value on the wire
    if isinstance(value, t) and not (t is int and isinstance(value, bool)):
        return value, True
    if t is float and isinstance(value, int) and not isinstance(value, bool):
        return float(value), True
    return None, False


def _handle_union(value: Any, t: Type[Any], strict: bool) -> Tuple[Any, bool]:
    return from_dict(value, get_args(t), strict=strict), True


def _handle_literal(value: Any, t: Type[Any], strict: bool) -> Tuple[Any, bool]:
    if value in get_args(t):
        return value, True
    return None, False


def _handle_enum(value: Any, t: Type[Any], strict: bool) -> Tuple[Any, bool]:
    for v in cast(Iterable[Any], t):
        if v.value == value:
            return v, True
    return None, False


def _handle_sequence(value: Any, t: Type[Any], strict: bool) -> Tuple[Any, bool]:
    if isinstance(value, Sequence) and not isinstance(value, str):
        args = get_args(t)
        origin = get_origin(t) or t
        if origin is Sequence:
            origin = list
        return origin(from_dict(v, args, strict=strict) for v in value), True
    return None, False


def _handle_mapping(value: Any, t: Type[Any], strict: bool) -> Tuple[Any, bool]:
    if isinstance(value, Mapping):
        args = get_args(t)
        return {n: _from_dict_with_name(n, v, args[1] if args else None, strict) for n, v in value.items()}, True
    return None, False


_HANDLERS: List[Tuple[Callable[[Any], bool], Callable[[Any, Type[Any], bool], Tuple[Any, bool]]]] = [
    (lambda t: t in {int, bool, float, str, NONETYPE}, _handle_basic_types),
    (lambda t: get_origin(t) is Union, _handle_union),
    (lambda t: get_origin(t) is Literal, _handle_literal),
    (lambda t: _is_subclass(get_origin(t) or t, enum.Enum), _handle_enum),
    (lambda t: _is_subclass(get_origin(t) or t, Mapping), _handle_mapping),
    (lambda t: _is_subclass(get_origin(t) or t, Sequence) and t is not str, _handle_sequence),
    (lambda t: t is Any, lambda v, _t, _s: (v, True)),
]


def _find_handler(t: Any) -> Optional[Callable[[Any, Type[Any], bool], Tuple[Any, bool]]]:
    for predicate, handler in _HANDLERS:
        if predicate(t):
            return handler
    return None


def _type_name(t: Any) -> str:
    if t is NONETYPE:
        return "None"
    if get_origin(t) is Literal:
        return repr(t).replace("typing.", "")
    return getattr(t, "__name__", None) or str(t)


def from_dict(
    value: Any,
    types: Union[Type[_T], Tuple[Type[_T], ...], None] = None,
    /,
    *,
    strict: bool = False,
) -> _T:
    """Converts a plain JSON value into instances of `types`.

    For dataclasses the candidate whose parameters match the most keys of the
    given mapping wins; a tie between candidates is an error.
    """
    if types is None:
        return cast(_T, value)

    if not isinstance(types, tuple):
        types = (types,)
    if not types:
        return cast(_T, value)

    for t in types:
        handler = _find_handler(t)
        if handler is None:
            continue

        r, ok = handler(value, t, strict)
        if ok:
            return cast(_T, r)

    if isinstance(value, Mapping):
        match_: Optional[Type[Any]] = None
        match_keys: Optional[Set[str]] = None
        match_value: Dict[str, Any] = {}

        for t in types:
            if not dataclasses.is_dataclass(t):
                continue

            cased_value = {_decode_member_name(t, k): v for k, v in value.items()}
            signature = _signature(t)
            parameters = set(signature.parameters.keys())
            required = {k for k, p in signature.parameters.items() if p.default is inspect.Parameter.empty}

            if strict and any(k not in parameters for k in cased_value.keys()):
                continue

            same_keys = cased_value.keys() & parameters
            if not required <= same_keys:
                continue

            if match_keys is None or len(match_keys) < len(same_keys):
                match_, match_keys, match_value = t, same_keys, cased_value
            elif len(match_keys) == len(same_keys):
                raise TypeError(
                    f"Value {value!r} matches to more then one types of "
                    f"{' | '.join(repr(_type_name(e)) for e in types)}."
                )

        if match_ is not None and match_keys is not None:
            hints = _type_hints(match_)
            params = {k: _from_dict_with_name(k, match_value[k], hints[k], strict) for k in match_keys if k in hints}
            try:
                return cast(_T, match_(**params))
            except TypeError as ex:
                raise TypeError(f"Can't initialize class {match_!r} with parameters {params!r}: {ex}") from ex

    raise TypeError(
        "Value must be of type `"
        + " | ".join(_type_name(e) for e in types)
        + f"` but is `{type(value).__name__}`."
    )


def from_json(
    s: Union[str, bytes],
    types: Union[Type[_T], Tuple[Type[_T], ...], None] = None,
    /,
    *,
    strict: bool = False,
) -> _T:
    return from_dict(json.loads(s), types, strict=strict)
