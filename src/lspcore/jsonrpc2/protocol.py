from __future__ import annotations

import inspect
from dataclasses import dataclass, field, fields, is_dataclass
from typing import (
    Any,
    Callable,
    Dict,
    Final,
    Generic,
    List,
    Mapping,
    Optional,
    Tuple,
    Type,
    TypeVar,
    Union,
    cast,
    overload,
)

from lspcore.core.dataclasses import as_dict, from_dict
from lspcore.core.types import JsonValue, MessageId
from lspcore.core.utils.inspect import iter_methods
from lspcore.core.utils.logging import LoggingDescriptor

from .transport import Transport, TransportClosedError, TransportError

__all__ = [
    "JsonRPCErrors",
    "JsonRPCMessage",
    "JsonRPCNotification",
    "JsonRPCRequest",
    "JsonRPCResponse",
    "JsonRPCError",
    "JsonRPCErrorObject",
    "JsonRPCProtocol",
    "JsonRPCException",
    "JsonRPCParseError",
    "InvalidProtocolVersionError",
    "InvalidMessageError",
    "RegistryFrozenError",
    "rpc_method",
    "RpcRegistry",
    "RpcMethodEntry",
    "JsonRPCProtocolPart",
    "ProtocolPartDescriptor",
    "GenericJsonRPCProtocolPart",
    "TProtocol",
    "JsonRPCErrorException",
    "decode_message",
    "encode_message",
]

_T = TypeVar("_T")


class JsonRPCErrors:
    PARSE_ERROR: Final = -32700
    INVALID_REQUEST: Final = -32600
    METHOD_NOT_FOUND: Final = -32601
    INVALID_PARAMS: Final = -32602
    INTERNAL_ERROR: Final = -32603
    SERVER_ERROR_START: Final = -32000
    SERVER_ERROR_END: Final = -32099


PROTOCOL_VERSION = "2.0"


@dataclass
class JsonRPCMessage:
    jsonrpc: str = field(default=PROTOCOL_VERSION, init=False, metadata={"force_json": True})


@dataclass
class JsonRPCNotification(JsonRPCMessage):
    method: str
    params: Optional[Any] = None


@dataclass
class JsonRPCRequest(JsonRPCMessage):
    id: MessageId
    method: str
    params: Optional[Any] = None


@dataclass
class _JsonRPCResponseBase(JsonRPCMessage):
    id: MessageId


@dataclass
class JsonRPCResponse(_JsonRPCResponseBase):
    result: Any


@dataclass
class JsonRPCErrorObject:
    code: int
    message: Optional[str]
    data: Optional[Any] = None


@dataclass
class JsonRPCError(_JsonRPCResponseBase):
    error: JsonRPCErrorObject
    result: Optional[Any] = None


class JsonRPCException(Exception):  # noqa: N818
    pass


class JsonRPCErrorException(JsonRPCException):
    def __init__(self, code: int, message: Optional[str], data: Optional[Any] = None) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.data = data


class JsonRPCParseError(JsonRPCException):
    pass


class InvalidMessageError(JsonRPCParseError):
    """The payload is valid JSON but not a valid JSON-RPC message.

    `id` is the request id if one could be read from the payload.
    """

    def __init__(self, message: str, id: MessageId = None) -> None:
        super().__init__(message)
        self.id = id


class InvalidProtocolVersionError(InvalidMessageError):
    pass


class RegistryFrozenError(JsonRPCException):
    pass


def _is_valid_id(value: Any) -> bool:
    return isinstance(value, str) or isinstance(value, int) and not isinstance(value, bool)


def decode_message(data: JsonValue) -> JsonRPCMessage:
    """Checks the envelope of a received JSON value and converts it to a message.

    The `params` of requests and notifications stay plain JSON values, they are
    converted when the method that handles them is known.
    """
    if not isinstance(data, dict):
        raise InvalidMessageError(f"Invalid JSON-RPC2 message, expected an object but got {type(data).__name__}.")

    raw_id = data.get("id", None)
    id = raw_id if _is_valid_id(raw_id) else None

    if data.get("jsonrpc", None) != PROTOCOL_VERSION:
        raise InvalidProtocolVersionError("Invalid JSON-RPC2 protocol version.", id)

    if raw_id is not None and id is None:
        raise InvalidMessageError(f"Invalid JSON-RPC2 message id {raw_id!r}.")

    if "method" in data:
        method = data["method"]
        if not isinstance(method, str):
            raise InvalidMessageError("Invalid JSON-RPC2 message, method must be a string.", id)

        params = data.get("params", None)
        if params is not None and not isinstance(params, (dict, list)):
            raise InvalidMessageError("Invalid JSON-RPC2 message, params must be an object or an array.", id)

        if id is None:
            return JsonRPCNotification(method=method, params=params)
        return JsonRPCRequest(id=id, method=method, params=params)

    if "error" in data:
        error = data["error"]
        if not isinstance(error, dict) or not isinstance(error.get("code", None), int):
            raise InvalidMessageError("Invalid JSON-RPC2 error response.", id)
        return JsonRPCError(
            id=id,
            error=JsonRPCErrorObject(code=error["code"], message=error.get("message", None), data=error.get("data")),
        )

    if "result" in data:
        return JsonRPCResponse(id=id, result=data["result"])

    raise InvalidMessageError("Invalid JSON-RPC2 message.", id)


def encode_message(message: JsonRPCMessage) -> JsonValue:
    return cast(JsonValue, as_dict(message))


@dataclass
class RpcMethodEntry:
    name: str
    method: Callable[..., Any]
    param_type: Optional[Type[Any]]


_F = TypeVar("_F", bound=Callable[..., Any])


@overload
def rpc_method(_func: _F) -> _F: ...


@overload
def rpc_method(
    *,
    name: Optional[str] = None,
    param_type: Optional[Type[Any]] = None,
) -> Callable[[_F], _F]: ...


def rpc_method(
    _func: Optional[_F] = None,
    *,
    name: Optional[str] = None,
    param_type: Optional[Type[Any]] = None,
) -> Callable[[_F], _F]:
    """Marks a method of a protocol or protocol part as the handler of a JSON-RPC method.

    `param_type` is the dataclass the params are converted to. Its fields are
    passed as keyword arguments to the handler.
    """

    def _decorator(func: _F) -> Callable[[_F], _F]:
        if inspect.isclass(func):
            raise TypeError(f"Not supported type {type(func)}.")

        real_name = name if name is not None else func.__name__
        if not real_name:
            raise ValueError("name is empty.")

        setattr(func, "__rpc_method__", RpcMethodEntry(real_name, func, param_type))
        return func

    if _func is None:
        return cast(Callable[[_F], _F], _decorator)
    return _decorator(_func)


def _rpc_method_entry(func: Callable[..., Any]) -> Optional[RpcMethodEntry]:
    return cast(Optional[RpcMethodEntry], getattr(func, "__rpc_method__", None))


class RpcRegistry:
    """The methods a protocol answers to.

    Collected once from the `rpc_method` handlers of the protocol and its parts
    when the protocol starts. Afterwards the registry can't be changed anymore.
    """

    __logger = LoggingDescriptor()

    def __init__(self, owner: Any) -> None:
        self.__owner = owner
        self.__methods: Dict[str, RpcMethodEntry] = {}
        self.__added_methods: List[RpcMethodEntry] = []
        self.__parts: List[GenericJsonRPCProtocolPart[Any]] = []
        self.__frozen = False

    @property
    def frozen(self) -> bool:
        return self.__frozen

    def __check_not_frozen(self) -> None:
        if self.__frozen:
            raise RegistryFrozenError("The method registry can't be changed after it is initialized.")

    def add_part_instance(self, instance: GenericJsonRPCProtocolPart[Any]) -> None:
        self.__check_not_frozen()
        self.__parts.append(instance)

    def add_method(self, name: str, func: Callable[..., Any], param_type: Optional[Type[Any]] = None) -> None:
        self.__check_not_frozen()
        self.__added_methods.append(RpcMethodEntry(name, func, param_type))

    @property
    def parts(self) -> List[GenericJsonRPCProtocolPart[Any]]:
        self.initialize_parts()
        return list(self.__parts)

    def __register(self, entry: RpcMethodEntry) -> None:
        if entry.name in self.__methods:
            self.__logger.debug(lambda: f"Method {entry.name!r} is registered again, the last registration wins.")
        self.__methods[entry.name] = entry

    def __register_methods(self, obj: Any) -> None:
        for method in iter_methods(obj, lambda m: _rpc_method_entry(m) is not None):
            entry = cast(RpcMethodEntry, _rpc_method_entry(method))
            self.__register(RpcMethodEntry(entry.name, method, entry.param_type))

    def initialize_parts(self) -> None:
        if self.__frozen:
            return

        # creates the parts declared with a ProtocolPartDescriptor, base classes first
        for cls in reversed(inspect.getmro(type(self.__owner))):
            for name, value in list(vars(cls).items()):
                if isinstance(value, ProtocolPartDescriptor):
                    getattr(self.__owner, name)

        self.__register_methods(self.__owner)
        for part in self.__parts:
            self.__register_methods(part)
        for entry in self.__added_methods:
            self.__register(entry)

        self.__frozen = True

    @property
    def methods(self) -> Dict[str, RpcMethodEntry]:
        self.initialize_parts()
        return dict(self.__methods)

    def get_entry(self, name: str) -> Optional[RpcMethodEntry]:
        self.initialize_parts()
        return self.__methods.get(name, None)

    def get_method(self, name: str) -> Optional[Callable[..., Any]]:
        result = self.get_entry(name)
        if result is None:
            return None
        return result.method

    def get_param_type(self, name: str) -> Optional[Type[Any]]:
        result = self.get_entry(name)
        if result is None:
            return None
        return result.param_type


class JsonRPCProtocol:
    """Reads messages from a transport and answers them, one at a time.

    `run` blocks until the loop is stopped by `stop`, the transport is closed or
    too many consecutive messages could not be read.
    """

    __logger = LoggingDescriptor()
    _data_logger = LoggingDescriptor(postfix="_data")

    DEFAULT_MAX_CONSECUTIVE_FAILURES: Final = 10

    def __init__(self, transport: Transport, max_consecutive_failures: Optional[int] = None) -> None:
        self.transport = transport
        self.max_consecutive_failures = (
            max_consecutive_failures
            if max_consecutive_failures is not None
            else self.DEFAULT_MAX_CONSECUTIVE_FAILURES
        )
        self.registry = RpcRegistry(self)
        self._consecutive_failures = 0
        self._signature_cache: Dict[Callable[..., Any], inspect.Signature] = {}
        self._current_request: Optional[JsonRPCRequest] = None
        self._current_request_answered = False
        self._stop_requested = False
        self._normal_termination = False

    @property
    def consecutive_failures(self) -> int:
        return self._consecutive_failures

    @property
    def current_request(self) -> Optional[JsonRPCRequest]:
        return self._current_request

    def stop(self, normal: bool) -> None:
        self._stop_requested = True
        self._normal_termination = normal

    def _count_failure(self, error: BaseException) -> bool:
        self._consecutive_failures += 1
        self.__logger.warning(
            lambda: f"Failed to read message ({self._consecutive_failures}/{self.max_consecutive_failures}): "
            f"{type(error).__name__}: {error}"
        )
        if self._consecutive_failures > self.max_consecutive_failures:
            self.__logger.error(lambda: f"Too many consecutive failures ({self._consecutive_failures}), giving up.")
            return True
        return False

    def run(self) -> bool:
        """Runs the message loop; returns `True` if it ended normally."""
        self.registry.initialize_parts()

        self._stop_requested = False
        self._normal_termination = False

        while not self._stop_requested:
            try:
                if not self._read_and_handle_message():
                    return False
            except TransportClosedError as e:
                self.__logger.info(lambda: f"Connection closed: {e}")
                return False
            except TransportError as e:
                if self._count_failure(e):
                    return False

        return self._normal_termination

    def _read_and_handle_message(self) -> bool:
        data = self.transport.receive()

        self._data_logger.trace(lambda: f"JSON Received: {data!r}")

        try:
            message = decode_message(data)
        except InvalidMessageError as e:
            if e.id is not None:
                self.send_error(JsonRPCErrors.INVALID_REQUEST, str(e), id=e.id)
            return not self._count_failure(e)

        self._consecutive_failures = 0

        self.handle_message(message)
        return True

    @__logger.call
    def handle_message(self, message: JsonRPCMessage) -> None:
        if isinstance(message, JsonRPCRequest):
            self.handle_request(message)
        elif isinstance(message, JsonRPCNotification):
            self.handle_notification(message)
        elif isinstance(message, JsonRPCError):
            self.handle_error(message)
        elif isinstance(message, JsonRPCResponse):
            self.handle_response(message)

    @__logger.call
    def send_response(self, id: MessageId, result: Optional[Any] = None) -> None:
        self._mark_answered(id)
        self.send_message(JsonRPCResponse(id=id, result=result))

    @__logger.call
    def send_error(
        self,
        code: int,
        message: Optional[str],
        id: MessageId = None,
        data: Optional[Any] = None,
    ) -> None:
        error_obj = JsonRPCErrorObject(code=code, message=message)
        if data is not None:
            error_obj.data = data

        self._mark_answered(id)
        self.send_message(JsonRPCError(id=id, error=error_obj))

    def _mark_answered(self, id: MessageId) -> None:
        if id is not None and self._current_request is not None and self._current_request.id == id:
            self._current_request_answered = True

    @__logger.call
    def send_message(self, message: JsonRPCMessage) -> None:
        message.jsonrpc = PROTOCOL_VERSION

        data = encode_message(message)

        self._data_logger.trace(lambda: f"JSON send: {data!r}")

        self.transport.send(data)

    @__logger.call
    def send_notification(self, method: str, params: Any) -> None:
        self.send_message(JsonRPCNotification(method=method, params=params))

    def handle_response(self, message: JsonRPCResponse) -> None:
        self.__logger.warning(lambda: f"Ignore response for unknown request {message.id!r}.")

    def handle_error(self, message: JsonRPCError) -> None:
        self.__logger.warning(
            lambda: f"Ignore error response for request {message.id!r}: "
            f"{message.error.code} {message.error.message}"
        )

    def _convert_params(
        self,
        callable: Callable[..., Any],
        params_type: Optional[Type[Any]],
        params: Any,
    ) -> Tuple[List[Any], Dict[str, Any]]:
        if params is None:
            return [], {}
        if params_type is None:
            if isinstance(params, Mapping):
                return [], dict(**params)

            return [params], {}

        # try to convert the dict to correct type
        try:
            converted_params = from_dict(params, params_type)
        except TypeError as e:
            raise JsonRPCErrorException(JsonRPCErrors.INVALID_PARAMS, f"{type(e).__name__}: {e}") from e

        # get the signature of the callable
        if callable in self._signature_cache:
            signature = self._signature_cache[callable]
        else:
            signature = inspect.signature(callable)
            self._signature_cache[callable] = signature

        has_var_kw = any(p.kind == inspect.Parameter.VAR_KEYWORD for p in signature.parameters.values())

        kw_args = {}
        args = []
        params_added = False

        field_names = (
            [f.name for f in fields(converted_params)]
            if is_dataclass(converted_params)
            else list(converted_params.__dict__.keys())
        )

        rest = set(field_names)
        if isinstance(params, dict):
            rest = set.union(rest, params.keys())

        for v in signature.parameters.values():
            if v.name in field_names:
                if v.kind == inspect.Parameter.POSITIONAL_ONLY:
                    args.append(getattr(converted_params, v.name))
                else:
                    kw_args[v.name] = getattr(converted_params, v.name)

                rest.discard(v.name)
            elif v.name == "params":
                if v.kind == inspect.Parameter.POSITIONAL_ONLY:
                    args.append(converted_params)
                else:
                    kw_args[v.name] = converted_params
                params_added = True
            elif isinstance(params, dict) and v.name in params:
                if v.kind == inspect.Parameter.POSITIONAL_ONLY:
                    args.append(params[v.name])
                else:
                    kw_args[v.name] = params[v.name]
        if has_var_kw:
            for r in rest:
                if hasattr(converted_params, r):
                    kw_args[r] = getattr(converted_params, r)
                elif isinstance(params, dict) and r in params:
                    kw_args[r] = params[r]

            if not params_added:
                kw_args["params"] = converted_params
        return args, kw_args

    def _check_request(self, message: JsonRPCRequest) -> None:
        """Raises a `JsonRPCErrorException` if the request must not be handled now."""

    def _check_notification(self, message: JsonRPCNotification) -> bool:
        """Returns `False` if the notification must be dropped."""
        return True

    def _call_handler(self, message: Union[JsonRPCRequest, JsonRPCNotification]) -> Any:
        e = self.registry.get_entry(message.method)

        if e is None or not callable(e.method):
            raise JsonRPCErrorException(JsonRPCErrors.METHOD_NOT_FOUND, f"Unknown method: {message.method}")

        args, kwargs = self._convert_params(e.method, e.param_type, message.params)

        return e.method(*args, **kwargs)

    def handle_request(self, message: JsonRPCRequest) -> None:
        self._current_request = message
        self._current_request_answered = False
        try:
            self._check_request(message)

            result = self._call_handler(message)

            if not self._current_request_answered:
                self.send_response(message.id, result)
        except (SystemExit, KeyboardInterrupt, TransportError):
            raise
        except JsonRPCErrorException as e:
            self.__logger.debug(lambda: f"Request {message.method!r} failed with {e.code}: {e.message}")
            self._send_request_error(message, e.code, e.message or f"{type(e).__name__}: {e}", e.data)
        except BaseException as e:
            self.__logger.exception(e)
            self._send_request_error(message, JsonRPCErrors.INTERNAL_ERROR, f"{type(e).__name__}: {e}")
        finally:
            self._current_request = None
            self._current_request_answered = False

    def _send_request_error(self, message: JsonRPCRequest, code: int, error: str, data: Any = None) -> None:
        if self._current_request_answered:
            self.__logger.warning(lambda: f"Request {message.id!r} is already answered, dropping error: {error}")
            return
        self.send_error(code, error, id=message.id, data=data)

    @__logger.call
    def handle_notification(self, message: JsonRPCNotification) -> None:
        if not self._check_notification(message):
            self.__logger.debug(lambda: f"Drop notification {message.method!r}.")
            return

        if self.registry.get_entry(message.method) is None:
            self.__logger.warning(lambda: f"Unknown method: {message.method}")
            return

        try:
            self._call_handler(message)
        except (SystemExit, KeyboardInterrupt, TransportError):
            raise
        except JsonRPCErrorException as e:
            self.__logger.debug(lambda: f"Notification {message.method!r} failed with {e.code}: {e.message}")
            self.send_error(e.code, e.message or f"{type(e).__name__}: {e}", data=e.data)
        except BaseException as e:
            self.__logger.exception(e)
            self.send_error(JsonRPCErrors.INTERNAL_ERROR, f"{type(e).__name__}: {e}")


TProtocol = TypeVar("TProtocol", bound=JsonRPCProtocol)


class GenericJsonRPCProtocolPart(Generic[TProtocol]):
    def __init__(self, parent: TProtocol) -> None:
        self._parent = parent
        parent.registry.add_part_instance(self)

    @property
    def parent(self) -> TProtocol:
        return self._parent


class JsonRPCProtocolPart(GenericJsonRPCProtocolPart[JsonRPCProtocol]):
    pass


TProtocolPart = TypeVar("TProtocolPart", bound=GenericJsonRPCProtocolPart[Any])


class ProtocolPartDescriptor(Generic[TProtocolPart]):
    """Declares a part of a protocol; the part is created on first access."""

    def __init__(self, instance_type: Type[TProtocolPart], *args: Any, **kwargs: Any):
        self._instance_type = instance_type
        self._instance_args = args
        self._instance_kwargs = kwargs
        self._name = ""

    def __set_name__(self, owner: Type[Any], name: str) -> None:
        if not issubclass(owner, JsonRPCProtocol):
            raise TypeError(f"{owner!r} is not a JsonRPCProtocol.")
        self._name = f"__part_{name}__"

    def __get__(self, obj: Optional[Any], objtype: Type[Any]) -> TProtocolPart:
        if obj is None:
            return self._instance_type  # type: ignore

        if self._name not in obj.__dict__:
            obj.__dict__[self._name] = self._instance_type(obj, *self._instance_args, **self._instance_kwargs)

        return cast(TProtocolPart, obj.__dict__[self._name])
