from typing import Any, Dict, List, Union

__all__ = ["JsonValue", "MessageId"]

# the payload of a message after the transport decoded it, or before it is encoded
JsonValue = Union[None, bool, int, float, str, List[Any], Dict[str, Any]]

# `None` means the message has no id, i.e. it is a notification
MessageId = Union[int, str, None]
