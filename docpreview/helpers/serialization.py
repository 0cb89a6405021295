import base64
import enum
import typing
from dataclasses import fields, is_dataclass

# Type marker key written next to every serialized dataclass
_TYPE_KEY = "_type"


def _bytes_to_base64(data: bytes | bytearray) -> str:
    return base64.b64encode(bytes(data)).decode("utf-8")


def _serialize_for_json(value: typing.Any) -> typing.Any:
    if isinstance(value, enum.Enum):
        return value.value
    if isinstance(value, (bytes, bytearray)):
        return {"_bytes": _bytes_to_base64(value)}
    if is_dataclass(value) and not isinstance(value, type):
        result = {
            _TYPE_KEY: type(value).__name__,
        }
        for item in fields(value):
            result[item.name] = _serialize_for_json(getattr(value, item.name))
        return result
    if isinstance(value, dict):
        return {
            str(_serialize_for_json(key)): _serialize_for_json(val)
            for key, val in value.items()
        }
    if isinstance(value, (list, tuple, set)):
        return [_serialize_for_json(item) for item in value]
    return value


def serialize_document(value: typing.Any) -> dict:
    """
    Convert a ``PreviewDocument`` (or any preview dataclass) to JSON-ready data.

    Dataclasses become dicts tagged with their class name under ``_type``,
    enums their value, tuples lists, and bytes a ``{"_bytes": base64}`` dict.
    """
    serialized = _serialize_for_json(value)
    if isinstance(serialized, dict):
        return serialized
    return {"value": serialized}
