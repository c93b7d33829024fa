"""
================================================================================
JSON Mapper
================================================================================

Serializes request bodies and deserializes response bodies.

Supported values:
    - JSON primitives, dicts and lists
    - dataclasses (nested dataclasses and lists of dataclasses included)
    - datetime/date (ISO-8601), Enum (value), bytes (UTF-8 text)
    - tuples, fixed-length (Tuple[int, str]) or variadic (Tuple[int, ...])
    - other objects through their ``__dict__``

Unknown fields are ignored when deserializing into a dataclass.

Author: Automation Team
License: MIT
================================================================================
"""

from __future__ import annotations

import dataclasses
import json
import types
import typing
from datetime import date, datetime
from enum import Enum
from typing import Any, Optional, Type, TypeVar

from loguru import logger

from .exceptions import ApiSerializationError


T = TypeVar("T")

# PEP 604 unions (int | None) report a different origin than typing.Union
_UNION_TYPE = getattr(types, "UnionType", None)


class JsonMapper:
    """
    Thin JSON object mapper used by the engine and ResponseResult.

    Usage:
        >>> mapper = JsonMapper()
        >>> text = mapper.serialize(User(id=1, name="demo"))
        >>> mapper.deserialize(text, User)
        User(id=1, name='demo')
    """

    def __init__(self, indent: Optional[int] = 2) -> None:
        self.indent = indent

    def serialize(self, value: Any) -> str:
        try:
            return json.dumps(value, default=self._default, ensure_ascii=False, indent=self.indent)
        except (TypeError, ValueError) as e:
            logger.error(f"Serialization failed for: {type(value).__name__}")
            raise ApiSerializationError(f"Serialization failed: {e}") from e

    def deserialize(self, text: str, target: Optional[Type[T]] = None) -> Any:
        try:
            data = json.loads(text)
        except (TypeError, ValueError) as e:
            name = getattr(target, "__name__", "json")
            logger.error(f"Deserialization failed for: {name}")
            raise ApiSerializationError(f"Deserialization failed: {e}") from e
        if target is None:
            return data
        return self.convert(data, target)

    def convert(self, data: Any, target: Any) -> Any:
        """Coerce already-parsed JSON data into ``target``."""
        try:
            return self._convert(data, target)
        except (TypeError, ValueError, KeyError) as e:
            raise ApiSerializationError(
                f"Cannot map JSON to {getattr(target, '__name__', target)}: {e}"
            ) from e

    def _convert(self, data: Any, target: Any) -> Any:
        if target is Any or target is None or data is None:
            return data

        origin = typing.get_origin(target)
        if origin is typing.Union or (_UNION_TYPE is not None and origin is _UNION_TYPE):
            args = [a for a in typing.get_args(target) if a is not type(None)]
            return self._convert(data, args[0]) if len(args) == 1 else data
        if origin is tuple:
            args = typing.get_args(target)
            if len(args) == 2 and args[1] is Ellipsis:
                return tuple(self._convert(item, args[0]) for item in data)
            if args and args != ((),):
                if len(args) != len(data):
                    raise ValueError(f"expected {len(args)} items, got {len(data)}")
                return tuple(self._convert(item, t) for item, t in zip(data, args))
            return tuple(data)
        if origin in (list, set, frozenset):
            args = typing.get_args(target)
            item_type = args[0] if args else Any
            return origin(self._convert(item, item_type) for item in data)
        if origin is dict:
            args = typing.get_args(target)
            value_type = args[1] if len(args) == 2 else Any
            return {key: self._convert(item, value_type) for key, item in data.items()}

        if dataclasses.is_dataclass(target):
            if not isinstance(data, dict):
                raise TypeError(f"expected object, got {type(data).__name__}")
            hints = typing.get_type_hints(target)
            kwargs = {}
            for f in dataclasses.fields(target):
                if f.init and f.name in data:
                    kwargs[f.name] = self._convert(data[f.name], hints.get(f.name, Any))
            return target(**kwargs)
        if isinstance(target, type) and issubclass(target, Enum):
            return target(data)
        if target is datetime:
            return datetime.fromisoformat(data)
        if target is date:
            return date.fromisoformat(data)
        if target is bytes:
            return data.encode("utf-8") if isinstance(data, str) else bytes(data)
        if target in (dict, list, tuple, str, int, float, bool):
            return data if isinstance(data, target) else target(data)
        if isinstance(target, type) and isinstance(data, dict):
            return target(**data)
        return data

    @staticmethod
    def _default(value: Any) -> Any:
        if dataclasses.is_dataclass(value) and not isinstance(value, type):
            return {f.name: getattr(value, f.name) for f in dataclasses.fields(value)}
        if isinstance(value, (datetime, date)):
            return value.isoformat()
        if isinstance(value, Enum):
            return value.value
        if isinstance(value, bytes):
            return value.decode("utf-8", errors="replace")
        if isinstance(value, (set, frozenset, tuple)):
            return list(value)
        if hasattr(value, "__dict__"):
            return {k: v for k, v in vars(value).items() if not k.startswith("_")}
        raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


__all__ = ["JsonMapper"]
