#!/usr/bin/env python3
"""
YAMLER TYPED ACCESS
-------------------
Type-checked wrappers around Document.get / Document.set. Conversion is
strict: numeric strings are not numbers and booleans are never ints.
Integers are accepted wherever a float is expected.
"""

from typing import Any, Callable, Dict, List

from yamler.core.errors import TypeMismatch


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_float(value: Any) -> bool:
    return isinstance(value, float) or _is_int(value)


def _is_string(value: Any) -> bool:
    return isinstance(value, str)


def _is_bool(value: Any) -> bool:
    return isinstance(value, bool)


def _is_map(value: Any) -> bool:
    return isinstance(value, dict)


def _checked(path: str, value: Any, check: Callable[[Any], bool], expected: str) -> Any:
    if not check(value):
        raise TypeMismatch(path, f"expected {expected}, got {type(value).__name__}")
    return value


def _checked_list(path: str, value: Any, check: Callable[[Any], bool], expected: str) -> list:
    _checked(path, value, lambda v: isinstance(v, list), "list")
    for position, item in enumerate(value):
        _checked(f"{path}[{position}]", item, check, expected)
    return value


class TypedAccessMixin:
    """Typed getters and setters for Document."""

    # --- GETTERS ---

    def get_string(self, path: str) -> str:
        return _checked(path, self.get(path), _is_string, "string")

    def get_int(self, path: str) -> int:
        return _checked(path, self.get(path), _is_int, "int")

    def get_float(self, path: str) -> float:
        return float(_checked(path, self.get(path), _is_float, "float"))

    def get_bool(self, path: str) -> bool:
        return _checked(path, self.get(path), _is_bool, "bool")

    def get_list(self, path: str) -> list:
        return _checked(path, self.get(path), lambda v: isinstance(v, list), "list")

    def get_map(self, path: str) -> Dict[Any, Any]:
        return _checked(path, self.get(path), _is_map, "map")

    def get_string_list(self, path: str) -> List[str]:
        return _checked_list(path, self.get(path), _is_string, "string")

    def get_int_list(self, path: str) -> List[int]:
        return _checked_list(path, self.get(path), _is_int, "int")

    def get_float_list(self, path: str) -> List[float]:
        return [float(v) for v in _checked_list(path, self.get(path), _is_float, "float")]

    def get_bool_list(self, path: str) -> List[bool]:
        return _checked_list(path, self.get(path), _is_bool, "bool")

    def get_map_list(self, path: str) -> List[Dict[Any, Any]]:
        return _checked_list(path, self.get(path), _is_map, "map")

    # --- SETTERS ---

    def set_string(self, path: str, value: str):
        self.set(path, _checked(path, value, _is_string, "string"))

    def set_int(self, path: str, value: int):
        self.set(path, _checked(path, value, _is_int, "int"))

    def set_float(self, path: str, value: float):
        self.set(path, float(_checked(path, value, _is_float, "float")))

    def set_bool(self, path: str, value: bool):
        self.set(path, _checked(path, value, _is_bool, "bool"))

    def set_string_list(self, path: str, values: List[str]):
        self.set(path, list(_checked_list(path, values, _is_string, "string")))

    def set_int_list(self, path: str, values: List[int]):
        self.set(path, list(_checked_list(path, values, _is_int, "int")))

    def set_float_list(self, path: str, values: List[float]):
        self.set(path, [float(v) for v in _checked_list(path, values, _is_float, "float")])

    def set_bool_list(self, path: str, values: List[bool]):
        self.set(path, list(_checked_list(path, values, _is_bool, "bool")))

    def set_map_list(self, path: str, values: List[Dict[str, Any]]):
        self.set(path, list(_checked_list(path, values, _is_map, "map")))
