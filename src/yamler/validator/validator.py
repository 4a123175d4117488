#!/usr/bin/env python3
"""
YAMLER VALIDATOR - The Judge
----------------------------
Checks document data against a ValidationRule tree. Schemas are written
in YAML with camelCase keys:

    type: map
    required: [name]
    properties:
      name: {type: string, minLength: 1}
      replicas: {type: int, minimum: 1}
"""

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from ruamel.yaml import YAML, YAMLError

from yamler.core.errors import FileError, ParseError, ValidationError

logger = logging.getLogger("yamler.validator")

SCHEMA_TYPES = ("string", "int", "float", "bool", "array", "map", "any")

# schema key -> ValidationRule attribute
_SCHEMA_KEYS = {
    "type": "type",
    "minLength": "min_length",
    "maxLength": "max_length",
    "pattern": "pattern",
    "minimum": "minimum",
    "maximum": "maximum",
    "exclusiveMinimum": "exclusive_minimum",
    "exclusiveMaximum": "exclusive_maximum",
    "minItems": "min_items",
    "maxItems": "max_items",
    "uniqueItems": "unique_items",
    "items": "items",
    "required": "required",
    "properties": "properties",
    "additionalProperties": "additional_properties",
    "enum": "enum",
    "nullable": "nullable",
}


@dataclass
class ValidationRule:
    type: str = "any"
    # strings
    min_length: Optional[int] = None
    max_length: Optional[int] = None
    pattern: Optional[str] = None
    # numbers
    minimum: Optional[float] = None
    maximum: Optional[float] = None
    exclusive_minimum: Optional[float] = None
    exclusive_maximum: Optional[float] = None
    # arrays
    min_items: Optional[int] = None
    max_items: Optional[int] = None
    unique_items: bool = False
    items: Optional["ValidationRule"] = None
    # maps
    required: List[str] = field(default_factory=list)
    properties: Dict[str, "ValidationRule"] = field(default_factory=dict)
    additional_properties: Optional[bool] = None
    # common
    enum: Optional[List[Any]] = None
    nullable: bool = False


def rule_from_dict(data: Dict[str, Any], where: str = "schema") -> ValidationRule:
    """Builds a ValidationRule from the camelCase mapping form."""
    if not isinstance(data, dict):
        raise ParseError(f"{where}: a rule must be a mapping")
    rule = ValidationRule()
    for key, value in data.items():
        attribute = _SCHEMA_KEYS.get(key)
        if attribute is None:
            logger.debug("validator: unknown schema key %r at %s ignored", key, where)
            continue
        if attribute == "items":
            value = rule_from_dict(value, f"{where}.items")
        elif attribute == "properties":
            value = {str(name): rule_from_dict(sub, f"{where}.properties.{name}")
                     for name, sub in (value or {}).items()}
        elif attribute == "required":
            value = [str(name) for name in value or []]
        setattr(rule, attribute, value)
    if rule.type not in SCHEMA_TYPES:
        raise ParseError(f"{where}: unsupported type {rule.type!r}")
    return rule


def load_schema(text: str) -> ValidationRule:
    try:
        data = YAML(typ='safe', pure=True).load(text)
    except YAMLError as exc:
        raise ParseError(f"failed to parse schema: {exc}") from exc
    return rule_from_dict(data or {})


def load_schema_file(path: Union[str, Path]) -> ValidationRule:
    try:
        text = Path(path).read_text(encoding='utf-8-sig')
    except OSError as exc:
        raise FileError(f"failed to read schema file {path}: {exc}") from exc
    return load_schema(text)


def _same(a: Any, b: Any) -> bool:
    # True == 1 in Python, not in YAML
    return isinstance(a, bool) == isinstance(b, bool) and a == b


def _type_name(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "bool"
    if isinstance(value, int):
        return "int"
    if isinstance(value, float):
        return "float"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "array"
    if isinstance(value, dict):
        return "map"
    return type(value).__name__


class SchemaValidator:
    """
    Enforces a ValidationRule on plain document data. Failures are
    reported as `path <p>: <reason>` strings.
    """

    def collect(self, value: Any, rule: ValidationRule, path: str = "") -> List[str]:
        """Every failure found below `path`."""
        failures: List[str] = []
        self._deep_validate(value, rule, path, failures)
        return failures

    def validate(self, value: Any, rule: ValidationRule) -> None:
        """Raises ValidationError carrying the first failure."""
        failures = self.collect(value, rule)
        if failures:
            raise ValidationError(failures[:1])

    def _deep_validate(self, value: Any, rule: ValidationRule, path: str, failures: List[str]):
        where = path or "<root>"

        def fail(reason: str):
            failures.append(f"path {where}: {reason}")

        if value is None and rule.nullable:
            return

        actual = _type_name(value)
        accepted = ("int", "float") if rule.type == "float" else (rule.type,)
        if rule.type != "any" and actual not in accepted:
            fail(f"expected {rule.type}, got {actual}")
            return

        # --- STRINGS ---
        if rule.type == "string":
            if rule.min_length is not None and len(value) < rule.min_length:
                fail(f"string length {len(value)} is less than minimum {rule.min_length}")
            if rule.max_length is not None and len(value) > rule.max_length:
                fail(f"string length {len(value)} is greater than maximum {rule.max_length}")
            if rule.pattern is not None:
                try:
                    if not re.search(rule.pattern, value):
                        fail(f"string does not match pattern {rule.pattern}")
                except re.error as exc:
                    fail(f"invalid pattern {rule.pattern!r}: {exc}")

        # --- NUMBERS ---
        elif rule.type in ("int", "float"):
            if rule.minimum is not None and value < rule.minimum:
                fail(f"value {value} is less than minimum {rule.minimum}")
            if rule.maximum is not None and value > rule.maximum:
                fail(f"value {value} is greater than maximum {rule.maximum}")
            if rule.exclusive_minimum is not None and value <= rule.exclusive_minimum:
                fail(f"value {value} is not greater than exclusive minimum {rule.exclusive_minimum}")
            if rule.exclusive_maximum is not None and value >= rule.exclusive_maximum:
                fail(f"value {value} is not less than exclusive maximum {rule.exclusive_maximum}")

        # --- ARRAYS ---
        elif rule.type == "array":
            if rule.min_items is not None and len(value) < rule.min_items:
                fail(f"array length {len(value)} is less than minimum {rule.min_items}")
            if rule.max_items is not None and len(value) > rule.max_items:
                fail(f"array length {len(value)} is greater than maximum {rule.max_items}")
            if rule.unique_items:
                seen = set()
                for position, item in enumerate(value):
                    marker = (_type_name(item), repr(item))
                    if marker in seen:
                        fail(f"duplicate item at index {position}")
                        break
                    seen.add(marker)
            if rule.items is not None:
                for position, item in enumerate(value):
                    self._deep_validate(item, rule.items, f"{path}[{position}]", failures)

        # --- MAPS ---
        elif rule.type == "map":
            for name in rule.required:
                if not any(str(key) == name for key in value):
                    fail(f"required field {name} is missing")
            for key, item in value.items():
                child = f"{path}.{key}" if path else str(key)
                sub_rule = rule.properties.get(str(key))
                if sub_rule is not None:
                    self._deep_validate(item, sub_rule, child, failures)
                elif rule.additional_properties is False:
                    fail(f"additional property {key} is not allowed")

        if rule.enum is not None and not any(_same(value, option) for option in rule.enum):
            fail(f"value {value!r} is not in enum")


def validate(value: Any, rule: ValidationRule) -> List[str]:
    """All failures of `value` against `rule`; empty when valid."""
    return SchemaValidator().collect(value, rule)
