"""Attribute schemas for the provider, its resources and data sources."""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from .diagnostics import Diagnostics

STRING = "string"
BOOL = "bool"
INT = "int"
LIST = "list"

_PYTHON_TYPES = {
    STRING: (str,),
    BOOL: (bool,),
    INT: (int,),
    LIST: (list, tuple),
}

REDACTED = "(sensitive value)"


@dataclass
class Attribute:
    """One attribute of a schema.

    Attributes:
        type: One of string, bool, int, list
        required: Must be set in configuration
        optional: May be set in configuration
        computed: Filled in by the provider; configuration may not set it
            unless it is also optional
        sensitive: Masked in CLI output
        default: Static value used when configuration leaves it unset
        requires_replace: A change forces delete and create
    """
    type: str = STRING
    required: bool = False
    optional: bool = False
    computed: bool = False
    sensitive: bool = False
    default: Any = None
    description: str = ""
    requires_replace: bool = False

    @property
    def configurable(self) -> bool:
        return self.required or self.optional

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"type": self.type}
        for flag in ("required", "optional", "computed", "sensitive", "requires_replace"):
            if getattr(self, flag):
                result[flag] = True
        if self.default is not None:
            result["default"] = self.default
        if self.description:
            result["description"] = self.description
        return result


@dataclass
class Schema:
    description: str = ""
    attributes: Dict[str, Attribute] = field(default_factory=dict)

    def validate(self, config: Dict[str, Any], diags: Diagnostics, address: Optional[str] = None) -> None:
        """Check configuration values against the schema.

        Unknown attributes, missing required attributes, values set for
        purely computed attributes and type mismatches are reported as errors.
        """
        for name in config:
            attr = self.attributes.get(name)
            if attr is None:
                diags.add_error("Unsupported argument", f'An argument named "{name}" is not expected here.', address)
            elif not attr.configurable and config[name] is not None:
                diags.add_error("Invalid configuration", f'"{name}" is computed and cannot be set.', address)

        for name, attr in self.attributes.items():
            value = config.get(name)
            if value is None:
                if attr.required:
                    diags.add_error("Missing required argument", f'The argument "{name}" is required.', address)
                continue
            expected = _PYTHON_TYPES[attr.type]
            # bool is an int subclass
            if not isinstance(value, expected) or (attr.type == INT and isinstance(value, bool)):
                diags.add_error(
                    "Incorrect attribute value type",
                    f'"{name}" must be of type {attr.type}, got {type(value).__name__}.',
                    address,
                )

    def apply_defaults(self, config: Dict[str, Any]) -> Dict[str, Any]:
        """Return a full attribute map: configured values, static defaults, None otherwise."""
        values = {}
        for name, attr in self.attributes.items():
            value = config.get(name)
            if value is None and attr.default is not None:
                value = attr.default
            values[name] = value
        return values

    def redact(self, values: Dict[str, Any]) -> Dict[str, Any]:
        """Mask sensitive attribute values for display."""
        return {
            name: REDACTED if value is not None and self.attributes.get(name, Attribute()).sensitive else value
            for name, value in values.items()
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "description": self.description,
            "attributes": {name: attr.to_dict() for name, attr in self.attributes.items()},
        }
