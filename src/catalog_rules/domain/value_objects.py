"""Value Objects shared by the validation and workflow contexts."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, ClassVar, Tuple, Union
import math
import unicodedata


def _has_control_or_format(s: str) -> bool:
    """Check if string contains control or format characters (includes zero-width)."""
    return any(unicodedata.category(ch) in ("Cc", "Cf") for ch in s)


def is_number(value: Any) -> bool:
    """True for ints and floats; bools are not numbers here."""
    return isinstance(value, (int, float)) and not isinstance(value, bool)


@dataclass(frozen=True)
class TenantId:
    """Tenant identifier with normalization and validation."""
    value: str
    _max_length: ClassVar[int] = 64

    def __post_init__(self) -> None:
        if not isinstance(self.value, str):
            raise ValueError("Invalid tenant id format")

        normalized = unicodedata.normalize("NFKC", self.value).strip()

        if not normalized or len(normalized) > self._max_length:
            raise ValueError("Invalid tenant id format")

        if _has_control_or_format(normalized):
            raise ValueError("Invalid tenant id format")

        object.__setattr__(self, "value", normalized)

    @classmethod
    def of(cls, value: Union["TenantId", str]) -> "TenantId":
        """Accept either a TenantId or a raw string."""
        return value if isinstance(value, cls) else cls(value)

    def __str__(self) -> str:
        return self.value

    def __repr__(self) -> str:
        return f"TenantId('{self.value}')"


class ValueKind(Enum):
    """Closed set of value types accepted in rule and condition definitions."""

    STRING = "string"
    NUMBER = "number"
    BOOL = "bool"
    STRING_ARRAY = "stringArray"


RawValue = Union[str, int, float, bool, Tuple[str, ...]]


@dataclass(frozen=True)
class Value:
    """Tagged value used by validation rules, conditions and field updates."""

    kind: ValueKind
    raw: RawValue

    def __post_init__(self) -> None:
        expected = {
            ValueKind.STRING: lambda v: isinstance(v, str),
            ValueKind.NUMBER: is_number,
            ValueKind.BOOL: lambda v: isinstance(v, bool),
            ValueKind.STRING_ARRAY: lambda v: isinstance(v, tuple)
            and all(isinstance(item, str) for item in v),
        }[self.kind]
        if not expected(self.raw):
            raise ValueError(f"Value does not match kind {self.kind.value}")
        if isinstance(self.raw, float) and not math.isfinite(self.raw):
            raise ValueError("Number values must be finite")

    @classmethod
    def of(cls, raw: Any) -> "Value":
        """Classify a plain Python value.

        Raises:
            ValueError: If the value is outside the closed value type.
        """
        if isinstance(raw, Value):
            return raw
        if isinstance(raw, str):
            return cls(ValueKind.STRING, raw)
        # bool is a subclass of int, so it has to be checked first
        if isinstance(raw, bool):
            return cls(ValueKind.BOOL, raw)
        if is_number(raw):
            return cls(ValueKind.NUMBER, raw)
        if isinstance(raw, (list, tuple)):
            if all(isinstance(item, str) for item in raw):
                return cls(ValueKind.STRING_ARRAY, tuple(raw))
            raise ValueError("Array values may only contain strings")
        raise ValueError(f"Unsupported value type: {type(raw).__name__}")

    @property
    def is_number(self) -> bool:
        return self.kind == ValueKind.NUMBER

    def to_primitive(self) -> Union[str, int, float, bool, list]:
        """Convert back to a JSON-compatible value."""
        if self.kind == ValueKind.STRING_ARRAY:
            return list(self.raw)
        return self.raw

    def __str__(self) -> str:
        return f"{self.kind.value}:{self.raw!r}"
