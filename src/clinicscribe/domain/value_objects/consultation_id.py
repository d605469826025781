"""
Consultation ID value object for type-safe consultation identification.
"""

import re
from dataclasses import dataclass
from typing import Any, Union

_PATTERN = re.compile(r"^[A-Za-z0-9_-]{1,64}$")


@dataclass(frozen=True)
class ConsultationId:
    """Immutable consultation identifier value object."""

    value: str

    def __post_init__(self) -> None:
        """Validate consultation ID format."""
        if not isinstance(self.value, str):
            raise ValueError("Consultation ID must be a string")

        if not self.value:
            raise ValueError("Consultation ID cannot be empty")

        # Path segment safe: letters, digits, hyphen, underscore
        if not _PATTERN.match(self.value):
            raise ValueError(
                "Consultation ID must be 1-64 letters, digits, hyphens or underscores"
            )

    def __str__(self) -> str:
        """String representation."""
        return self.value

    def __eq__(self, other: Any) -> bool:
        """Equality comparison."""
        if not isinstance(other, ConsultationId):
            return False
        return self.value == other.value

    def __hash__(self) -> int:
        """Hash for use in sets and dictionaries."""
        return hash(self.value)

    @classmethod
    def parse(cls, raw: Union[str, int, "ConsultationId"]) -> "ConsultationId":
        """Build from a path parameter or a numeric record id."""
        if isinstance(raw, ConsultationId):
            return raw
        return cls(str(raw).strip())
