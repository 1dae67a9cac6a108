"""Which Java major versions the launcher needs, and what for."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

FALLBACK_DESCRIPTION = "-"


@dataclass(frozen=True)
class RequirementPolicy:
    """Fixed set of required majors plus the "needed for" labels."""

    required: tuple[int, ...]
    descriptions: Mapping[int, str] = field(default_factory=dict)
    fallback: str = FALLBACK_DESCRIPTION

    def required_majors(self) -> tuple[int, ...]:
        return self.required

    def needed_for(self, major: int) -> str:
        return self.descriptions.get(major, self.fallback)


DEFAULT_POLICY = RequirementPolicy(
    required=(8, 16, 17),
    descriptions=MappingProxyType(
        {
            8: "Minecraft 1.16 and below",
            16: "Minecraft 1.17",
            17: "Minecraft 1.18 and above",
        }
    ),
)


def required_majors() -> tuple[int, ...]:
    """Return the major versions ``ensure_required`` installs, in order."""
    return DEFAULT_POLICY.required_majors()


def needed_for(major: int) -> str:
    """Return the human-readable description of what ``major`` is needed for."""
    return DEFAULT_POLICY.needed_for(major)
