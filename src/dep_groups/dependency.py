from dataclasses import dataclass
from typing import Iterable, Iterator

from packaging.requirements import InvalidRequirement, Requirement
from packaging.utils import canonicalize_name

from .exceptions import InvalidDependencyError

# Characters that may directly follow a package name in a PEP 508 string.
_ATTACHED_PREFIXES = ("[", "<", ">", "=", "!", "~", "(", ";")


@dataclass(frozen=True)
class Dependency:
    """A declared dependency: package name plus its verbatim requirement."""

    name: str
    requirement: str = ""

    @classmethod
    def from_string(cls, value: str) -> "Dependency":
        """
        Parse a PEP 508 requirement string.

        Args:
            value: Requirement string such as ``click>=8`` or ``requests[socks]``

        Returns:
            Dependency: The parsed dependency

        Raises:
            InvalidDependencyError: If the string is not a valid requirement
        """
        text = value.strip()
        try:
            parsed = Requirement(text)
        except InvalidRequirement as e:
            raise InvalidDependencyError(f"Invalid dependency '{value}': {e}") from e

        # The name always leads a PEP 508 string, so the rest is kept verbatim.
        return cls(name=parsed.name, requirement=text[len(parsed.name):].strip())

    @property
    def key(self) -> str:
        """Canonical name used for matching."""
        return canonicalize_name(self.name)

    def matches(self, name: str) -> bool:
        return self.key == canonicalize_name(name)

    def pinned(self, version: str) -> "Dependency":
        """Return a copy pinned to ``version``, keeping extras and markers."""
        parsed = Requirement(str(self))
        pinned = self.name
        if parsed.extras:
            pinned += "[" + ",".join(sorted(parsed.extras)) + "]"
        pinned += f"=={version}"
        if parsed.marker is not None:
            pinned += f"; {parsed.marker}"
        return Dependency.from_string(pinned)

    def export_line(self) -> str:
        """Render as ``name requirement`` (or just ``name``)."""
        if not self.requirement:
            return self.name
        return f"{self.name} {self.requirement}"

    def __str__(self) -> str:
        if not self.requirement:
            return self.name
        if self.requirement.startswith(_ATTACHED_PREFIXES):
            return f"{self.name}{self.requirement}"
        return f"{self.name} {self.requirement}"


@dataclass(frozen=True)
class InstalledPackage:
    """A package present in the active Python environment."""

    name: str
    version: str

    @property
    def key(self) -> str:
        return canonicalize_name(self.name)

    def to_dependency(self) -> Dependency:
        return Dependency(name=self.name, requirement=f"=={self.version}")

    def __str__(self) -> str:
        return f"{self.name}=={self.version}"


def dependency_iter(values: Iterable[str]) -> Iterator[Dependency]:
    """Parse each requirement string in ``values``."""
    for value in values:
        yield Dependency.from_string(value)
