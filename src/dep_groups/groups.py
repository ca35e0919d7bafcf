"""
Group registry: the ordered view of a manifest's dependency groups.

The required list is always present under the reserved name
``REQUIRED_GROUP``, followed by each optional group in declaration order.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterator, List, Optional, Tuple

from .cli_config import REQUIRED_GROUP_NAME
from .dependency import Dependency
from .exceptions import ProjectDependenciesNotFound
from .manifest import Manifest

REQUIRED_GROUP = REQUIRED_GROUP_NAME


class GroupKind(Enum):
    """Whether a group is the implicit required list or a declared optional group."""

    REQUIRED = "required"
    OPTIONAL = "optional"


@dataclass(frozen=True)
class DependencyGroup:
    name: str
    kind: GroupKind
    dependencies: Tuple[Dependency, ...]

    @property
    def is_required(self) -> bool:
        return self.kind is GroupKind.REQUIRED


class GroupRegistry:
    """Ordered mapping from group name to its dependencies."""

    def __init__(self, groups: List[DependencyGroup]):
        self._groups: Dict[str, DependencyGroup] = {}
        for group in groups:
            self._groups[group.name] = group

    def __iter__(self) -> Iterator[DependencyGroup]:
        return iter(self._groups.values())

    def __len__(self) -> int:
        return len(self._groups)

    def __contains__(self, name: object) -> bool:
        return name in self._groups

    def __getitem__(self, name: str) -> DependencyGroup:
        return self._groups[name]

    def get(self, name: str) -> Optional[DependencyGroup]:
        return self._groups.get(name)

    @property
    def names(self) -> List[str]:
        return list(self._groups)

    @property
    def required(self) -> DependencyGroup:
        return self._groups[REQUIRED_GROUP]


def build_group_registry(manifest: Manifest) -> GroupRegistry:
    """
    Build the registry for one operation.

    Args:
        manifest: Loaded manifest snapshot

    Returns:
        GroupRegistry: ``required`` first, then optional groups in manifest order

    Raises:
        ProjectDependenciesNotFound: If the manifest declares neither table
    """
    if not manifest.has_dependency_tables:
        raise ProjectDependenciesNotFound(manifest.path)

    groups = [DependencyGroup(REQUIRED_GROUP, GroupKind.REQUIRED, tuple(manifest.required or ()))]
    for name, deps in manifest.optional or ():
        groups.append(DependencyGroup(name, GroupKind.OPTIONAL, tuple(deps)))

    return GroupRegistry(groups)
