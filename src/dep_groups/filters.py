"""
Include/exclude filtering of dependency groups.

Selection is evaluated per group, in registry order:

* with no include list, every group is selected unless excluded;
* with an include list, a group is selected only if included and not excluded.

The required group follows the same rule unless ``force_required`` is set,
in which case it is selected whenever it is not explicitly excluded.
"""

from dataclasses import dataclass, field
from typing import FrozenSet, Iterable, List, Optional

from .dependency import Dependency
from .exceptions import DependencyGroupConflict, DependencyGroupNotFound
from .groups import REQUIRED_GROUP, DependencyGroup, GroupRegistry


def split_group_names(value: Optional[str]) -> FrozenSet[str]:
    """Split a comma-separated option value into group names."""
    if not value:
        return frozenset()
    return frozenset(name.strip() for name in value.split(",") if name.strip())


@dataclass(frozen=True)
class FilterRequest:
    include: FrozenSet[str] = field(default_factory=frozenset)
    exclude: FrozenSet[str] = field(default_factory=frozenset)

    @classmethod
    def from_options(cls, include: Optional[str] = None, exclude: Optional[str] = None) -> "FilterRequest":
        return cls(include=split_group_names(include), exclude=split_group_names(exclude))

    @classmethod
    def from_groups(cls, include: Iterable[str] = (), exclude: Iterable[str] = ()) -> "FilterRequest":
        return cls(include=frozenset(include), exclude=frozenset(exclude))

    @property
    def is_empty(self) -> bool:
        return not self.include and not self.exclude


def validate_filter(request: FilterRequest, registry: GroupRegistry) -> None:
    """
    Check a filter request against the registry's groups.

    Raises:
        DependencyGroupNotFound: If a named group is not declared
        DependencyGroupConflict: If groups are both included and excluded,
            listing every conflicting group
    """
    for name in sorted(request.include | request.exclude):
        if name != REQUIRED_GROUP and name not in registry:
            raise DependencyGroupNotFound(name)

    conflicts = [name for name in registry.names if name in request.include and name in request.exclude]
    if conflicts:
        raise DependencyGroupConflict(conflicts)


def is_group_selected(group: DependencyGroup, request: FilterRequest, force_required: bool = False) -> bool:
    if group.name in request.exclude:
        return False
    if force_required and group.is_required:
        return True
    if not request.include:
        return True
    return group.name in request.include


def apply_filter(
    request: FilterRequest, registry: GroupRegistry, force_required: bool = False
) -> List[Dependency]:
    """
    Concatenate the dependencies of every selected group.

    Order is registry order, then declaration order within each group. A
    dependency listed in several selected groups is emitted once per group.
    """
    selected: List[Dependency] = []
    for group in registry:
        if is_group_selected(group, request, force_required):
            selected.extend(group.dependencies)
    return selected


def selected_group_names(
    request: FilterRequest, registry: GroupRegistry, force_required: bool = False
) -> List[str]:
    return [group.name for group in registry if is_group_selected(group, request, force_required)]


def select_dependencies(
    request: FilterRequest, registry: GroupRegistry, force_required: bool = False
) -> List[Dependency]:
    """Validate ``request`` and return the filtered dependency list."""
    validate_filter(request, registry)
    return apply_filter(request, registry, force_required)
