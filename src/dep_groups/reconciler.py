"""
Reconciliation of the manifest with the installed state of the environment.

All functions here are pure: they take a manifest snapshot and return a new
one. ``write_if_changed`` is the single place a reconciled manifest is
persisted.
"""

from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Tuple, Union

from .dependency import Dependency, InstalledPackage
from .manifest import Manifest, write_manifest
from .structured_logging import log_manifest_write, log_reconcile_complete


def _repin(
    dependencies: Tuple[Dependency, ...], package: InstalledPackage
) -> Tuple[Tuple[Dependency, ...], List[Dependency]]:
    """
    Move the entries matching ``package`` to the end of the group, pinned.

    Entries split by environment marker are pinned one by one so each keeps
    its own marker.
    """
    pinned = [dep.pinned(package.version) for dep in dependencies if dep.key == package.key]
    if not pinned:
        return dependencies, []

    kept = tuple(dep for dep in dependencies if dep.key != package.key)
    return kept + tuple(pinned), pinned


def reconcile_installed(manifest: Manifest, installed: Sequence[InstalledPackage]) -> Manifest:
    """
    Pin every declared dependency to the version actually installed.

    Matching entries are removed and their pinned forms appended to the same
    group, so reconciled entries end up after untouched ones in installed order.
    Dependencies that are not installed are left as they are.
    """
    required = manifest.required
    groups = list(manifest.optional) if manifest.optional is not None else None
    pinned_names: List[str] = []

    for package in installed:
        if required is not None:
            required, pinned = _repin(required, package)
            pinned_names.extend(str(dep) for dep in pinned)

        if groups is not None:
            for index, (name, deps) in enumerate(groups):
                new_deps, pinned = _repin(deps, package)
                if pinned:
                    groups[index] = (name, new_deps)
                    pinned_names.extend(f"{name}:{dep}" for dep in pinned)

    log_reconcile_complete(pinned_names)
    result = manifest
    if required is not None:
        result = result.with_required(required)
    if groups is not None:
        result = result.with_optional(groups)
    return result


def record_tool_dependencies(
    manifest: Manifest,
    installed: Sequence[InstalledPackage],
    tool_names: Iterable[str],
    group: str = "dev",
) -> Manifest:
    """
    Add installed helper tools the manifest does not declare anywhere.

    Each missing tool is appended to ``group`` pinned to its installed
    version; the group is created when it does not exist.
    """
    missing = [name for name in tool_names if not manifest.contains_dependency_any(name)]
    if not missing:
        return manifest

    missing_keys = {Dependency(name).key for name in missing}
    added = [
        package.to_dependency()
        for package in installed
        if package.key in missing_keys
    ]
    if not added:
        return manifest

    existing = manifest.optional_group(group) or ()
    log_reconcile_complete([], added=[str(dep) for dep in added])
    return manifest.with_group(group, existing + tuple(added))


def write_if_changed(
    original: Manifest, updated: Manifest, file_path: Union[str, Path, None] = None
) -> bool:
    """
    Persist ``updated`` only when it differs from the loaded snapshot.

    Returns:
        bool: True if the manifest file was written
    """
    target = file_path if file_path is not None else updated.path
    if original == updated:
        log_manifest_write(str(target), False)
        return False

    write_manifest(updated, target)
    log_manifest_write(str(target), True)
    return True
