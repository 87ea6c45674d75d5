"""
Label computations shared by both reconcilers.

Everything in this module is pure: the functions never mutate their inputs
and never talk to the cluster.
"""

from collections.abc import Mapping


def relevant_labels(labels: Mapping[str, str], prefix: str) -> dict[str, str]:
    """
    Select the labels carrying ``prefix`` and strip the prefix from their keys.

    Keys that would be empty once stripped are not valid label keys and are
    skipped.

    Args:
        labels: Labels of the source object
        prefix: Propagation prefix, e.g. ``propagate.``

    Returns:
        New mapping of unprefixed keys to values
    """
    return {
        key[len(prefix) :]: value
        for key, value in labels.items()
        if key.startswith(prefix) and len(key) > len(prefix)
    }


def merge_labels(
    source: Mapping[str, str], target: Mapping[str, str]
) -> dict[str, str] | None:
    """
    Compute the labels ``target`` must have to include every pair of ``source``.

    Keys of ``target`` that are not part of ``source`` are left untouched.

    Args:
        source: Labels that have to be propagated (already unprefixed)
        target: Current labels of the object receiving them

    Returns:
        The new label mapping, or None when no change is required
    """
    changed = {key: value for key, value in source.items() if target.get(key) != value}
    if not changed:
        return None
    return {**target, **changed}
