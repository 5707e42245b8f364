"""Namespace scoping for pod mutation."""

from collections.abc import Sequence


def in_scope(namespace: str, allowlist: Sequence[str]) -> bool:
    """
    Decide whether pods in ``namespace`` should be mutated.

    An empty allow-list puts every namespace in scope, including the empty
    string. Otherwise the namespace must match one entry exactly
    (case-sensitive, no wildcards or prefixes).

    Args:
        namespace: Namespace of the pod being admitted
        allowlist: Configured target namespaces

    Returns:
        True if the pod should be mutated
    """
    if not allowlist:
        return True
    return namespace in allowlist
