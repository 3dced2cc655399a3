"""Per-project serialization of checkouts.

Every checkout of a project runs under that project's lock, from reading the
cart to the last settlement step, so two checkouts of the same project never
interleave their validate-then-decrement sequences. The locks are process
local; across processes the conditional decrement in ``Product.apply_delta``
is what still refuses to oversell.
"""

import threading
from collections.abc import Iterator
from contextlib import contextmanager

_registry_lock = threading.Lock()
_project_locks: dict[str, threading.Lock] = {}


def _lock_for(project_id: str) -> threading.Lock:
    with _registry_lock:
        return _project_locks.setdefault(str(project_id), threading.Lock())


@contextmanager
def project_guard(project_id: str) -> Iterator[None]:
    lock = _lock_for(project_id)
    with lock:
        yield
