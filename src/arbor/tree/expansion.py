"""Which folders a full load has to enumerate besides the root."""

from __future__ import annotations

import os
from collections.abc import Iterable
from dataclasses import dataclass, field

from arbor.tree.pathutil import ancestors


@dataclass(slots=True)
class ExpansionPlan:
    queue: list[str] = field(default_factory=list)
    # Reveal ancestors that the view should open by default.
    reveal_expanded: list[str] = field(default_factory=list)


def resolve_load_queue(
    root_path: str,
    expanded: Iterable[str],
    reveal_path: str | None = None,
    sep: str = os.sep,
) -> ExpansionPlan:
    """Folders to load after ``root_path``, in order.

    Currently expanded folders come first so a refresh restores them, then the
    ancestors of ``reveal_path`` that lie inside ``root_path``.
    """
    plan = ExpansionPlan(queue=list(expanded))
    if reveal_path:
        for folder in ancestors(reveal_path, sep):
            if len(folder) > len(root_path):
                plan.queue.append(folder)
                plan.reveal_expanded.append(folder)
    plan.queue = list(dict.fromkeys(plan.queue))
    return plan
