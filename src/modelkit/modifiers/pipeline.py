"""
Priority-grouped modifier evaluation.

Modifiers attached to one value are grouped by priority. Groups run in
ascending priority order; inside a group, modifiers run in attachment
order.

Rules:
    - Every modifier of a group runs, even after a sibling failed, so that
      independent same-phase checks each report their own outcome.
    - A failed group stops the run. Later groups are not attempted and the
      value is not advanced past the failing group.
    - A successful group hands its (possibly filtered) value to the next.

Priority is read once, when the modifier is attached.
"""

import copy
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Tuple

from .modifier import Modifier


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ModifierFailure:
    """One failing modifier of a pipeline run."""

    name: str
    kind: str
    priority: int
    code: str
    message: str


@dataclass
class PipelineResult:
    """Outcome of a pipeline run."""

    value: Any
    ok: bool
    failures: List[ModifierFailure] = field(default_factory=list)
    failed_priority: Optional[int] = None

    @property
    def messages(self) -> List[str]:
        return [f.message for f in self.failures]

    def __bool__(self) -> bool:
        return self.ok


class ModifierPipeline:
    """Ordered collection of modifiers attached to one value slot."""

    def __init__(self):
        self._groups: Dict[int, List[Modifier]] = {}

    def attach(self, modifier: Modifier) -> "ModifierPipeline":
        modifier = Modifier.coerce(modifier)
        modifier.lock()
        priority = modifier.get_priority()
        is_new_priority = priority not in self._groups
        self._groups.setdefault(priority, []).append(modifier)
        if is_new_priority:
            self._groups = dict(sorted(self._groups.items()))
        return self

    def groups(self) -> List[Tuple[int, List[Modifier]]]:
        return [(priority, list(group)) for priority, group in self._groups.items()]

    def modifiers(self) -> List[Modifier]:
        return [m for group in self._groups.values() for m in group]

    def evaluate(self, value: Any) -> PipelineResult:
        for priority, group in self._groups.items():
            output = value
            failures = []
            for modifier in group:
                output, ok = modifier.evaluate(output)
                if not ok:
                    failures.append(ModifierFailure(
                        name=modifier.name,
                        kind=modifier.prototype.kind.value,
                        priority=priority,
                        code=modifier.code,
                        message=modifier.error_message,
                    ))
            if failures:
                logger.debug(
                    "Pipeline stopped at priority %d with %d failure(s): %s",
                    priority, len(failures), ", ".join(f.code for f in failures),
                )
                return PipelineResult(value, False, failures, priority)
            value = output
        return PipelineResult(value, True)

    def unset_errors(self) -> "ModifierPipeline":
        for modifier in self.modifiers():
            modifier.unset_error()
        return self

    def clone(self) -> "ModifierPipeline":
        return copy.deepcopy(self)

    def __iter__(self) -> Iterator[Modifier]:
        return iter(self.modifiers())

    def __len__(self) -> int:
        return sum(len(group) for group in self._groups.values())
