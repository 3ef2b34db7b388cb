from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum
from typing import Generic, TypeVar

from fnb_erp.core.errors import InvalidStateError, SegregationOfDutiesError, ValidationError

S = TypeVar("S", bound=Enum)


@dataclass(frozen=True)
class StateMachine(Generic[S]):
    """Explicit (status, action) -> status table for one workflow.

    Transitions not listed in ``table`` are illegal; there is no implicit
    self-transition.
    """

    name: str
    table: dict[tuple[S, str], S]
    messages: dict[str, str] = field(default_factory=dict)

    def transition(self, current: S, action: str) -> S:
        try:
            return self.table[(current, action)]
        except KeyError:
            message = self.messages.get(action) or (
                f"Cannot {action} {self.name} in status {current.value}"
            )
            raise InvalidStateError(message) from None


def ensure_actor_distinct(
    actor_id: str,
    *prior_actor_ids: str | None,
    message: str = "The same person cannot perform more than one stage (segregation of duties)",
) -> None:
    if actor_id in {prior for prior in prior_actor_ids if prior}:
        raise SegregationOfDutiesError(message)


def append_note(existing: str | None, addition: str | None, *, separator: str = "\n") -> str | None:
    if not addition:
        return existing
    if not existing:
        return addition
    return f"{existing}{separator}{addition}"


def ensure_unique_ids(ids: Iterable[str], *, label: str) -> None:
    seen: set[str] = set()
    for value in ids:
        if value in seen:
            raise ValidationError(f"Duplicate {label} {value}")
        seen.add(value)


def parse_enum_filter(raw: str | None, enum_cls: type[S], *, label: str = "status") -> list[S] | None:
    """Parse a comma-separated filter such as ``"DRAFT,APPROVED"`` into enum members."""
    if not raw or not raw.strip():
        return None
    statuses: list[S] = []
    for part in raw.split(","):
        value = part.strip().upper()
        if not value:
            continue
        try:
            statuses.append(enum_cls(value))
        except ValueError:
            raise ValidationError(f"Unknown {label} {value}") from None
    return statuses or None
