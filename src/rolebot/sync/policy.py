"""Exclusive / inclusive role policy.

This is the single place that decides which panel roles a member should gain
or lose. The sweep, the live reaction handlers and the button toggle all go
through these functions so the rules cannot drift apart.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional, Sequence, Tuple


@dataclass(frozen=True)
class RolePlan:
    """Role mutations for one member. Adds are applied before removes."""
    add: Tuple[int, ...] = ()
    remove: Tuple[int, ...] = ()
    keep: Optional[int] = None

    @property
    def empty(self) -> bool:
        return not self.add and not self.remove


def plan_member(
    role_ids: Sequence[int],
    desired: Iterable[int],
    held: Iterable[int],
    exclusive: bool,
) -> RolePlan:
    """Plan the mutations that move a member toward ``desired``.

    ``role_ids`` is the panel's roles in panel order and ``held`` the panel
    roles the member currently has. With ``exclusive`` the first desired role
    in panel order is kept and every other held panel role is removed, even
    one the member also desires. Without it, missing desired roles are added
    and nothing is removed.
    """
    wanted = set(desired)
    has = set(held)

    if exclusive:
        keep = next((rid for rid in role_ids if rid in wanted), None)
        add = (keep,) if keep is not None and keep not in has else ()
        remove = tuple(rid for rid in role_ids if rid != keep and rid in has)
        return RolePlan(add=add, remove=remove, keep=keep)

    add = tuple(rid for rid in role_ids if rid in wanted and rid not in has)
    return RolePlan(add=add)


def plan_cleanup(role_ids: Sequence[int], held: Iterable[int]) -> RolePlan:
    """Strip every held panel role from a member who no longer signals any."""
    has = set(held)
    return RolePlan(remove=tuple(rid for rid in role_ids if rid in has))


def plan_toggle(
    role_ids: Sequence[int],
    clicked: int,
    held: Iterable[int],
    exclusive: bool,
) -> RolePlan:
    """Plan a button click.

    Exclusive panels select ``clicked`` and drop the rest. Inclusive panels
    flip ``clicked`` only.
    """
    has = set(held)
    if exclusive:
        return plan_member(role_ids, [clicked], has, exclusive=True)
    if clicked in has:
        return RolePlan(remove=(clicked,))
    return RolePlan(add=(clicked,))
