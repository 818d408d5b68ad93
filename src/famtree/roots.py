"""Choosing the roots of the rendered hierarchy."""

from dataclasses import dataclass, field
from datetime import date
import logging

from famtree.models import Marriage, ParentChildEdge, Person

logger = logging.getLogger(__name__)


@dataclass
class RootSelection:
    roots: list[Person] = field(default_factory=list)
    used_fallback: bool = False


def first_marriage(person_id: int, marriages: list[Marriage]) -> Marriage | None:
    """First marriage row naming person_id, by collection order."""
    for m in marriages:
        if m.spouse1_id == person_id or m.spouse2_id == person_id:
            return m
    return None


def oldest_person(persons: list[Person], today: date | None = None) -> Person:
    """
    Person with the earliest birth date. A missing date counts as today, so undated
    persons only win when nobody is dated; ties keep collection order.
    """
    today = today or date.today()
    return min(persons, key=lambda p: p.date_of_birth or today)


def select_roots(
    persons: list[Person],
    relationships: list[ParentChildEdge],
    marriages: list[Marriage],
    today: date | None = None,
) -> RootSelection:
    """
    Determine the ordered roots of a tree.

    A person is a root when they have no recorded parent and are not married to
    someone whose own subtree will show them as a spouse. When two parentless
    persons are married to each other, only the one with the smaller id is a root.
    If everybody has a recorded parent (a cycle), the oldest person is the single root.
    """
    if not persons:
        return RootSelection()

    known_ids = {p.person_id for p in persons}
    child_ids = {r.child_id for r in relationships}
    candidates = [p for p in persons if p.person_id not in child_ids]

    if not candidates:
        root = oldest_person(persons, today)
        logger.warning(
            "Every person has a recorded parent; falling back to oldest person %s (%s) as root",
            root.person_id,
            root.first_name,
        )
        return RootSelection(roots=[root], used_fallback=True)

    roots = []
    for p in candidates:
        marriage = first_marriage(p.person_id, marriages)
        if marriage is None:
            roots.append(p)
            continue

        spouse_id = marriage.partner_of(p.person_id)
        if spouse_id == p.person_id or spouse_id not in known_ids:
            # Self-marriage or a partner outside this tree
            roots.append(p)
        elif spouse_id in child_ids:
            # Spouse has parents, so this person shows up beside them
            continue
        elif p.person_id < spouse_id:
            roots.append(p)

    return RootSelection(roots=roots)
