"""Data classes for family tree entities and the built hierarchy."""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum


class Gender(str, Enum):
    MALE = "Male"
    FEMALE = "Female"
    OTHER = "Other"

    @classmethod
    def parse(cls, value: str | None) -> "Gender":
        """Map stored or GEDCOM values ("Male", "M", "f", ...) onto a Gender."""
        if not value:
            return cls.OTHER
        v = value.strip().upper()
        if v in ("M", "MALE"):
            return cls.MALE
        if v in ("F", "FEMALE"):
            return cls.FEMALE
        return cls.OTHER


class RelationshipType(str, Enum):
    BIOLOGICAL = "Biological"
    ADOPTIVE = "Adoptive"
    STEP = "Step"
    FOSTER = "Foster"


@dataclass
class FamilyTree:
    tree_id: int
    tree_name: str
    user_id: int | None = None
    description: str | None = None
    is_public: bool = False


@dataclass(frozen=True)
class Person:
    person_id: int
    first_name: str
    tree_id: int | None = None
    middle_name: str | None = None
    last_name: str | None = None
    maiden_name: str | None = None
    gender: Gender = Gender.OTHER
    date_of_birth: date | None = None
    date_of_death: date | None = None
    is_alive: bool = True
    birth_place: str | None = None
    death_place: str | None = None
    occupation: str | None = None
    bio: str | None = None
    profile_photo: str | None = None  # path or URL, resolved by the renderer

    @property
    def full_name(self) -> str:
        parts = [self.first_name, self.middle_name, self.last_name]
        return " ".join(p for p in parts if p)

    @property
    def initials(self) -> str:
        first = self.first_name[:1] if self.first_name else ""
        last = self.last_name[:1] if self.last_name else ""
        return first + last


@dataclass(frozen=True)
class ParentChildEdge:
    parent_id: int
    child_id: int
    relationship_type: RelationshipType = RelationshipType.BIOLOGICAL
    relationship_id: int | None = None


@dataclass(frozen=True)
class Marriage:
    spouse1_id: int
    spouse2_id: int
    is_current: bool = True
    marriage_date: date | None = None
    marriage_place: str | None = None
    divorce_date: date | None = None
    marriage_type: str = "Marriage"
    marriage_id: int | None = None

    def partner_of(self, person_id: int) -> int | None:
        """Return the other spouse, or None if person_id is not part of this marriage."""
        if self.spouse1_id == person_id:
            return self.spouse2_id
        if self.spouse2_id == person_id:
            return self.spouse1_id
        return None


@dataclass
class SpouseRef:
    id: int
    name: str
    data: Person


@dataclass(eq=False)
class HierarchyNode:
    id: int
    name: str
    data: Person
    children: list["HierarchyNode"] = field(default_factory=list)
    hidden_children: list["HierarchyNode"] = field(default_factory=list)
    spouse: SpouseRef | None = None
    is_cycle_ref: bool = False  # repeated ancestor, truncated to a leaf

    # Filled in by the layout engine
    x: float = 0.0
    y: float = 0.0
    depth: int = 0

    @property
    def collapsed(self) -> bool:
        return bool(self.hidden_children)

    @property
    def has_children(self) -> bool:
        return bool(self.children or self.hidden_children)

    def all_children(self) -> list["HierarchyNode"]:
        return self.children or self.hidden_children
