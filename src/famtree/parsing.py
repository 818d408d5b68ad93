"""GEDCOM import and date handling."""

from datetime import date
from pathlib import Path
import re

from ged4py import GedcomReader

from famtree.graph import TreeGraph
from famtree.models import Gender, Marriage, ParentChildEdge, Person, RelationshipType

MONTHS = {
    "JAN": 1,
    "FEB": 2,
    "MAR": 3,
    "APR": 4,
    "MAY": 5,
    "JUN": 6,
    "JUL": 7,
    "AUG": 8,
    "SEP": 9,
    "OCT": 10,
    "NOV": 11,
    "DEC": 12,
}

QUALIFIERS = re.compile(
    r"^(ABT\.?|ABOUT|BEF\.?|BEFORE|AFT\.?|AFTER|EST\.?|CAL\.?|FROM|TO|BET\.?|AND|CIRCA|CA\.?|AROUND):?\s*",
    re.IGNORECASE,
)

# (regex, order of the captured groups); "mon" is a month name
DATE_PATTERNS = [
    (re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})$"), ("year", "month", "day")),  # 1839-08-29
    (re.compile(r"^(\d{1,2})\s+([A-Za-z]+)\.?\s*(\d{4})$"), ("day", "mon", "year")),  # 25 NOV 1954, 02 May1838
    (re.compile(r"^([A-Za-z]+)\.?\s*(\d{1,2}),?\s*(\d{4})$"), ("mon", "day", "year")),  # April 17, 1850
    (re.compile(r"^([A-Za-z]+)\.?,?\s*(\d{4})$"), ("mon", "year")),  # NOV 1954, May, 1837
    (re.compile(r"^(\d{1,2})[-/\s](\d{1,2})[-/\s](\d{4})$"), ("month", "day", "year")),  # 05/15/1923
    (re.compile(r"^(\d{4})$"), ("year",)),  # 1698
]


def month_number(name: str) -> int | None:
    """JAN, Jan., January, SEPT -> month number."""
    return MONTHS.get(name.upper().rstrip(".")[:3])


def parse_date_string(date_str: str | None) -> date | None:
    """
    Parse a GEDCOM or free-form date into a date. Missing day or month default
    to 1; qualifiers (ABT, BEF, circa, ...) and parentheses are ignored.
    Returns None when the string cannot be understood.
    """
    if not date_str:
        return None

    s = date_str.strip().strip("()").rstrip("?")
    s = QUALIFIERS.sub("", s).strip()
    if not s:
        return None

    for pattern, fields in DATE_PATTERNS:
        match = pattern.match(s)
        if not match:
            continue
        parts = {"month": 1, "day": 1}
        for name, value in zip(fields, match.groups()):
            if name == "mon":
                parts["month"] = month_number(value)
            else:
                parts[name] = int(value)
        if parts["month"] is None:
            continue
        try:
            return date(parts["year"], parts["month"] or 1, parts["day"] or 1)
        except ValueError:
            return None

    return None


def extract_numeric_id(xref_id: str) -> int:
    """Extract numeric part from GEDCOM xref_id like '@I_347421849@' or 'I674624289'."""
    digits = re.sub(r"[^0-9]", "", xref_id)
    if not digits:
        raise ValueError(f"No numeric ID found in: {xref_id}")
    return int(digits)


def extract_name_parts(indi) -> tuple[str, str | None]:
    """Given name (or 'Unknown') and surname of an individual record."""
    name_rec = indi.sub_tag("NAME")
    if name_rec is None or name_rec.value is None:
        return ("Unknown", None)

    # ged4py returns NAME as tuple: (given, surname, suffix)
    if isinstance(name_rec.value, tuple):
        given, surname, _ = name_rec.value
        return (given or "Unknown", surname or None)

    givn = name_rec.sub_tag("GIVN")
    surn = name_rec.sub_tag("SURN")
    given = givn.value if givn else str(name_rec.value).split("/")[0].strip()
    return (given or "Unknown", surn.value if surn else None)


def extract_event(rec, tag: str) -> tuple[bool, date | None, str | None]:
    """Whether the event is present, plus its date and place."""
    event = rec.sub_tag(tag)
    if event is None:
        return (False, None, None)

    date_rec = event.sub_tag("DATE")
    place_rec = event.sub_tag("PLAC")
    # ged4py may return DateValue objects
    when = parse_date_string(str(date_rec.value)) if date_rec and date_rec.value else None
    place = str(place_rec.value) if place_rec and place_rec.value else None
    return (True, when, place)


def extract_photo(indi) -> str | None:
    file_rec = indi.sub_tag("OBJE/FILE")
    return str(file_rec.value) if file_rec and file_rec.value else None


def parse_gedcom(filepath: Path) -> GedcomReader:
    return GedcomReader(str(filepath))


def normalize_data(reader: GedcomReader) -> TreeGraph:
    """
    Extract persons, parent-child edges and marriages from parsed GEDCOM data.
    Ignores non-standard Ancestry-specific tags (starting with _).
    """
    graph = TreeGraph()

    for rec in reader.records0("INDI"):
        if rec.xref_id is None:
            continue

        first_name, last_name = extract_name_parts(rec)
        sex = rec.sub_tag("SEX")
        _, birth_date, birth_place = extract_event(rec, "BIRT")
        died, death_date, death_place = extract_event(rec, "DEAT")

        graph.persons.append(
            Person(
                person_id=extract_numeric_id(rec.xref_id),
                first_name=first_name,
                last_name=last_name,
                gender=Gender.parse(sex.value if sex else None),
                date_of_birth=birth_date,
                date_of_death=death_date,
                is_alive=not died,
                birth_place=birth_place,
                death_place=death_place,
                profile_photo=extract_photo(rec),
            )
        )

    for rec in reader.records0("FAM"):
        if rec.xref_id is None:
            continue

        husb = rec.sub_tag("HUSB")
        wife = rec.sub_tag("WIFE")
        parent_ids = [
            extract_numeric_id(p.xref_id) for p in (husb, wife) if p is not None and p.xref_id
        ]

        if len(parent_ids) == 2:
            _, married_on, married_at = extract_event(rec, "MARR")
            divorced, divorced_on, _ = extract_event(rec, "DIV")
            graph.marriages.append(
                Marriage(
                    spouse1_id=parent_ids[0],
                    spouse2_id=parent_ids[1],
                    is_current=not divorced,
                    marriage_date=married_on,
                    marriage_place=married_at,
                    divorce_date=divorced_on,
                )
            )

        for child in rec.sub_tags("CHIL"):
            if not child.xref_id:
                continue
            child_id = extract_numeric_id(child.xref_id)
            for parent_id in parent_ids:
                graph.relationships.append(
                    ParentChildEdge(
                        parent_id=parent_id,
                        child_id=child_id,
                        relationship_type=RelationshipType.BIOLOGICAL,
                    )
                )

    return graph
