"""Tests for GEDCOM import and date parsing."""

from datetime import date

import pytest

from famtree.models import Gender, RelationshipType
from famtree.parsing import (
    extract_numeric_id,
    month_number,
    normalize_data,
    parse_date_string,
    parse_gedcom,
)

GEDCOM = """\
0 HEAD
1 SOUR TEST
1 GEDC
2 VERS 5.5.1
2 FORM LINEAGE-LINKED
1 CHAR UTF-8
0 @I1@ INDI
1 NAME John /Smith/
1 SEX M
1 BIRT
2 DATE 1 JAN 1900
2 PLAC Boston
1 FAMS @F1@
0 @I2@ INDI
1 NAME Mary /Jones/
1 SEX F
1 BIRT
2 DATE ABT 1902
1 FAMS @F1@
0 @I3@ INDI
1 NAME Tom /Smith/
1 SEX M
1 BIRT
2 DATE 15 MAR 1930
1 DEAT
2 DATE 1990
1 FAMC @F1@
0 @F1@ FAM
1 HUSB @I1@
1 WIFE @I2@
1 CHIL @I3@
1 MARR
2 DATE 10 JUN 1925
2 PLAC Salem
0 TRLR
"""


@pytest.fixture
def gedcom_file(tmp_path):
    path = tmp_path / "smith.ged"
    path.write_text(GEDCOM, encoding="utf-8")
    return path


class TestParseDateString:

    @pytest.mark.parametrize(
        "text, expected",
        [
            ("1839-08-29", date(1839, 8, 29)),
            ("25 NOV 1954", date(1954, 11, 25)),
            ("02 May1838", date(1838, 5, 2)),
            ("April 17, 1850", date(1850, 4, 17)),
            ("NOV 1954", date(1954, 11, 1)),
            ("May, 1837", date(1837, 5, 1)),
            ("05/15/1923", date(1923, 5, 15)),
            ("1698", date(1698, 1, 1)),
            ("ABT 1900", date(1900, 1, 1)),
            ("BEF. 12 DEC 1880", date(1880, 12, 12)),
            ("(1750)", date(1750, 1, 1)),
        ],
    )
    def test_formats(self, text, expected):
        assert parse_date_string(text) == expected

    @pytest.mark.parametrize("text", [None, "", "unknown", "31 FEB 1900", "JUNK 1900", "ABT"])
    def test_unparseable(self, text):
        assert parse_date_string(text) is None

    def test_month_number(self):
        assert month_number("Jan.") == 1
        assert month_number("September") == 9
        assert month_number("Sept") == 9
        assert month_number("Foo") is None


class TestExtractNumericId:

    def test_xrefs(self):
        assert extract_numeric_id("@I_347421849@") == 347421849
        assert extract_numeric_id("I674624289") == 674624289

    def test_no_digits(self):
        with pytest.raises(ValueError):
            extract_numeric_id("@FAM@")


class TestNormalizeData:

    def test_persons(self, gedcom_file):
        graph = normalize_data(parse_gedcom(gedcom_file))
        by_id = {p.person_id: p for p in graph.persons}
        assert set(by_id) == {1, 2, 3}

        john = by_id[1]
        assert (john.first_name, john.last_name) == ("John", "Smith")
        assert john.gender == Gender.MALE
        assert john.date_of_birth == date(1900, 1, 1)
        assert john.birth_place == "Boston"
        assert john.is_alive

        assert by_id[2].gender == Gender.FEMALE
        assert by_id[2].date_of_birth == date(1902, 1, 1)

        tom = by_id[3]
        assert not tom.is_alive
        assert tom.date_of_death == date(1990, 1, 1)

    def test_family_records(self, gedcom_file):
        graph = normalize_data(parse_gedcom(gedcom_file))

        assert [(r.parent_id, r.child_id) for r in graph.relationships] == [(1, 3), (2, 3)]
        assert all(r.relationship_type == RelationshipType.BIOLOGICAL for r in graph.relationships)

        [marriage] = graph.marriages
        assert (marriage.spouse1_id, marriage.spouse2_id) == (1, 2)
        assert marriage.is_current
        assert marriage.marriage_date == date(1925, 6, 10)
        assert marriage.marriage_place == "Salem"
