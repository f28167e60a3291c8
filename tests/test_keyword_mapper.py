"""Tests for synonym lookup and deterministic keyword mapping."""

import re
from pathlib import Path

import pytest

from credocr.mapping.keyword_mapper import (
    KeywordMappingEngine,
    clean_value,
    is_plausible,
    label_pattern,
    numeric_family,
)
from credocr.mapping.schema import FieldSpec
from credocr.mapping.synonyms import SynonymTable, get_field_synonyms

MARKSHEET_TEXT = """BOARD OF SECONDARY EDUCATION
Student Name: Asha Devi
Father's Name: Ramesh Kumar
Roll No: 2301456
Total Marks 412
Percentage: 82.4%
"""


class TestSynonymTable:
    """Tests for SynonymTable lookups and overrides."""

    def test_field_name_comes_first(self) -> None:
        labels = get_field_synonyms("Percentage")
        assert labels[0] == "percentage"
        assert "%" in labels
        assert labels.count("percentage") == 1

    def test_underscore_variant(self) -> None:
        assert SynonymTable().get("roll_number")[:2] == ["roll_number", "roll number"]

    def test_unknown_field(self) -> None:
        assert SynonymTable().get("hostelblock") == ["hostelblock"]

    def test_override_replaces_builtin_labels(self) -> None:
        table = SynonymTable({"RollNumber": ["Seat No"]})
        assert table.get("rollnumber") == ["rollnumber", "seat no"]
        assert "fullname" in table.configured_fields()

    def test_from_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "synonyms.yaml"
        path.write_text("fullname:\n  - Name of Candidate\n")
        table = SynonymTable.from_yaml(path)
        assert table.get("fullname") == ["fullname", "name of candidate"]

    def test_from_missing_yaml(self, tmp_path: Path) -> None:
        table = SynonymTable.from_yaml(tmp_path / "absent.yaml")
        assert table.get("fullname") == get_field_synonyms("fullname")

    def test_from_none(self) -> None:
        assert SynonymTable.from_yaml(None).get("dob")[1] == "date of birth"


class TestValueHelpers:
    """Tests for label patterns, cleanup and plausibility checks."""

    def test_label_pattern_respects_word_edges(self) -> None:
        pattern = label_pattern("roll no")
        assert re.search(pattern, "ROLL   NO: 12", re.IGNORECASE)
        assert not re.search(pattern, "enrollno: 12", re.IGNORECASE)
        assert not re.search(pattern, "roll note", re.IGNORECASE)

    def test_label_pattern_symbol_label(self) -> None:
        assert re.search(label_pattern("%"), "82%")

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("  Asha   Devi  ", "Asha Devi"),
            ("2301456....", "2301456"),
            ("Ranchi -- Jharkhand", "Ranchi - Jharkhand"),
            ("Asha ~~ Devi", "Asha Devi"),
            ("- 412 -", "412"),
        ],
    )
    def test_clean_value(self, raw: str, expected: str) -> None:
        assert clean_value(raw) == expected

    def test_clean_value_truncates(self) -> None:
        assert len(clean_value("A" * 300)) == 100

    @pytest.mark.parametrize(
        "value, field_name, field_type",
        [
            ("", "fullname", "string"),
            ("-- / --", "fullname", "string"),
            ("Enter your name", "fullname", "string"),
            ("Roll No.", "rollnumber", "string"),
            ("A", "fullname", "string"),
            ("1234", "fullname", "string"),
            ("eighty", "percentage", "number"),
        ],
    )
    def test_implausible(self, value: str, field_name: str, field_type: str) -> None:
        assert not is_plausible(value, field_name, field_type)

    def test_plausible(self) -> None:
        assert is_plausible("Asha Devi", "fullname", "string")
        assert is_plausible("82.4%", "percentage", "number")

    def test_numeric_family(self) -> None:
        assert numeric_family("percentage", ["percentage"])[0] == "percentage"
        assert numeric_family("cgpa", ["cgpa"])[0] == "gpa"
        assert numeric_family("obtained", ["total marks"])[0] == "marks"
        assert numeric_family("rollnumber", ["roll no"]) is None


class TestKeywordMappingEngine:
    """Tests for KeywordMappingEngine.map and its fallbacks."""

    @pytest.fixture
    def engine(self) -> KeywordMappingEngine:
        return KeywordMappingEngine()

    def test_percentage_with_label(self, engine: KeywordMappingEngine) -> None:
        schema = {"percentage": FieldSpec(type="number")}
        assert engine.map("Percentage: 87.5%", schema) == {"percentage": 87.5}

    def test_marksheet(self, engine: KeywordMappingEngine) -> None:
        schema = {
            "studentname": FieldSpec(type="string", required=True),
            "fathername": FieldSpec(),
            "rollnumber": FieldSpec(),
            "marks": FieldSpec(type="integer"),
            "percentage": FieldSpec(type="number"),
        }
        assert engine.map(MARKSHEET_TEXT, schema) == {
            "studentname": "Asha Devi",
            "fathername": "Ramesh Kumar",
            "rollnumber": "2301456",
            "marks": 412,
            "percentage": 82.4,
        }

    def test_values_keep_their_case(self, engine: KeywordMappingEngine) -> None:
        result = engine.map("FULL NAME: McKenzie O'Brien", {"fullname": FieldSpec()})
        assert result == {"fullname": "McKenzie O'Brien"}

    def test_next_line_value(self, engine: KeywordMappingEngine) -> None:
        text = "Certificate Number\nJH-INC-2023-0042\nIssued By: SDO Ranchi"
        result = engine.map(text, {"certificatenumber": FieldSpec(), "issuedby": FieldSpec()})
        assert result == {"certificatenumber": "JH-INC-2023-0042", "issuedby": "SDO Ranchi"}

    def test_dash_separated_value(self, engine: KeywordMappingEngine) -> None:
        result = engine.map("Annual Income - Rs. 1,20,000", {"annualincome": FieldSpec(type="number")})
        assert result == {"annualincome": 120000.0}

    def test_spaced_identifier(self) -> None:
        engine = KeywordMappingEngine(SynonymTable({"aadhaarnumber": ["aadhaar number"]}))
        result = engine.map(
            "Aadhaar Number: 2234 1417 8889", {"aadhaarnumber": FieldSpec(type="integer")}
        )
        assert result == {"aadhaarnumber": 223414178889}

    def test_labelled_value_outside_range_falls_back(self, engine: KeywordMappingEngine) -> None:
        schema = {"percentage": FieldSpec(type="number")}
        assert engine.map("Percentage: 450/500 = 90%\n", schema) == {"percentage": 90.0}

    def test_placeholder_values_are_rejected(self, engine: KeywordMappingEngine) -> None:
        text = "Roll No: ________\nName: Enter your name"
        schema = {"rollnumber": FieldSpec(), "fullname": FieldSpec()}
        assert engine.map(text, schema) == {}

    def test_metadata_fields_are_skipped(self, engine: KeywordMappingEngine) -> None:
        schema = {"original_vc": FieldSpec(type="object", document_field=False)}
        assert engine.map("original vc: something", schema) == {}

    def test_empty_text(self, engine: KeywordMappingEngine, marksheet_schema) -> None:
        assert engine.map("", marksheet_schema) == {}

    def test_family_value_range(self, engine: KeywordMappingEngine) -> None:
        text = "Percentage of marks obtained 87.25"
        family = numeric_family("percentage", ["percentage"])
        assert engine.find_family_value(text, ["percentage"], family) == "87.25"

    def test_family_value_out_of_range(self, engine: KeywordMappingEngine) -> None:
        family = numeric_family("cgpa", ["cgpa"])
        assert engine.find_family_value("CGPA 78", ["cgpa"], family) is None

    def test_nearby_number_prefers_closest(self, engine: KeywordMappingEngine) -> None:
        assert engine.find_nearby_number("Score (out of 500) was 412", ["score"]) == "500"

    def test_nearby_number_respects_family_range(self, engine: KeywordMappingEngine) -> None:
        family = numeric_family("cgpa", ["cgpa"])
        text = "75 percent attendance, 8.1 cgpa"
        assert engine.find_nearby_number(text, ["cgpa"], family) == "8.1"

    def test_numeric_field_uses_nearby_number(self, engine: KeywordMappingEngine) -> None:
        text = "Result declared\n8.6\nCGPA awarded to the candidate"
        assert engine.map(text, {"cgpa": FieldSpec(type="number")}) == {"cgpa": 8.6}

    def test_custom_synonyms(self) -> None:
        engine = KeywordMappingEngine(SynonymTable({"rollnumber": ["seat no"]}))
        assert engine.map("Seat No: B-1142", {"rollnumber": FieldSpec()}) == {
            "rollnumber": "B-1142"
        }
