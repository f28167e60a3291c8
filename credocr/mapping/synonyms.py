"""Alternate labels under which schema fields appear in document text.

Keys are lowercased field names; values are ordered label variants tried
by the keyword mapper after the field name itself.
"""

from collections.abc import Mapping
from pathlib import Path

import yaml

from credocr.utils.logger import get_logger

logger = get_logger(__name__)

FIELD_SYNONYMS: dict[str, list[str]] = {
    # Names
    "firstname": ["first name", "given name", "name", "candidate name", "student name", "applicant name", "student's name"],
    "middlename": ["middle name", "middle initial"],
    "lastname": ["last name", "surname", "family name"],
    "fullname": ["full name", "complete name", "name", "candidate name", "student name", "student's name"],
    "studentname": ["student name", "student's name", "name of the student", "candidate name", "name"],
    # Parents
    "fathername": ["father name", "father's name", "fathers name", "father", "guardian name"],
    "mothername": ["mother name", "mother's name", "mothers name", "mother"],
    # Institution
    "schoolname": ["school name", "institution", "college", "institute", "university", "school", "college / +2 school's name", "+2 school's name", "school's name"],
    "schoolid": ["school id", "school code", "institution id", "college id"],
    "institutename": ["institute name", "institution name", "college name", "university name"],
    # Academic performance
    "cgpa": ["cgpa", "c.g.p.a", "grade point", "cpi", "cumulative grade point average"],
    "cgpamax": ["cgpa max", "maximum cgpa", "cgpa out of", "max cgpa"],
    "percentage": ["percentage", "%", "percent", "marks percentage", "total percentage"],
    "marks": ["marks", "total marks", "obtained marks", "score"],
    "marksmax": ["full marks", "maximum marks", "total marks", "marks out of", "max marks"],
    "markstotal": ["marks obtained", "total obtained", "obtained marks", "total score"],
    "grade": ["grade", "letter grade", "final grade"],
    "result": ["result", "status", "outcome", "remarks"],
    "currentclass": ["current class", "class", "standard", "grade"],
    "previousclass": ["previous class", "last class", "prev class"],
    # Personal
    "dob": ["date of birth", "dob", "birth date", "born on"],
    "age": ["age", "years old", "age in years"],
    "gender": ["gender", "sex", "male/female"],
    # Identification
    "rollnumber": ["roll no", "roll number", "roll #", "rollno", "roll code"],
    "rollcode": ["roll code", "code", "student code"],
    "registrationnumber": ["registration number", "reg no", "registration no", "enrolment number"],
    "studentid": ["student id", "student number", "id number", "student identification"],
    "studentuniqueid": ["student unique id", "unique id", "student id", "unique student id", "sl. no", "serial number"],
    # Address
    "address": ["address", "permanent address", "residential address", "home address"],
    "city": ["city", "town", "district"],
    "state": ["state", "province"],
    "pincode": ["pin code", "postal code", "zip code", "pin"],
    "issuingauthorityaddress": ["issuing authority address", "authority address", "issuer address"],
    "issuingauthoritydistrict": ["issuing authority district", "authority district", "issuer district"],
    "issuingauthoritypin": ["issuing authority pin", "authority pin", "issuer pin"],
    "issuingauthoritystate": ["issuing authority state", "authority state", "issuer state"],
    "issuingauthoritycountry": ["issuing authority country", "authority country", "issuer country"],
    # Contact
    "phone": ["phone", "mobile", "contact number", "phone number", "mobile number"],
    "email": ["email", "email address", "e-mail", "email id"],
    # Document
    "certificatenumber": ["certificate number", "cert no", "certificate no", "document number"],
    "issuedate": ["issue date", "issued on", "date of issue", "issued date"],
    "issueddate": ["issued date", "issue date", "date of issue", "issued on"],
    "validfrom": ["valid from", "validity from", "effective from"],
    "validto": ["valid to", "valid till", "expires on", "expiry date"],
    "validupto": ["valid upto", "valid till", "expires on", "expiry date", "valid until"],
    "examdate": ["exam date", "examination date", "test date", "date of exam"],
    "academicyear": ["academic year", "session", "year", "academic session"],
    "issuedby": ["issued by", "issuer", "issued from", "authority"],
    "issuerauthority": ["issuer authority", "issuing authority", "authority", "issued by"],
    # Income
    "annualincome": ["annual income", "yearly income", "total income", "family income"],
    "monthlyincome": ["monthly income", "per month income"],
    # Caste and category
    "caste": ["caste", "community", "category"],
    "category": ["category", "reservation category", "quota"],
    # Course
    "course": ["course", "program", "degree", "qualification"],
    "subject": ["subject", "stream", "specialization", "major"],
    "year": ["year", "academic year", "passing year", "completion year"],
    # Disability
    "disabilitytype": ["disability type", "type of disability", "handicap type"],
    "disabilitypercentage": ["disability percentage", "handicap percentage", "% disability"],
}


class SynonymTable:
    """Field synonym lookup with optional overrides.

    Args:
        overrides: Extra ``field -> labels`` entries; an entry replaces the
            built-in list for that field.
    """

    def __init__(self, overrides: Mapping[str, list[str]] | None = None) -> None:
        self._table: dict[str, list[str]] = {k: list(v) for k, v in FIELD_SYNONYMS.items()}
        for name, labels in (overrides or {}).items():
            self._table[name.lower()] = [str(label).lower() for label in labels]

    @classmethod
    def from_yaml(cls, path: Path | str | None) -> "SynonymTable":
        """Build a table, applying overrides from a YAML file if it exists."""
        if path is None:
            return cls()
        path = Path(path)
        if not path.exists():
            logger.warning("Synonym file %s not found, using built-in synonyms", path)
            return cls()
        with open(path) as f:
            raw = yaml.safe_load(f) or {}
        logger.info("Loaded %d synonym overrides from %s", len(raw), path)
        return cls(raw)

    def get(self, field_name: str) -> list[str]:
        """Labels to search for a field: its own name first, then synonyms.

        Args:
            field_name: Schema field name, any case.

        Returns:
            Ordered, de-duplicated list of lowercase labels.
        """
        normalized = field_name.lower()
        labels = [normalized, *self._table.get(normalized, [])]
        spaced = normalized.replace("_", " ")
        if spaced != normalized:
            labels.insert(1, spaced)
        return list(dict.fromkeys(labels))

    def configured_fields(self) -> list[str]:
        return list(self._table)


def get_field_synonyms(field_name: str) -> list[str]:
    """Labels for ``field_name`` from the built-in table."""
    return SynonymTable().get(field_name)
