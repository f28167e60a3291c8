"""Prompt construction for AI schema mapping."""

import json
from typing import Any

DEFAULT_MAPPING_TEMPLATE = """Extract data from the document text below. Return ONLY a JSON object.

DOCUMENT TEXT:
{extractedText}

SCHEMA TO FILL:
{schema}

STRICT EXTRACTION RULES:
1. Use ONLY text that exists verbatim in the DOCUMENT TEXT above
2. If a field's value is NOT found in the document, set it to null
3. Never guess, infer, or create values
4. Never use a value from one field to fill a different field (e.g., issue date is NOT exam date)
5. For name fields: Keep full names together and drop relational descriptors such as "S/O", "D/O", "W/O", "Son of", "Daughter of", "Mr.", "Mrs."
6. For date fields: Only extract if the document explicitly labels that specific date type (e.g., "Exam Date:", "DOB:")
7. If a date exists but its purpose is unclear, set the field to null rather than guessing
8. Match field names to document labels - "Date:" near signature is likely issue date, not exam date
9. For numeric and ID fields: Remove any leading hyphen or minus sign. OCR often misreads separators as a minus sign and these values are never negative
10. Set a field to null if its only candidate is a placeholder or punctuation such as "-", "--", "N/A", "___" or "..."
{hints}
Return pure JSON starting with { and ending with }. No text before or after, no markdown, no code fences."""

_CONTEXT_HINTS: dict[str, list[str]] = {
    "marksheet": [
        'Look for academic patterns like "Student Name:", "Roll No:", "Marks Obtained:", "Grade:"',
        "Handle tabular data for subjects and marks",
        "Extract CGPA, percentage and grade information accurately",
    ],
    "income certificate": [
        'Focus on income-related fields like "Annual Income:", "Monthly Income:", "Family Income"',
        "Extract issuing authority and certificate validity information",
        "Look for applicant details and family information",
    ],
    "caste certificate": [
        "Extract caste or community information and category details",
        "Look for issuing authority and certificate validity",
        "Focus on applicant personal details and family information",
    ],
    "udid certificate": [
        "Extract disability-related information and the UDID number",
        "Look for disability type and percentage",
        "Focus on personal details and issuing authority information",
    ],
    "enrollment certificate": [
        "Extract enrollment details like enrollment number, course and institution",
        "Look for academic year and session information",
        "Focus on student details and institutional information",
    ],
    "bank account": [
        "Extract account details like account number, IFSC code and bank name",
        "Look for account holder information and account type",
        "Focus on banking details and customer information",
    ],
    "fee receipt": [
        "Extract payment details like amount, receipt number and payment date",
        "Look for fee breakdown and payment method",
        "Focus on student or payer details and institutional information",
    ],
    "payment receipt": [
        "Extract payment details like amount, receipt number and transaction ID",
        "Look for payment date, method and purpose",
        "Focus on payer details and payment breakdown",
    ],
    "declaration certificate": [
        "Extract declaration details and the purpose of the declaration",
        "Look for declarant information and witness details",
        "Focus on legal or official declaration content",
    ],
}


def normalize_doc_type(doc_type: str | None) -> str:
    """Lowercase a document type and turn separators into spaces.

    ``incomeCertificate`` style keys are not split; only ``_`` and ``-``.
    """
    if not doc_type:
        return ""
    return " ".join(doc_type.replace("_", " ").replace("-", " ").lower().split())


def contextual_hints(*doc_types: str | None) -> list[str]:
    """Return extra instructions for the first recognised document type."""
    for doc_type in doc_types:
        hints = _CONTEXT_HINTS.get(normalize_doc_type(doc_type))
        if hints:
            return list(hints)
    return []


def build_mapping_prompt(
    extracted_text: str,
    json_schema: dict[str, Any],
    doc_type: str | None = None,
    template: str | None = None,
    doc_sub_type: str | None = None,
) -> str:
    """Build the mapping prompt sent to an AI provider.

    Args:
        extracted_text: Raw OCR text.
        json_schema: JSON schema of the document fields.
        doc_type: Document type used to pick contextual hints.
        template: Prompt template with ``{extractedText}`` and ``{schema}``
            placeholders; ``{hints}`` is optional. Defaults to
            :data:`DEFAULT_MAPPING_TEMPLATE`.
        doc_sub_type: Sub-type, tried before ``doc_type`` for hints.

    Returns:
        The rendered prompt.
    """
    template = template or DEFAULT_MAPPING_TEMPLATE
    hints = contextual_hints(doc_sub_type, doc_type)
    hint_block = ""
    if hints:
        start = 11
        lines = [f"{start + i}. {hint}" for i, hint in enumerate(hints)]
        hint_block = "\n".join(["", "DOCUMENT-SPECIFIC HINTS:", *lines]) + "\n"

    if "{hints}" in template:
        prompt = template.replace("{hints}", hint_block)
    else:
        prompt = template + ("\n" + hint_block if hint_block else "")
    prompt = prompt.replace("{schema}", json.dumps(json_schema, indent=2))
    return prompt.replace("{extractedText}", extracted_text)
