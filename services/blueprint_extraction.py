"""
AI blueprint extraction

Turns an exam-objectives PDF into an importable blueprint:
  1. PDF → plain text (pypdf)
  2. text → LLM → JSON in the "AI shape" (domainNumber / percentage / objectiveNumber)
  3. AI shape → DomainImport list (weights as fractions, orders by position)
  4. hand the result to the BlueprintImporter

The certification variant also extracts the certification header and creates
the certification together with its blueprint.

LLM backend: OpenAI GPT (via services.gpt_client)
"""

import io
import logging
import os
import re
from typing import List, Optional, Type

import json_repair
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pypdf import PdfReader
from pypdf.errors import PdfReadError
from sqlalchemy.orm import Session

from database import crud
from database.models import Certification
from database.schemas import BulletImport, CertificationCreate, DomainImport, ObjectiveImport, SubBulletImport
from services.blueprint_importer import ImportResult, create_certification_with_blueprint, import_blueprint
from services.errors import BlueprintValidationError, NotFoundError, UnparsableExtractionError

log = logging.getLogger(__name__)

EXTRACTION_MAX_TOKENS = int(os.getenv("BLUEPRINT_EXTRACTION_MAX_TOKENS", "16000"))
MAX_DOCUMENT_CHARS = 120_000


# ─── Prompt ────────────────────────────────────────────────────────────────────

BLUEPRINT_EXTRACTION_PROMPT = """You are an expert at analyzing certification exam documents. Extract the COMPLETE exam structure from the exam guide text below.

CRITICAL: Extract EVERY domain and EVERY objective listed. Do not stop early or skip any.

For each domain extract:
  - domainNumber (e.g. "1", "2")
  - name
  - percentage weight if stated (a number, 24 for 24%)
  - ALL objectives:
      - objectiveNumber (e.g. "1.1", "1.2")
      - name (the objective description)
      - bullets: bullet points / task statements listed under the objective
      - subBullets: indented items nested under a bullet

RULES:
- Keep bullet text concise but complete.
- Omit optional fields that are not present (never use null).
- No comments, no markdown, no code fences. Output ONLY the JSON object.

FORMAT:
{{
  "domains": [
    {{
      "domainNumber": "1",
      "name": "Domain Name",
      "percentage": 25,
      "objectives": [
        {{
          "objectiveNumber": "1.1",
          "name": "Objective description",
          "bullets": [
            {{"text": "Main bullet", "subBullets": [{{"text": "Detail"}}]}},
            {{"text": "Another bullet"}}
          ]
        }}
      ]
    }}
  ]
}}

EXAM GUIDE TEXT:
---
{document_text}
---
"""

# Same outline plus the certification header, for creating a certification from a PDF
CERTIFICATION_EXTRACTION_PROMPT = """You are an expert at analyzing certification exam documents. Extract BOTH the certification metadata AND the COMPLETE exam structure from the exam guide text below.

1. CERTIFICATION METADATA ("certification" object):
  - name: full certification name (e.g. "CompTIA Security+")
  - code: exam code (e.g. "SY0-701", "SAA-C03")
  - description: what the certification covers, 1-2 sentences
  - isScoredExam: true if the exam has a numeric score, false if pass/fail only
  - passingScore / maxScore: minimum passing and maximum score, when scored
  - defaultStudyDuration: recommended study duration in days (45 if not stated)

2. EXAM BLUEPRINT ("domains" array):
  Extract EVERY domain and EVERY objective. For each domain: domainNumber,
  name, percentage (24 for 24%), objectives with objectiveNumber, name,
  bullets and nested subBullets.

RULES:
- Scoring details are usually in the exam overview / exam details section.
- Omit optional fields that are not present (never use null).
- No comments, no markdown, no code fences. Output ONLY the JSON object.

FORMAT:
{{
  "certification": {{
    "name": "CompTIA Security+",
    "code": "SY0-701",
    "description": "Validates the baseline skills needed to perform core security functions.",
    "isScoredExam": true,
    "passingScore": 750,
    "maxScore": 900,
    "defaultStudyDuration": 45
  }},
  "domains": [
    {{
      "domainNumber": "1",
      "name": "General Security Concepts",
      "percentage": 12,
      "objectives": [
        {{
          "objectiveNumber": "1.1",
          "name": "Compare and contrast various types of security controls",
          "bullets": [{{"text": "Categories", "subBullets": [{{"text": "Technical"}}]}}]
        }}
      ]
    }}
  ]
}}

EXAM GUIDE TEXT:
---
{document_text}
---
"""


# ─── AI output schema ──────────────────────────────────────────────────────────

class _AIModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, coerce_numbers_to_str=True, str_strip_whitespace=True)


class ExtractedSubBullet(_AIModel):
    text: str = ""


class ExtractedBullet(_AIModel):
    text: str = ""
    sub_bullets: List[ExtractedSubBullet] = Field(default_factory=list, alias="subBullets")


class ExtractedObjective(_AIModel):
    objective_number: str = Field(..., alias="objectiveNumber")
    name: str
    bullets: List[ExtractedBullet] = Field(default_factory=list)


class ExtractedDomain(_AIModel):
    domain_number: str = Field(..., alias="domainNumber")
    name: str
    percentage: Optional[float] = None
    objectives: List[ExtractedObjective] = Field(default_factory=list)


class ExtractedBlueprint(_AIModel):
    domains: List[ExtractedDomain]


class ExtractedCertification(_AIModel):
    name: str = Field(..., min_length=1)
    code: str = Field(..., min_length=1)
    description: Optional[str] = None
    is_scored_exam: bool = Field(True, alias="isScoredExam")
    passing_score: Optional[int] = Field(None, alias="passingScore")
    max_score: Optional[int] = Field(None, alias="maxScore")
    default_study_duration: int = Field(45, ge=1, alias="defaultStudyDuration")


class ExtractedCertificationBlueprint(ExtractedBlueprint):
    certification: ExtractedCertification


# ─── PDF text extraction ───────────────────────────────────────────────────────

def extract_pdf_text(pdf_bytes: bytes) -> str:
    """Extract plain text from a PDF byte stream using pypdf."""
    try:
        reader = PdfReader(io.BytesIO(pdf_bytes))
        texts = []
        for page in reader.pages:
            t = page.extract_text()
            if t:
                texts.append(t.strip())
    except (PdfReadError, ValueError) as e:
        raise UnparsableExtractionError(f"PDF extraction failed: {e}") from e
    return "\n".join(texts)


# ─── LLM call + JSON parsing ───────────────────────────────────────────────────

async def _call_llm(prompt: str, model: Optional[str] = None) -> str:
    from services.gpt_client import request_json
    return await request_json(prompt, max_tokens=EXTRACTION_MAX_TOKENS, model=model)


def extract_json(raw: str) -> dict:
    """Extract + repair the JSON object in an LLM response."""
    raw = raw.strip()
    raw = re.sub(r"^```(?:json)?\s*", "", raw, flags=re.MULTILINE)
    raw = re.sub(r"\s*```$", "", raw, flags=re.MULTILINE)
    start = raw.find("{")
    end = raw.rfind("}") + 1
    if start == -1 or end == 0:
        raise UnparsableExtractionError(f"No JSON object in LLM response: {raw[:300]}")
    data = json_repair.loads(raw[start:end])
    if not isinstance(data, dict):
        raise UnparsableExtractionError("LLM response did not contain a JSON object")
    return data


def parse_extracted_blueprint(data: dict, schema: Type[ExtractedBlueprint] = ExtractedBlueprint) -> ExtractedBlueprint:
    try:
        return schema.model_validate(data)
    except ValidationError as e:
        raise UnparsableExtractionError(f"LLM returned an invalid blueprint structure: {e}") from e


async def _run_extraction(
    template: str, schema: Type[ExtractedBlueprint], document_text: str, model: Optional[str]
) -> tuple[ExtractedBlueprint, dict]:
    if not document_text.strip():
        raise UnparsableExtractionError("Document contains no extractable text")

    prompt = template.format(document_text=document_text[:MAX_DOCUMENT_CHARS])
    log.info("Extracting %s with LLM (prompt length: %d chars)", schema.__name__, len(prompt))
    raw = await _call_llm(prompt, model=model)

    data = extract_json(raw)
    blueprint = parse_extracted_blueprint(data, schema)
    log.info("LLM extracted %d domains", len(blueprint.domains))
    return blueprint, data


async def extract_blueprint(document_text: str, model: Optional[str] = None) -> tuple[ExtractedBlueprint, dict]:
    """
    Run the LLM over exam-guide text.
    Returns the validated blueprint and the raw JSON it was built from.
    """
    return await _run_extraction(BLUEPRINT_EXTRACTION_PROMPT, ExtractedBlueprint, document_text, model)


async def extract_certification_blueprint(
    document_text: str, model: Optional[str] = None
) -> tuple[ExtractedCertificationBlueprint, dict]:
    """Like extract_blueprint, plus the certification header (name, code, scoring)."""
    return await _run_extraction(
        CERTIFICATION_EXTRACTION_PROMPT, ExtractedCertificationBlueprint, document_text, model
    )


# ─── AI shape → import shape ───────────────────────────────────────────────────

def to_import_domains(blueprint: ExtractedBlueprint) -> List[DomainImport]:
    """
    Percentages become fractional weights (0 when missing); every level is
    ordered by list position; blank bullets and sub-bullets are dropped.
    """
    try:
        domains = []
        for domain_index, domain in enumerate(blueprint.domains):
            objectives = []
            for objective_index, objective in enumerate(domain.objectives):
                bullets = []
                for bullet in (b for b in objective.bullets if b.text):
                    subs = [
                        SubBulletImport(text=sub.text, order=sub_index)
                        for sub_index, sub in enumerate(s for s in bullet.sub_bullets if s.text)
                    ]
                    bullets.append(BulletImport(text=bullet.text, order=len(bullets), sub_bullets=subs))
                objectives.append(
                    ObjectiveImport(
                        code=objective.objective_number,
                        description=objective.name,
                        order=objective_index,
                        bullets=bullets,
                    )
                )
            weight = (domain.percentage or 0) / 100
            domains.append(
                DomainImport(name=domain.name, weight=weight, order=domain_index, objectives=objectives)
            )
        return domains
    except ValidationError as e:
        raise UnparsableExtractionError(f"Extracted blueprint cannot be imported: {e}") from e


async def import_blueprint_from_pdf(
    db: Session,
    certification_id: int,
    pdf_bytes: bytes,
    model: Optional[str] = None,
    **importer_options,
) -> ImportResult:
    """
    Extract a blueprint from a PDF and replace the certification's blueprint with it.
    The raw extraction is stored on the certification in the same transaction.
    """
    certification = crud.get_certification(db, certification_id)
    if certification is None:
        raise NotFoundError(f"Certification with ID {certification_id} not found")

    log.info("Processing blueprint PDF for certification %s (%s)", certification.code, certification_id)
    blueprint, raw = await extract_blueprint(extract_pdf_text(pdf_bytes), model=model)
    domains = to_import_domains(blueprint)

    certification.blueprint = raw
    return import_blueprint(db, certification_id, domains, **importer_options)


def to_certification_create(extracted: ExtractedCertification) -> CertificationCreate:
    """Zero scores count as missing, the same as an omitted field."""
    try:
        return CertificationCreate(
            name=extracted.name,
            code=extracted.code,
            description=extracted.description or None,
            is_scored_exam=extracted.is_scored_exam,
            passing_score=extracted.passing_score or None,
            max_score=extracted.max_score or None,
            default_study_duration=extracted.default_study_duration,
        )
    except ValidationError as e:
        raise UnparsableExtractionError(f"Extracted certification details are unusable: {e}") from e


async def create_certification_from_pdf(
    db: Session,
    pdf_bytes: bytes,
    model: Optional[str] = None,
    **importer_options,
) -> tuple[Certification, ImportResult]:
    """
    Extract certification details and blueprint from a PDF, then create both.
    The certification row and its whole tree are committed together.
    """
    blueprint, raw = await extract_certification_blueprint(extract_pdf_text(pdf_bytes), model=model)
    details = to_certification_create(blueprint.certification)
    domains = to_import_domains(blueprint)

    if crud.get_certification_by_code(db, details.code):
        raise BlueprintValidationError(f'A certification with code "{details.code}" already exists')

    log.info("Creating certification %s from PDF (%d domains)", details.code, len(domains))
    certification = crud.build_certification(details)
    certification.blueprint = raw
    result = create_certification_with_blueprint(db, certification, domains, **importer_options)
    return certification, result
