"""
Blueprint API endpoints
Full-tree read, weight summary, bulk import, export and AI extraction
for a certification's domain → objective → bullet → sub-bullet hierarchy.
"""

import logging

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile, status
from fastapi.responses import Response
from sqlalchemy.orm import Session
from typing import Literal, Optional

from database import schemas, crud
from database.database import get_db
from services import blueprint_export, blueprint_extraction
from services.blueprint_importer import import_blueprint, summarize_weights
from services.errors import BlueprintError, to_http_exception

log = logging.getLogger(__name__)

router = APIRouter(prefix="/certifications", tags=["blueprints"])

MAX_PDF_BYTES = 25 * 1024 * 1024


def _blueprint_or_404(db: Session, certification_id: int):
    certification = crud.get_certification_blueprint(db, certification_id)
    if not certification:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Certification with ID {certification_id} not found"
        )
    return certification


@router.get("/{certification_id}/blueprint", response_model=schemas.CertificationBlueprint)
def get_blueprint(certification_id: int, db: Session = Depends(get_db)):
    """
    Get complete blueprint: domains → objectives → bullets → sub-bullets, each level by order
    """
    return _blueprint_or_404(db, certification_id)


@router.get("/{certification_id}/blueprint/weights", response_model=schemas.WeightSummaryResponse)
def get_blueprint_weights(certification_id: int, db: Session = Depends(get_db)):
    """
    Sum of domain weights and whether it is close enough to 100% for the certification to be active
    """
    if not crud.get_certification(db, certification_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Certification with ID {certification_id} not found"
        )
    domains = crud.get_domains_by_certification(db, certification_id)
    summary = summarize_weights([d.weight for d in domains])
    return schemas.WeightSummaryResponse(
        certification_id=certification_id,
        total_percentage=summary.total_percentage,
        is_valid=summary.is_valid,
        domains=[
            schemas.DomainWeight(
                id=d.id, name=d.name, order=d.order, weight=d.weight, percentage=round(d.weight * 100, 1)
            )
            for d in domains
        ],
    )


@router.post("/{certification_id}/blueprint/import", response_model=schemas.BlueprintImportResponse)
def import_certification_blueprint(
    certification_id: int,
    payload: schemas.BlueprintImportRequest,
    db: Session = Depends(get_db),
):
    """
    Replace the certification's whole blueprint with the given tree.
    Destructive and atomic: the old hierarchy is deleted and the new one
    created in one transaction. Weights off 100% force the certification inactive.
    """
    try:
        result = import_blueprint(db, certification_id, payload.domains)
    except BlueprintError as e:
        raise to_http_exception(e)
    return result.as_dict()


@router.get("/{certification_id}/blueprint/export")
def export_blueprint(
    certification_id: int,
    format: Literal["json", "csv"] = Query("json"),
    db: Session = Depends(get_db),
):
    """
    Download the blueprint as <code>_blueprint.json or <code>_blueprint.csv
    """
    certification = _blueprint_or_404(db, certification_id)
    if format == "csv":
        content = blueprint_export.export_blueprint_csv(certification)
        media_type = "text/csv; charset=utf-8"
    else:
        content = blueprint_export.export_blueprint_json(certification)
        media_type = "application/json"

    filename = blueprint_export.export_filename(certification, format)
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


async def _read_pdf_upload(file: UploadFile) -> bytes:
    if file.content_type not in ("application/pdf", "application/octet-stream"):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Expected a PDF upload, got '{file.content_type}'"
        )
    pdf_bytes = await file.read()
    if not pdf_bytes:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Uploaded file is empty")
    if len(pdf_bytes) > MAX_PDF_BYTES:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail="PDF exceeds the 25 MB upload limit"
        )
    return pdf_bytes


@router.post(
    "/from-pdf",
    response_model=schemas.CertificationFromPdfResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_certification_from_pdf(
    file: UploadFile = File(...),
    model: Optional[str] = Query(None, description="Override the extraction model"),
    db: Session = Depends(get_db),
):
    """
    Upload an exam-guide PDF: the LLM extracts the certification details and
    blueprint, and both are created in one transaction
    """
    pdf_bytes = await _read_pdf_upload(file)
    try:
        certification, result = await blueprint_extraction.create_certification_from_pdf(db, pdf_bytes, model=model)
    except BlueprintError as e:
        log.warning("Creating a certification from PDF failed: %s", e.message)
        raise to_http_exception(e)

    response = schemas.CertificationResponse.model_validate(certification)
    response.domain_count = result.domains_created
    return schemas.CertificationFromPdfResponse(certification=response, import_result=result.as_dict())


@router.post("/{certification_id}/blueprint/extract", response_model=schemas.BlueprintImportResponse)
async def extract_certification_blueprint(
    certification_id: int,
    file: UploadFile = File(...),
    model: Optional[str] = Query(None, description="Override the extraction model"),
    db: Session = Depends(get_db),
):
    """
    Upload an exam-objectives PDF, extract its blueprint with the LLM and import it
    """
    pdf_bytes = await _read_pdf_upload(file)
    try:
        result = await blueprint_extraction.import_blueprint_from_pdf(db, certification_id, pdf_bytes, model=model)
    except BlueprintError as e:
        log.warning("Blueprint extraction for certification %s failed: %s", certification_id, e.message)
        raise to_http_exception(e)
    return result.as_dict()
