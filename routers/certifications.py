"""
Certification API endpoints
CRUD operations for certifications (top-level catalogue entries)
"""

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session
from typing import List, Literal, Optional

from database import schemas, crud, models
from database.database import get_db

router = APIRouter(prefix="/certifications", tags=["certifications"])


def _to_response(certification: models.Certification, domain_count: int) -> schemas.CertificationResponse:
    response = schemas.CertificationResponse.model_validate(certification)
    response.domain_count = domain_count
    return response


def _get_or_404(db: Session, certification_id: int) -> models.Certification:
    certification = crud.get_certification(db, certification_id)
    if not certification:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Certification with ID {certification_id} not found"
        )
    return certification


@router.post("/", response_model=schemas.CertificationResponse, status_code=status.HTTP_201_CREATED)
def create_certification(certification: schemas.CertificationCreate, db: Session = Depends(get_db)):
    """
    Create a new certification
    Certification codes must be unique
    """
    if crud.get_certification_by_code(db, certification.code):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f'A certification with code "{certification.code}" already exists'
        )

    return _to_response(crud.create_certification(db, certification), 0)


@router.get("/", response_model=List[schemas.CertificationResponse])
def list_certifications(
    search: Optional[str] = None,
    status_filter: Literal["all", "active", "inactive", "archived"] = Query("all", alias="status"),
    sort_by: Literal["name", "code", "created_at"] = "name",
    sort_order: Literal["asc", "desc"] = "asc",
    db: Session = Depends(get_db),
):
    """
    List certifications with optional search, status filter and sorting
    """
    filters = schemas.CertificationListFilters(
        search=search, status=status_filter, sort_by=sort_by, sort_order=sort_order
    )
    return [_to_response(cert, count) for cert, count in crud.list_certifications(db, filters)]


@router.get("/{certification_id}", response_model=schemas.CertificationResponse)
def get_certification(certification_id: int, db: Session = Depends(get_db)):
    certification = _get_or_404(db, certification_id)
    return _to_response(certification, crud.count_domains(db, certification_id))


@router.put("/{certification_id}", response_model=schemas.CertificationResponse)
def update_certification(
    certification_id: int,
    certification_update: schemas.CertificationUpdate,
    db: Session = Depends(get_db)
):
    """
    Update a certification
    The code may change as long as no other certification uses it
    """
    existing = crud.get_certification_by_code(db, certification_update.code)
    if existing and existing.id != certification_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f'A certification with code "{certification_update.code}" already exists'
        )

    certification = crud.update_certification(db, certification_id, certification_update)
    if not certification:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Certification with ID {certification_id} not found"
        )
    return _to_response(certification, crud.count_domains(db, certification_id))


@router.post("/{certification_id}/archive", response_model=schemas.CertificationResponse)
def archive_certification(
    certification_id: int,
    archive: schemas.CertificationArchive,
    db: Session = Depends(get_db)
):
    """
    Archive or unarchive a certification
    Archiving also sets it inactive
    """
    certification = crud.archive_certification(db, certification_id, archive.is_archived)
    if not certification:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Certification with ID {certification_id} not found"
        )
    return _to_response(certification, crud.count_domains(db, certification_id))


@router.get("/{certification_id}/deletion-check", response_model=schemas.DeletionCheckResponse)
def check_certification_deletion(certification_id: int, db: Session = Depends(get_db)):
    check = crud.check_certification_deletion(db, certification_id)
    if check is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Certification with ID {certification_id} not found"
        )
    return check


@router.delete("/{certification_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_certification(certification_id: int, db: Session = Depends(get_db)):
    """
    Delete a certification and its whole blueprint
    Refused when the deletion check says the certification is in use
    """
    check = crud.check_certification_deletion(db, certification_id)
    if check is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Certification with ID {certification_id} not found"
        )
    if not check.can_delete:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot delete certification with enrolled students or content. Please archive it instead."
        )

    crud.delete_certification(db, certification_id)
    return None
