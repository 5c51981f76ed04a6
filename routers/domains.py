"""
Domain API endpoints
CRUD operations for domains (weighted top level of a certification blueprint)
"""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from typing import List

from database import schemas, crud
from database.database import get_db

router = APIRouter(prefix="/domains", tags=["domains"])


@router.post("/", response_model=schemas.DomainResponse, status_code=status.HTTP_201_CREATED)
def create_domain(domain: schemas.DomainCreate, db: Session = Depends(get_db)):
    """
    Create a new domain under a certification
    """
    # Verify certification exists
    if not crud.get_certification(db, domain.certification_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Certification with ID {domain.certification_id} not found"
        )

    return crud.create_domain(db, domain)


@router.get("/certification/{certification_id}", response_model=List[schemas.DomainResponse])
def list_domains_by_certification(certification_id: int, db: Session = Depends(get_db)):
    """
    List all domains for a certification, ordered by order field
    """
    if not crud.get_certification(db, certification_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Certification with ID {certification_id} not found"
        )

    return crud.get_domains_by_certification(db, certification_id)


@router.get("/{domain_id}", response_model=schemas.DomainComplete)
def get_domain(domain_id: int, db: Session = Depends(get_db)):
    """
    Get a domain with its objectives, bullets and sub-bullets
    """
    domain = crud.get_domain(db, domain_id)
    if not domain:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Domain with ID {domain_id} not found"
        )
    return domain


@router.put("/{domain_id}", response_model=schemas.DomainResponse)
def update_domain(domain_id: int, domain_update: schemas.DomainUpdate, db: Session = Depends(get_db)):
    """
    Update a domain
    Only provided fields will be updated
    """
    domain = crud.update_domain(db, domain_id, domain_update)
    if not domain:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Domain with ID {domain_id} not found"
        )
    return domain


@router.delete("/{domain_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_domain(domain_id: int, db: Session = Depends(get_db)):
    """
    Delete a domain
    WARNING: This will cascade delete all objectives, bullets and sub-bullets
    """
    if not crud.delete_domain(db, domain_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Domain with ID {domain_id} not found"
        )
    return None
