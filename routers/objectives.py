"""
Objective API endpoints
CRUD operations for objectives (testable outcomes under a domain)
"""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from database import schemas, crud
from database.database import get_db

router = APIRouter(prefix="/objectives", tags=["objectives"])


@router.post("/", response_model=schemas.ObjectiveResponse, status_code=status.HTTP_201_CREATED)
def create_objective(objective: schemas.ObjectiveCreate, db: Session = Depends(get_db)):
    """
    Create a new objective under a domain
    """
    if not crud.get_domain(db, objective.domain_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Domain with ID {objective.domain_id} not found"
        )

    return crud.create_objective(db, objective)


@router.get("/{objective_id}", response_model=schemas.ObjectiveWithBullets)
def get_objective(objective_id: int, db: Session = Depends(get_db)):
    objective = crud.get_objective(db, objective_id)
    if not objective:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Objective with ID {objective_id} not found"
        )
    return objective


@router.put("/{objective_id}", response_model=schemas.ObjectiveResponse)
def update_objective(objective_id: int, objective_update: schemas.ObjectiveUpdate, db: Session = Depends(get_db)):
    """
    Update an objective
    Only provided fields will be updated
    """
    objective = crud.update_objective(db, objective_id, objective_update)
    if not objective:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Objective with ID {objective_id} not found"
        )
    return objective


@router.delete("/{objective_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_objective(objective_id: int, db: Session = Depends(get_db)):
    """
    Delete an objective (cascades to bullets and sub-bullets)
    """
    if not crud.delete_objective(db, objective_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Objective with ID {objective_id} not found"
        )
    return None
