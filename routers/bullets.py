"""
Bullet and sub-bullet API endpoints
"""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from database import schemas, crud
from database.database import get_db

router = APIRouter(tags=["bullets"])


# ==========================================
# BULLETS
# ==========================================

@router.post("/bullets/", response_model=schemas.BulletResponse, status_code=status.HTTP_201_CREATED)
def create_bullet(bullet: schemas.BulletCreate, db: Session = Depends(get_db)):
    if not crud.get_objective(db, bullet.objective_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Objective with ID {bullet.objective_id} not found"
        )
    return crud.create_bullet(db, bullet)


@router.put("/bullets/{bullet_id}", response_model=schemas.BulletResponse)
def update_bullet(bullet_id: int, bullet_update: schemas.BulletUpdate, db: Session = Depends(get_db)):
    bullet = crud.update_bullet(db, bullet_id, bullet_update)
    if not bullet:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Bullet with ID {bullet_id} not found"
        )
    return bullet


@router.delete("/bullets/{bullet_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_bullet(bullet_id: int, db: Session = Depends(get_db)):
    """
    Delete a bullet (cascades to sub-bullets)
    """
    if not crud.delete_bullet(db, bullet_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Bullet with ID {bullet_id} not found"
        )
    return None


# ==========================================
# SUB-BULLETS
# ==========================================

@router.post("/sub-bullets/", response_model=schemas.SubBulletResponse, status_code=status.HTTP_201_CREATED)
def create_sub_bullet(sub_bullet: schemas.SubBulletCreate, db: Session = Depends(get_db)):
    if not crud.get_bullet(db, sub_bullet.bullet_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Bullet with ID {sub_bullet.bullet_id} not found"
        )
    return crud.create_sub_bullet(db, sub_bullet)


@router.put("/sub-bullets/{sub_bullet_id}", response_model=schemas.SubBulletResponse)
def update_sub_bullet(sub_bullet_id: int, sub_bullet_update: schemas.SubBulletUpdate, db: Session = Depends(get_db)):
    sub_bullet = crud.update_sub_bullet(db, sub_bullet_id, sub_bullet_update)
    if not sub_bullet:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Sub-bullet with ID {sub_bullet_id} not found"
        )
    return sub_bullet


@router.delete("/sub-bullets/{sub_bullet_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_sub_bullet(sub_bullet_id: int, db: Session = Depends(get_db)):
    if not crud.delete_sub_bullet(db, sub_bullet_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Sub-bullet with ID {sub_bullet_id} not found"
        )
    return None
