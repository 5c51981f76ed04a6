"""
CRUD operations for certifications and their blueprints
All single-entity database operations go through these functions.
Bulk blueprint replacement lives in services.blueprint_importer.
"""

from sqlalchemy import func, or_
from sqlalchemy.orm import Session, selectinload
from typing import List, Optional, Tuple
from database import models, schemas


# ==========================================
# CERTIFICATION CRUD
# ==========================================

def _scored_fields(data: schemas.CertificationBase) -> dict:
    values = data.model_dump()
    if not data.is_scored_exam:
        values["passing_score"] = None
        values["max_score"] = None
    values["description"] = data.description or None
    return values


def build_certification(certification: schemas.CertificationCreate) -> models.Certification:
    """Unsaved Certification row; non-scored exams store no scores"""
    return models.Certification(is_archived=False, **_scored_fields(certification))


def create_certification(db: Session, certification: schemas.CertificationCreate) -> models.Certification:
    """Create a new certification"""
    db_certification = build_certification(certification)
    db.add(db_certification)
    db.commit()
    db.refresh(db_certification)
    return db_certification


def get_certification(db: Session, certification_id: int) -> Optional[models.Certification]:
    """Get certification by ID"""
    return db.query(models.Certification).filter(models.Certification.id == certification_id).first()


def get_certification_by_code(db: Session, code: str) -> Optional[models.Certification]:
    """Get certification by its unique code"""
    return db.query(models.Certification).filter(models.Certification.code == code).first()


def count_domains(db: Session, certification_id: int) -> int:
    return db.query(func.count(models.Domain.id)).filter(
        models.Domain.certification_id == certification_id
    ).scalar() or 0


def list_certifications(db: Session, filters: schemas.CertificationListFilters) -> List[Tuple[models.Certification, int]]:
    """
    List certifications with search/status filters and sorting.
    Returns (certification, domain_count) pairs.
    """
    domain_counts = (
        db.query(models.Domain.certification_id, func.count(models.Domain.id).label("domain_count"))
        .group_by(models.Domain.certification_id)
        .subquery()
    )
    query = db.query(
        models.Certification, func.coalesce(domain_counts.c.domain_count, 0)
    ).outerjoin(domain_counts, domain_counts.c.certification_id == models.Certification.id)

    if filters.search:
        escaped = filters.search.lower().replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        pattern = f"%{escaped}%"
        query = query.filter(
            or_(
                func.lower(models.Certification.name).like(pattern, escape="\\"),
                func.lower(models.Certification.code).like(pattern, escape="\\"),
                func.lower(func.coalesce(models.Certification.description, "")).like(pattern, escape="\\"),
            )
        )

    if filters.status == "active":
        query = query.filter(models.Certification.is_active.is_(True), models.Certification.is_archived.is_(False))
    elif filters.status == "inactive":
        query = query.filter(models.Certification.is_active.is_(False), models.Certification.is_archived.is_(False))
    elif filters.status == "archived":
        query = query.filter(models.Certification.is_archived.is_(True))

    sort_column = getattr(models.Certification, filters.sort_by)
    query = query.order_by(sort_column.desc() if filters.sort_order == "desc" else sort_column.asc())
    return [(certification, count) for certification, count in query.all()]


def update_certification(
    db: Session, certification_id: int, certification_update: schemas.CertificationUpdate
) -> Optional[models.Certification]:
    """Update an existing certification"""
    db_certification = get_certification(db, certification_id)
    if not db_certification:
        return None

    for field, value in _scored_fields(certification_update).items():
        setattr(db_certification, field, value)

    db.commit()
    db.refresh(db_certification)
    return db_certification


def archive_certification(db: Session, certification_id: int, is_archived: bool) -> Optional[models.Certification]:
    """Archive or unarchive; archiving also deactivates"""
    db_certification = get_certification(db, certification_id)
    if not db_certification:
        return None

    db_certification.is_archived = is_archived
    if is_archived:
        db_certification.is_active = False

    db.commit()
    db.refresh(db_certification)
    return db_certification


def check_certification_deletion(db: Session, certification_id: int) -> Optional[schemas.DeletionCheckResponse]:
    """
    Domains are blueprint structure, not content, so they never block deletion.
    Student enrollment is tracked outside this service.
    """
    if not get_certification(db, certification_id):
        return None
    student_count = 0
    return schemas.DeletionCheckResponse(
        can_delete=student_count == 0,
        has_students=student_count > 0,
        has_content=False,
        student_count=student_count,
        domain_count=count_domains(db, certification_id),
    )


def delete_certification(db: Session, certification_id: int) -> bool:
    """Delete a certification (cascades to the whole blueprint)"""
    db_certification = get_certification(db, certification_id)
    if not db_certification:
        return False

    db.delete(db_certification)
    db.commit()
    return True


def get_certification_blueprint(db: Session, certification_id: int) -> Optional[models.Certification]:
    """Get certification with full hierarchy (domains → objectives → bullets → sub-bullets)"""
    return db.query(models.Certification).options(
        selectinload(models.Certification.domains)
        .selectinload(models.Domain.objectives)
        .selectinload(models.Objective.bullets)
        .selectinload(models.Bullet.sub_bullets)
    ).filter(models.Certification.id == certification_id).first()


def get_domains_by_certification(db: Session, certification_id: int) -> List[models.Domain]:
    """Get all domains for a certification, ordered by order field"""
    return db.query(models.Domain).filter(
        models.Domain.certification_id == certification_id
    ).order_by(models.Domain.order).all()


# ==========================================
# DOMAIN CRUD
# ==========================================

def create_domain(db: Session, domain: schemas.DomainCreate) -> models.Domain:
    """Create a new domain"""
    db_domain = models.Domain(
        certification_id=domain.certification_id,
        name=domain.name,
        weight=domain.weight,
        order=domain.order,
    )
    db.add(db_domain)
    db.commit()
    db.refresh(db_domain)
    return db_domain


def get_domain(db: Session, domain_id: int) -> Optional[models.Domain]:
    """Get domain by ID"""
    return db.query(models.Domain).filter(models.Domain.id == domain_id).first()


def update_domain(db: Session, domain_id: int, domain_update: schemas.DomainUpdate) -> Optional[models.Domain]:
    """Update an existing domain"""
    db_domain = get_domain(db, domain_id)
    if not db_domain:
        return None

    update_data = domain_update.model_dump(exclude_unset=True)
    for field, value in update_data.items():
        setattr(db_domain, field, value)

    db.commit()
    db.refresh(db_domain)
    return db_domain


def delete_domain(db: Session, domain_id: int) -> bool:
    """Delete a domain (cascades to objectives, bullets, sub-bullets)"""
    db_domain = get_domain(db, domain_id)
    if not db_domain:
        return False

    db.delete(db_domain)
    db.commit()
    return True


# ==========================================
# OBJECTIVE CRUD
# ==========================================

def create_objective(db: Session, objective: schemas.ObjectiveCreate) -> models.Objective:
    """Create a new objective"""
    db_objective = models.Objective(
        domain_id=objective.domain_id,
        code=objective.code,
        description=objective.description,
        difficulty=objective.difficulty.value,
        order=objective.order,
    )
    db.add(db_objective)
    db.commit()
    db.refresh(db_objective)
    return db_objective


def get_objective(db: Session, objective_id: int) -> Optional[models.Objective]:
    """Get objective by ID"""
    return db.query(models.Objective).filter(models.Objective.id == objective_id).first()


def update_objective(
    db: Session, objective_id: int, objective_update: schemas.ObjectiveUpdate
) -> Optional[models.Objective]:
    """Update an existing objective"""
    db_objective = get_objective(db, objective_id)
    if not db_objective:
        return None

    update_data = objective_update.model_dump(exclude_unset=True)
    if update_data.get("difficulty") is not None:
        update_data["difficulty"] = update_data["difficulty"].value
    for field, value in update_data.items():
        setattr(db_objective, field, value)

    db.commit()
    db.refresh(db_objective)
    return db_objective


def delete_objective(db: Session, objective_id: int) -> bool:
    """Delete an objective (cascades to bullets, sub-bullets)"""
    db_objective = get_objective(db, objective_id)
    if not db_objective:
        return False

    db.delete(db_objective)
    db.commit()
    return True


# ==========================================
# BULLET CRUD
# ==========================================

def create_bullet(db: Session, bullet: schemas.BulletCreate) -> models.Bullet:
    db_bullet = models.Bullet(objective_id=bullet.objective_id, text=bullet.text, order=bullet.order)
    db.add(db_bullet)
    db.commit()
    db.refresh(db_bullet)
    return db_bullet


def get_bullet(db: Session, bullet_id: int) -> Optional[models.Bullet]:
    return db.query(models.Bullet).filter(models.Bullet.id == bullet_id).first()


def update_bullet(db: Session, bullet_id: int, bullet_update: schemas.BulletUpdate) -> Optional[models.Bullet]:
    db_bullet = get_bullet(db, bullet_id)
    if not db_bullet:
        return None

    for field, value in bullet_update.model_dump(exclude_unset=True).items():
        setattr(db_bullet, field, value)

    db.commit()
    db.refresh(db_bullet)
    return db_bullet


def delete_bullet(db: Session, bullet_id: int) -> bool:
    """Delete a bullet (cascades to sub-bullets)"""
    db_bullet = get_bullet(db, bullet_id)
    if not db_bullet:
        return False

    db.delete(db_bullet)
    db.commit()
    return True


# ==========================================
# SUB-BULLET CRUD
# ==========================================

def create_sub_bullet(db: Session, sub_bullet: schemas.SubBulletCreate) -> models.SubBullet:
    db_sub_bullet = models.SubBullet(bullet_id=sub_bullet.bullet_id, text=sub_bullet.text, order=sub_bullet.order)
    db.add(db_sub_bullet)
    db.commit()
    db.refresh(db_sub_bullet)
    return db_sub_bullet


def get_sub_bullet(db: Session, sub_bullet_id: int) -> Optional[models.SubBullet]:
    return db.query(models.SubBullet).filter(models.SubBullet.id == sub_bullet_id).first()


def update_sub_bullet(
    db: Session, sub_bullet_id: int, sub_bullet_update: schemas.SubBulletUpdate
) -> Optional[models.SubBullet]:
    db_sub_bullet = get_sub_bullet(db, sub_bullet_id)
    if not db_sub_bullet:
        return None

    for field, value in sub_bullet_update.model_dump(exclude_unset=True).items():
        setattr(db_sub_bullet, field, value)

    db.commit()
    db.refresh(db_sub_bullet)
    return db_sub_bullet


def delete_sub_bullet(db: Session, sub_bullet_id: int) -> bool:
    db_sub_bullet = get_sub_bullet(db, sub_bullet_id)
    if not db_sub_bullet:
        return False

    db.delete(db_sub_bullet)
    db.commit()
    return True
