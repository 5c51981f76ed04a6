"""
SQLAlchemy models for the certification blueprint
Certification → Domain → Objective → Bullet → SubBullet hierarchy

Every parent foreign key cascades on delete at the database level, so
removing a certification's domains removes the whole blueprint underneath.
"""

from sqlalchemy import Column, Integer, String, Boolean, ForeignKey, DateTime, Text, Float, JSON
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import enum
from database.database import Base


class Difficulty(str, enum.Enum):
    """Objective difficulty levels"""
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


# ==========================================
# CERTIFICATION
# ==========================================

class Certification(Base):
    """
    A certification exam (e.g. 'Security+', 'AWS Solutions Architect').
    The blueprint importer forces is_active off when an imported blueprint's
    domain weights do not sum to ~100%; manual updates are not checked.
    blueprint holds the raw payload of the last AI extraction, for audit.
    """
    __tablename__ = "certifications"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False, index=True)
    code = Column(String(100), unique=True, nullable=False, index=True)
    description = Column(Text, nullable=True)
    is_scored_exam = Column(Boolean, default=True, nullable=False)
    passing_score = Column(Integer, nullable=True)
    max_score = Column(Integer, nullable=True)
    default_study_duration = Column(Integer, default=45, nullable=False)  # days
    is_active = Column(Boolean, default=True, nullable=False)
    is_archived = Column(Boolean, default=False, nullable=False)
    blueprint = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relationships
    domains = relationship(
        "Domain",
        back_populates="certification",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Domain.order",
    )

    def __repr__(self):
        return f"<Certification(id={self.id}, code='{self.code}', is_active={self.is_active})>"


# ==========================================
# BLUEPRINT: DOMAIN → OBJECTIVE → BULLET → SUB-BULLET
# ==========================================

class Domain(Base):
    """
    Top-level weighted exam domain (e.g., 'Threats, Attacks and Vulnerabilities').
    weight is a fraction 0..1 (0.24 for 24%).
    """
    __tablename__ = "domains"

    id = Column(Integer, primary_key=True, index=True)
    certification_id = Column(
        Integer, ForeignKey("certifications.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name = Column(String(500), nullable=False)
    weight = Column(Float, default=0.0, nullable=False)
    order = Column(Integer, default=0, nullable=False)  # Display order within certification
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relationships
    certification = relationship("Certification", back_populates="domains")
    objectives = relationship(
        "Objective",
        back_populates="domain",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Objective.order",
    )

    def __repr__(self):
        return f"<Domain(id={self.id}, name='{self.name}', weight={self.weight})>"


class Objective(Base):
    """
    Testable learning outcome within a domain (e.g., '1.1 Compare security controls')
    """
    __tablename__ = "objectives"

    id = Column(Integer, primary_key=True, index=True)
    domain_id = Column(Integer, ForeignKey("domains.id", ondelete="CASCADE"), nullable=False, index=True)
    code = Column(String(50), nullable=False)
    description = Column(Text, nullable=False)
    difficulty = Column(String(20), default=Difficulty.INTERMEDIATE.value, nullable=False)
    order = Column(Integer, default=0, nullable=False)  # Display order within domain
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relationships
    domain = relationship("Domain", back_populates="objectives")
    bullets = relationship(
        "Bullet",
        back_populates="objective",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Bullet.order",
    )

    def __repr__(self):
        return f"<Objective(id={self.id}, code='{self.code}', domain_id={self.domain_id})>"


class Bullet(Base):
    """Detail item under an objective"""
    __tablename__ = "bullets"

    id = Column(Integer, primary_key=True, index=True)
    objective_id = Column(Integer, ForeignKey("objectives.id", ondelete="CASCADE"), nullable=False, index=True)
    text = Column(Text, nullable=False)
    order = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    objective = relationship("Objective", back_populates="bullets")
    sub_bullets = relationship(
        "SubBullet",
        back_populates="bullet",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="SubBullet.order",
    )

    def __repr__(self):
        return f"<Bullet(id={self.id}, objective_id={self.objective_id}, order={self.order})>"


class SubBullet(Base):
    """Finest-grained detail item, nested under a bullet"""
    __tablename__ = "sub_bullets"

    id = Column(Integer, primary_key=True, index=True)
    bullet_id = Column(Integer, ForeignKey("bullets.id", ondelete="CASCADE"), nullable=False, index=True)
    text = Column(Text, nullable=False)
    order = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    bullet = relationship("Bullet", back_populates="sub_bullets")

    def __repr__(self):
        return f"<SubBullet(id={self.id}, bullet_id={self.bullet_id}, order={self.order})>"
