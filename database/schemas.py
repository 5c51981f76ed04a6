"""
Pydantic schemas for request/response validation
Separate from SQLAlchemy models for clean API contracts
"""

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator
from typing import Literal, Optional, List
from datetime import datetime

from database.models import Difficulty


# ==========================================
# SUB-BULLET SCHEMAS
# ==========================================

class SubBulletBase(BaseModel):
    """Base schema for SubBullet - shared fields"""
    model_config = ConfigDict(str_strip_whitespace=True)

    text: str = Field(..., min_length=1, description="Sub-bullet text")
    order: int = Field(default=0, ge=0, description="Display order within bullet")


class SubBulletCreate(SubBulletBase):
    """Schema for creating a new SubBullet"""
    bullet_id: int = Field(..., gt=0, description="Parent bullet ID")


class SubBulletUpdate(BaseModel):
    """Schema for updating a SubBullet - all fields optional"""
    model_config = ConfigDict(str_strip_whitespace=True)

    text: Optional[str] = Field(None, min_length=1)
    order: Optional[int] = Field(None, ge=0)


class SubBulletResponse(SubBulletBase):
    id: int
    bullet_id: int
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


# ==========================================
# BULLET SCHEMAS
# ==========================================

class BulletBase(BaseModel):
    """Base schema for Bullet - shared fields"""
    model_config = ConfigDict(str_strip_whitespace=True)

    text: str = Field(..., min_length=1, description="Bullet text")
    order: int = Field(default=0, ge=0, description="Display order within objective")


class BulletCreate(BulletBase):
    """Schema for creating a new Bullet"""
    objective_id: int = Field(..., gt=0, description="Parent objective ID")


class BulletUpdate(BaseModel):
    """Schema for updating a Bullet - all fields optional"""
    model_config = ConfigDict(str_strip_whitespace=True)

    text: Optional[str] = Field(None, min_length=1)
    order: Optional[int] = Field(None, ge=0)


class BulletResponse(BulletBase):
    id: int
    objective_id: int
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class BulletWithSubBullets(BulletResponse):
    sub_bullets: List[SubBulletResponse] = []


# ==========================================
# OBJECTIVE SCHEMAS
# ==========================================

class ObjectiveBase(BaseModel):
    """Base schema for Objective - shared fields"""
    model_config = ConfigDict(str_strip_whitespace=True)

    code: str = Field(..., min_length=1, max_length=50, description="Objective code, e.g. '1.1'")
    description: str = Field(..., min_length=1, description="Objective description")
    difficulty: Difficulty = Field(default=Difficulty.INTERMEDIATE)
    order: int = Field(default=0, ge=0, description="Display order within domain")


class ObjectiveCreate(ObjectiveBase):
    """Schema for creating a new Objective"""
    domain_id: int = Field(..., gt=0, description="Parent domain ID")


class ObjectiveUpdate(BaseModel):
    """Schema for updating an Objective - all fields optional"""
    model_config = ConfigDict(str_strip_whitespace=True)

    code: Optional[str] = Field(None, min_length=1, max_length=50)
    description: Optional[str] = Field(None, min_length=1)
    difficulty: Optional[Difficulty] = None
    order: Optional[int] = Field(None, ge=0)


class ObjectiveResponse(ObjectiveBase):
    id: int
    domain_id: int
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class ObjectiveWithBullets(ObjectiveResponse):
    bullets: List[BulletWithSubBullets] = []


# ==========================================
# DOMAIN SCHEMAS
# ==========================================

class DomainBase(BaseModel):
    """Base schema for Domain - shared fields"""
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=1, max_length=500, description="Domain name")
    weight: float = Field(..., ge=0, le=1, description="Weight as a fraction, 0.24 for 24%")
    order: int = Field(default=0, ge=0, description="Display order within certification")


class DomainCreate(DomainBase):
    """Schema for creating a new Domain"""
    certification_id: int = Field(..., gt=0, description="Parent certification ID")


class DomainUpdate(BaseModel):
    """Schema for updating a Domain - all fields optional"""
    model_config = ConfigDict(str_strip_whitespace=True)

    name: Optional[str] = Field(None, min_length=1, max_length=500)
    weight: Optional[float] = Field(None, ge=0, le=1)
    order: Optional[int] = Field(None, ge=0)


class DomainResponse(DomainBase):
    id: int
    certification_id: int
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class DomainComplete(DomainResponse):
    """Domain with its objectives, bullets and sub-bullets"""
    objectives: List[ObjectiveWithBullets] = []


# ==========================================
# BULK IMPORT SCHEMAS
# ==========================================

class SubBulletImport(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    text: str = Field(..., min_length=1)
    order: int = Field(..., ge=0)


class BulletImport(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    text: str = Field(..., min_length=1)
    order: int = Field(..., ge=0)
    sub_bullets: List[SubBulletImport] = Field(
        default_factory=list,
        validation_alias=AliasChoices("sub_bullets", "subBullets"),
    )


class ObjectiveImport(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    code: str = Field(..., min_length=1, max_length=50)
    description: str = Field(..., min_length=1)
    difficulty: Difficulty = Difficulty.INTERMEDIATE
    order: int = Field(..., ge=0)
    bullets: List[BulletImport] = Field(default_factory=list)


class DomainImport(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=1, max_length=500)
    weight: float = Field(..., ge=0, le=1)
    order: int = Field(..., ge=0)
    objectives: List[ObjectiveImport] = Field(default_factory=list)


class BlueprintImportRequest(BaseModel):
    """Full replacement blueprint for one certification"""
    domains: List[DomainImport]


class BlueprintImportResponse(BaseModel):
    domains_created: int
    objectives_created: int
    bullets_created: int
    sub_bullets_created: int
    total_weight_percentage: float
    weights_valid: bool
    certification_deactivated: bool


class DomainWeight(BaseModel):
    id: int
    name: str
    order: int
    weight: float
    percentage: float


class WeightSummaryResponse(BaseModel):
    certification_id: int
    total_percentage: float
    is_valid: bool
    domains: List[DomainWeight] = []


# ==========================================
# CERTIFICATION SCHEMAS
# ==========================================

class CertificationBase(BaseModel):
    """Base schema for Certification - shared fields"""
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=1, max_length=255, description="Certification name")
    code: str = Field(..., min_length=1, max_length=100, description="Unique certification code")
    description: Optional[str] = Field(None, description="Certification description")
    is_scored_exam: bool = True
    passing_score: Optional[int] = Field(None, gt=0)
    max_score: Optional[int] = Field(None, gt=0)
    default_study_duration: int = Field(default=45, gt=0, description="Recommended study duration in days")
    is_active: bool = True

    @model_validator(mode="after")
    def check_scoring(self):
        if self.is_scored_exam:
            if self.passing_score is None or self.max_score is None:
                raise ValueError("Passing score and max score are required for scored exams")
            if self.passing_score > self.max_score:
                raise ValueError("Passing score must be less than or equal to max score")
        return self


class CertificationCreate(CertificationBase):
    """Schema for creating a new Certification"""


class CertificationUpdate(CertificationBase):
    """Schema for updating a Certification - full replacement of editable fields"""


class CertificationArchive(BaseModel):
    is_archived: bool


class CertificationResponse(BaseModel):
    id: int
    name: str
    code: str
    description: Optional[str] = None
    is_scored_exam: bool
    passing_score: Optional[int] = None
    max_score: Optional[int] = None
    default_study_duration: int
    is_active: bool
    is_archived: bool
    created_at: datetime
    updated_at: Optional[datetime] = None
    domain_count: int = 0

    model_config = ConfigDict(from_attributes=True)


class CertificationListFilters(BaseModel):
    search: Optional[str] = None
    status: Literal["all", "active", "inactive", "archived"] = "all"
    sort_by: Literal["name", "code", "created_at"] = "name"
    sort_order: Literal["asc", "desc"] = "asc"


class DeletionCheckResponse(BaseModel):
    can_delete: bool
    has_students: bool
    has_content: bool
    student_count: int
    domain_count: int


class CertificationBlueprint(BaseModel):
    """Certification header plus its full nested blueprint"""
    id: int
    name: str
    code: str
    is_active: bool
    domains: List[DomainComplete] = []

    model_config = ConfigDict(from_attributes=True)


class CertificationFromPdfResponse(BaseModel):
    """New certification created from an exam-guide PDF, with its import counts"""
    certification: CertificationResponse
    import_result: BlueprintImportResponse
