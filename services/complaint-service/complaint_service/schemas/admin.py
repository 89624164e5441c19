from pydantic import BaseModel, Field, ConfigDict, EmailStr, field_validator
from typing import Optional, List, Dict
from datetime import datetime
from enum import Enum
from complaint_service.core.config import settings
from complaint_service.schemas.complaint import CategoryEnum

class AdminRoleEnum(str, Enum):
    ADMIN = "admin"
    SUPER_ADMIN = "super_admin"

class AdminCreate(BaseModel):
    name: str = Field(..., min_length=1)
    email: EmailStr
    department: str = Field(..., min_length=1)
    employee_id: str = Field(..., min_length=1)
    role: AdminRoleEnum = AdminRoleEnum.ADMIN
    specializations: List[CategoryEnum] = Field(default_factory=lambda: [CategoryEnum.GENERAL])
    branches: Optional[str] = Field(None, description="Branch handled; defaults to the admin's department.")
    semesters: Optional[int] = Field(None, ge=1, le=8)
    max_case_load: int = Field(default_factory=lambda: settings.DEFAULT_MAX_CASE_LOAD, gt=0)

    @field_validator("specializations")
    @classmethod
    def dedupe_specializations(cls, value: List[CategoryEnum]) -> List[CategoryEnum]:
        return list(dict.fromkeys(value))

class AdminUpdate(BaseModel):
    """
    Directory fields an admin record may change after registration.
    The caseload counter is owned by the distribution engine and is not accepted here.
    """
    name: Optional[str] = Field(None, min_length=1)
    department: Optional[str] = Field(None, min_length=1)
    role: Optional[AdminRoleEnum] = None
    specializations: Optional[List[CategoryEnum]] = Field(None, min_length=1)
    branches: Optional[str] = None
    semesters: Optional[int] = Field(None, ge=1, le=8)
    max_case_load: Optional[int] = Field(None, gt=0)

    model_config = ConfigDict(extra="forbid")

    @field_validator("specializations")
    @classmethod
    def dedupe_specializations(cls, value: Optional[List[CategoryEnum]]) -> Optional[List[CategoryEnum]]:
        return list(dict.fromkeys(value)) if value is not None else value

class AdminResponse(BaseModel):
    id: int
    name: str
    email: str
    department: str
    employee_id: str
    role: AdminRoleEnum
    specializations: List[CategoryEnum] = Field(default_factory=list, validation_alias="categories")
    branches: Optional[str] = None
    semesters: Optional[int] = None
    is_active: bool
    max_case_load: int
    current_case_load: int
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

class AdminSummary(BaseModel):
    id: int
    name: str
    email: str
    department: str

class ToggleStatusResponse(BaseModel):
    message: str
    is_active: bool

class AdminWorkload(BaseModel):
    name: str
    email: str
    department: str
    specializations: List[CategoryEnum]
    current_case_load: int
    max_case_load: int
    utilization_rate: float

class AdminComplaintTotals(BaseModel):
    total: int
    resolved: int
    resolution_rate: float
    by_status: Dict[str, int]

class AdminStatsResponse(BaseModel):
    admin: AdminWorkload
    complaints: AdminComplaintTotals
