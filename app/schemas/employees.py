from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class _CamelOut(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)


class EmployeeOut(_CamelOut):
    id: str
    user_email: str = Field(serialization_alias="userEmail")
    first_name: str = Field(serialization_alias="firstName")
    last_name: str = Field(serialization_alias="lastName")
    preferred_name: Optional[str] = Field(default=None, serialization_alias="preferredName")
    profile_picture_url: Optional[str] = Field(
        default=None, serialization_alias="profilePictureUrl"
    )
    manager_id: Optional[str] = Field(default=None, serialization_alias="managerId")
    position_id: Optional[str] = Field(default=None, serialization_alias="positionId")
    hire_date: Optional[date] = Field(default=None, serialization_alias="hireDate")
    job_level: Optional[int] = Field(default=None, serialization_alias="jobLevel")
    phone: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    is_active: bool = Field(serialization_alias="isActive")
    created_at: Optional[datetime] = Field(default=None, serialization_alias="createdAt")
    updated_at: Optional[datetime] = Field(default=None, serialization_alias="updatedAt")


class EmployeeListItem(EmployeeOut):
    display_name: str = Field(default="", serialization_alias="displayName")
    position_name: Optional[str] = Field(default=None, serialization_alias="positionName")
    # From the employee's first org assignment row.
    division_id: Optional[str] = Field(default=None, serialization_alias="divisionId")
    department_id: Optional[str] = Field(default=None, serialization_alias="departmentId")
    location_id: Optional[str] = Field(default=None, serialization_alias="locationId")


class Pagination(BaseModel):
    page: int
    page_size: int = Field(serialization_alias="pageSize")
    total: int
    total_pages: int = Field(serialization_alias="totalPages")


class EmployeeListPage(BaseModel):
    items: list[EmployeeListItem]
    pagination: Pagination


class EmployeeUpdate(BaseModel):
    # all optional for PATCH-like updates; accepts camelCase bodies
    model_config = ConfigDict(populate_by_name=True)

    first_name: Optional[str] = Field(default=None, alias="firstName")
    last_name: Optional[str] = Field(default=None, alias="lastName")
    preferred_name: Optional[str] = Field(default=None, alias="preferredName")

    @field_validator("first_name", "last_name", "preferred_name", mode="before")
    @classmethod
    def _strip(cls, value):
        if value is None:
            return None
        return str(value).strip()


class EmployeeMeOut(BaseModel):
    employee: Optional[EmployeeOut] = None
    display_name: Optional[str] = Field(default=None, serialization_alias="displayName")


class PickerItem(BaseModel):
    id: str
    display_name: str = Field(serialization_alias="displayName")
    user_email: str = Field(serialization_alias="userEmail")


class PickerPage(BaseModel):
    items: list[PickerItem]
