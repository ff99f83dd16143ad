from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class OrgAssignmentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_key: str = Field(serialization_alias="userKey")
    division_id: Optional[str] = Field(default=None, serialization_alias="divisionId")
    department_id: Optional[str] = Field(default=None, serialization_alias="departmentId")
    location_id: Optional[str] = Field(default=None, serialization_alias="locationId")
    created_at: Optional[datetime] = Field(default=None, serialization_alias="createdAt")


class OrgAssignmentList(BaseModel):
    items: list[OrgAssignmentOut]


class OrgAssignmentUpsert(BaseModel):
    """
    Omitted fields are left untouched on update; blank strings clear the field.
    """

    model_config = ConfigDict(populate_by_name=True)

    division_id: Optional[str] = Field(default=None, alias="divisionId")
    department_id: Optional[str] = Field(default=None, alias="departmentId")
    location_id: Optional[str] = Field(default=None, alias="locationId")

    @field_validator("division_id", "department_id", "location_id", mode="before")
    @classmethod
    def _blank_to_none(cls, value):
        if value is None:
            return None
        text = str(value).strip()
        return text or None
