"""Pydantic models for inbound JSON payloads."""

from pydantic import BaseModel, ConfigDict, Field


class DepartmentReferenceRequest(BaseModel):
    """Identifies a department by id or name."""

    model_config = ConfigDict(populate_by_name=True)

    department_reference: str = Field(alias="departmentReference", min_length=1)


class DeleteUserRequest(BaseModel):
    email: str


class ProfessorReferenceRequest(BaseModel):
    """Identifies a professor by id or name."""

    model_config = ConfigDict(populate_by_name=True)

    professor_reference: str = Field(alias="professorReference", min_length=1)
