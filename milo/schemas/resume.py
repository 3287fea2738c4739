from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Wire models use camelCase keys; Python code uses the snake_case names."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        coerce_numbers_to_str=True,
    )

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class ExperienceEntry(CamelModel):
    title: str
    company: str
    duration: str
    description: str


class EducationEntry(CamelModel):
    degree: str
    institution: str
    year: str
    gpa: str | None = None


class ProjectEntry(CamelModel):
    name: str
    description: str
    technologies: list[str]


class ResumeData(CamelModel):
    summary: str
    skills: list[str]
    experience: list[ExperienceEntry]
    education: list[EducationEntry]
    projects: list[ProjectEntry] = Field(default_factory=list)
    achievements: list[str] = Field(default_factory=list)
    interests: list[str] = Field(default_factory=list)

    # The model often sends null for sections it found nothing for.
    @field_validator("projects", "achievements", "interests", mode="before")
    @classmethod
    def _null_to_empty(cls, value: Any) -> Any:
        return [] if value is None else value


class UserSummary(CamelModel):
    professional_summary: str
    key_strengths: list[str] = Field(default_factory=list, max_length=5)
    career_focus: str
    value_proposition: str


class FileMetadata(CamelModel):
    size: int = Field(ge=0)
    type: str = "unknown"


class ResumeRecord(CamelModel):
    extracted_data: ResumeData
    user_summary: UserSummary
    processed_at: str
    file_metadata: FileMetadata


class ProcessResumeRequest(CamelModel):
    resume_url: str | None = Field(default=None, max_length=3000)


class ProcessResumeResponse(CamelModel):
    success: bool = True
    extracted_data: ResumeData
    user_summary: UserSummary
    message: str = "Resume processed successfully"
    persisted: bool = True


class ResumeCapabilities(CamelModel):
    message: str
    endpoints: dict[str, str]
    supported_formats: list[str]
    max_file_size: str
