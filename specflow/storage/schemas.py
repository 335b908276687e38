from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from specflow.domain.models import utcnow
from specflow.domain.states import UseCaseStatus


def now_iso() -> str:
    return utcnow().isoformat().replace("+00:00", "Z")


class CamelModel(BaseModel):
    # Stored documents use camelCase keys; unknown keys are kept on round trips.
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    def to_json_dict(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class CamelBody(BaseModel):
    # Request bodies: camelCase on the wire, unknown keys ignored.
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Project(CamelModel):
    id: str
    name: str
    repo_path: str
    test_command: str


class ImplementationMark(CamelModel):
    version: str
    timestamp: str


class UseCaseTestFiles(CamelModel):
    unit: Optional[str] = None
    integration: Optional[str] = None
    last_aligned_version: Optional[str] = None


class UseCase(CamelModel):
    id: str
    title: str = ""
    spec_path: str
    status: UseCaseStatus = UseCaseStatus.NEW
    version: str = "1.0.0"
    created_at: str = Field(default_factory=now_iso)
    updated_at: str = Field(default_factory=now_iso)
    last_implemented: Optional[ImplementationMark] = None
    test_files: Optional[UseCaseTestFiles] = None

    @model_validator(mode="before")
    @classmethod
    def drop_empty_defaults(cls, data):
        # Older config files carry null/empty status, version or timestamps.
        if isinstance(data, dict):
            data = {
                k: v for k, v in data.items()
                if v or k not in ("status", "version", "createdAt", "updatedAt")
            }
        return data

    def metadata(self) -> dict:
        return {
            "status": self.status.value,
            "version": self.version,
            "updatedAt": self.updated_at,
        }


class ProjectConfig(CamelModel):
    project_name: str = ""
    test_command: str = ""
    use_cases: list[UseCase] = Field(default_factory=list)

    def find_use_case(self, use_case_id: str) -> Optional[UseCase]:
        return next((uc for uc in self.use_cases if uc.id == use_case_id), None)
