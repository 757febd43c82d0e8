from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .models import DocumentType, UploadStatus


class ApiModel(BaseModel):
    model_config = ConfigDict(from_attributes=True, alias_generator=to_camel, populate_by_name=True)

    def to_json(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class RecruiterOut(ApiModel):
    id: int
    name: Optional[str] = None
    email: str


class EducationOut(ApiModel):
    id: int
    institution: str
    degree: str
    field_of_study: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    is_current: bool
    description: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class ExperienceOut(ApiModel):
    id: int
    company: str
    position: str
    start_date: date
    end_date: Optional[date] = None
    is_current: bool
    description: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class DocumentOut(ApiModel):
    id: int
    candidate_id: int
    file_name: str
    original_name: str
    mime_type: str
    file_size: int
    file_path: str
    bucket_name: str
    etag: Optional[str] = None
    document_type: DocumentType
    upload_status: UploadStatus
    created_at: datetime
    updated_at: datetime


class DocumentWithUrlOut(DocumentOut):
    download_url: Optional[str] = None


class CandidateOut(ApiModel):
    id: int
    first_name: str
    last_name: str
    email: str
    phone: str
    address: str
    created_at: datetime
    updated_at: datetime
    created_by: int
    educations: List[EducationOut] = []
    experiences: List[ExperienceOut] = []
    documents: List[DocumentOut] = []
    recruiter: Optional[RecruiterOut] = None


class PresignedUploadOut(ApiModel):
    upload_url: str
    file_name: str
    file_path: str
    expires_in: int


class DownloadUrlOut(ApiModel):
    download_url: str
    expires_in: int


class DocumentRegistrationIn(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, str_strip_whitespace=True)

    file_path: str = Field(min_length=1)
    original_name: str = Field(min_length=1, max_length=255)
    document_type: DocumentType = DocumentType.CV


class DocumentStatusIn(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    upload_status: UploadStatus
