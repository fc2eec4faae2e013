from pydantic import BaseModel, Field

from app.models.enums import VerificationPurpose

class IssueCode(BaseModel):
    subject: str = Field(..., min_length=3, max_length=255)
    purpose: VerificationPurpose

class VerifyCode(IssueCode):
    code: str = Field(..., min_length=4, max_length=12)
