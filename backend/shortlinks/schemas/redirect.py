from pydantic import BaseModel, Field


class VerifyPasswordRequest(BaseModel):
    """Password submitted from the verification page"""
    short_code: str = Field(..., min_length=1, max_length=30)
    password: str = Field(..., max_length=128)


class VerifyPasswordResponse(BaseModel):
    long_url: str
