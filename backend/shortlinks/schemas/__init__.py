from .link import LinkCreate, LinkResponse, LinkUpdate, LinkListResponse
from .redirect import VerifyPasswordRequest, VerifyPasswordResponse

__all__ = [
    "LinkCreate", "LinkResponse", "LinkUpdate", "LinkListResponse",
    "VerifyPasswordRequest", "VerifyPasswordResponse",
]
