from pydantic import BaseModel, Field

from app.models.domain.astrologer_domain import Astrologer


class AstrologerDeleteResponse(BaseModel):
    message: str
    astrologer: Astrologer


class BatchAstrologersResponse(BaseModel):
    message: str
    success_count: int
    astrologers: list[Astrologer]
    failed: list[str] = Field(default_factory=list, description="One reason per rejected item")
