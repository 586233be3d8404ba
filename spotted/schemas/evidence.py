from pydantic import BaseModel


class EvidenceUploadResponse(BaseModel):
    path: str
    url: str
