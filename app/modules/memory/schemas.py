from pydantic import BaseModel, Field


class CreateMemoryJobRequest(BaseModel):
    userId: str = Field(..., min_length=1)


class ProcessMemoryJobRequest(BaseModel):
    jobId: str = Field(..., min_length=1)
