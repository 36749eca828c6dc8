from pydantic import BaseModel, Field


class ActiveImageRequest(BaseModel):
    index: int = Field(ge=0)
