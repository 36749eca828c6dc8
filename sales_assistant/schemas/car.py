"""Value objects exchanged with the AI service and persisted in history.

Persisted and wire field names are camelCase; both spellings are accepted on
input so legacy history payloads load unchanged.
"""
from enum import Enum

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel

_camel_config = {
    "alias_generator": to_camel,
    "populate_by_name": True,
    "frozen": True,
}


class WorkflowState(str, Enum):
    IDLE = "IDLE"
    ANALYZING = "ANALYZING"
    REVIEW = "REVIEW"
    GENERATING_ADS = "GENERATING_ADS"
    DONE = "DONE"


class CarDetails(BaseModel):
    model: str = ""
    year: str = ""
    mileage: str = ""
    price: str = ""
    engine_volume: str = ""
    fuel_type: str = ""
    trim_level: str = ""
    additional_info: str = ""

    model_config = _camel_config


class AnalysisDetails(BaseModel):
    optics: str
    steering: str
    seats: str
    exterior: str

    model_config = _camel_config


class AnalysisResult(BaseModel):
    summary: str
    score: int = Field(ge=1, le=100)
    checklist: list[str] = Field(default_factory=list)
    details: AnalysisDetails
    defects: list[str] = Field(default_factory=list)
    preparation: str | None = None

    model_config = _camel_config


class AdContent(BaseModel):
    olx: str
    autoria: str
    telegram: str
    instagram: str
    facebook: str
    viber: str

    model_config = _camel_config


class HistoryItem(BaseModel):
    id: str
    timestamp: int
    car_details: CarDetails
    analysis: AnalysisResult
    ads: AdContent | None = None
    # Always written empty; older payloads may still carry base64 images.
    images: list[str] = Field(default_factory=list)

    model_config = _camel_config
