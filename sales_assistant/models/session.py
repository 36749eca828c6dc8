"""Transient, in-memory working set of the current workflow."""
from dataclasses import dataclass, field

from sales_assistant.schemas.car import AdContent, AnalysisResult, CarDetails


@dataclass
class WorkflowSession:
    id: str | None = None
    # Display handles and their encoded payloads, index-aligned.
    images: list[str] = field(default_factory=list)
    base64_images: list[str] = field(default_factory=list)
    car_details: CarDetails = field(default_factory=CarDetails)
    analysis: AnalysisResult | None = None
    ads: AdContent | None = None
    active_image_index: int = 0

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "images": list(self.images),
            "carDetails": self.car_details.model_dump(by_alias=True),
            "analysis": self.analysis.model_dump(by_alias=True) if self.analysis else None,
            "ads": self.ads.model_dump(by_alias=True) if self.ads else None,
            "activeImageIndex": self.active_image_index,
        }
