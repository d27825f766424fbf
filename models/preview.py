from pydantic import BaseModel, Field, model_serializer
from typing import Dict, List, Optional


class PreviewRequest(BaseModel):
    url: str


class FetchResult(BaseModel):
    resolved_url: str
    body: str


class ImageCandidate(BaseModel):
    src: str


class Preview(BaseModel):
    """
    Link preview for a resolved URL. Extra OpenGraph properties live in
    `properties` and are flattened into the top level on serialization.
    """

    url: str
    title: str
    description: Optional[str] = None
    images: List[ImageCandidate] = Field(default_factory=list)
    properties: Dict[str, str] = Field(default_factory=dict)

    @model_serializer(mode="wrap")
    def flatten_properties(self, handler):
        data = handler(self)
        extra = data.pop("properties", None) or {}
        if data.get("description") is None:
            data.pop("description", None)
        for key, value in extra.items():
            data.setdefault(key, value)
        return data
