"""Pydantic response models for the HTTP layer.

Field names follow the camelCase wire format the browser client reads
(``fileName``, ``dynamicRange`` ...); score values are fixed 3-decimal
strings rather than floats.
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class MoodModel(BaseModel):
    happy: str
    sad: str
    relaxed: str
    aggressive: str


class FeaturesModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    intensity: str
    complexity: str
    dynamic_range: str = Field(alias="dynamicRange")
    zero_crossings: int = Field(alias="zeroCrossings")
    peaks: int


class AnalysisModel(BaseModel):
    bpm: int
    key: str
    danceability: str
    mood: MoodModel
    features: FeaturesModel


class AnalysisResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: Literal[True] = True
    file_name: str = Field(alias="fileName")
    file_size: int = Field(alias="fileSize")
    analysis: AnalysisModel
    timestamp: str


class HealthResponse(BaseModel):
    status: str = "OK"
    message: str = "Music Analysis API is running"
    timestamp: str


class ErrorResponse(BaseModel):
    error: str
    message: str
