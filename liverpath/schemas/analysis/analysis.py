# liverpath/schemas/analysis/analysis.py
from datetime import datetime, timezone
from typing import List

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Stored and wire shape use camelCase keys; Python code uses snake_case."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Finding(CamelModel):
    finding: str = Field(..., description="The specific pathological feature observed")
    description: str = Field(..., description="Location, severity and characteristics of the feature")


class AnalysisResult(CamelModel):
    overall_impression: str = Field(..., description="High-level summary of the pathological picture")
    key_findings: List[Finding] = Field(..., description="Observed pathological features, in report order")
    differential_diagnosis: str = Field(..., description="Differential diagnosis based on the findings")
    recommendations: List[str] = Field(..., description="Further tests, stains or clinical correlation")


class HistoryRecord(CamelModel):
    id: str
    date: datetime
    image_reference: str
    result: AnalysisResult

    @field_validator("date")
    @classmethod
    def _assume_utc(cls, v: datetime) -> datetime:
        # Mixed naive/aware timestamps cannot be ordered
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v


class AnalysisResultUpdate(CamelModel):
    result: AnalysisResult


class HistoryResponse(BaseModel):
    success: bool = True
    data: List[HistoryRecord]


# Response schema handed to Gemini. Field set mirrors AnalysisResult.
ANALYSIS_RESPONSE_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "overallImpression": {
            "type": "STRING",
            "description": "A brief, high-level summary of the overall pathological picture of the liver tissue.",
        },
        "keyFindings": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "finding": {
                        "type": "STRING",
                        "description": "The specific pathological feature observed (e.g., Steatosis, Lobular Inflammation, Fibrosis, Ballooning degeneration, Mallory-Denk bodies).",
                    },
                    "description": {
                        "type": "STRING",
                        "description": "A detailed description of the observed feature, including location, severity, and characteristics.",
                    },
                },
                "required": ["finding", "description"],
            },
            "description": "A list of specific pathological features observed in the slide.",
        },
        "differentialDiagnosis": {
            "type": "STRING",
            "description": "A differential diagnosis based on the key findings. Correlate findings to possible conditions like NAFLD, NASH, alcoholic liver disease, or viral hepatitis.",
        },
        "recommendations": {
            "type": "ARRAY",
            "items": {"type": "STRING"},
            "description": "Recommendations for further tests, special stains (e.g., Trichrome, Reticulin), immunohistochemistry, or clinical correlation needed to confirm the diagnosis.",
        },
    },
    "required": ["overallImpression", "keyFindings", "differentialDiagnosis", "recommendations"],
}
