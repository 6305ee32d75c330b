"""
Pydantic schemas for the extracted card record and API request/response models
"""
from pydantic import BaseModel, Field
from typing import List, Optional, Dict, Any, Literal


class InsuranceCardFields(BaseModel):
    """Structured insurance card record extracted from OCR text"""
    subscriber_name: Optional[str] = Field(None, description="Subscriber (souscripteur)")
    policy_number: Optional[str] = Field(None, description="Policy number (n° police)")
    member_number: Optional[str] = Field(None, description="Member number (n° assuré)")
    insured_name: Optional[str] = Field(None, description="Insured person name")
    beneficiary_name: Optional[str] = Field(None, description="Beneficiary name")
    age_years: Optional[int] = Field(None, ge=0, description="Age in years")
    sex: Optional[Literal["M", "F"]] = Field(None, description="Sex (M or F)")
    raw_text: str = Field(..., description="Verbatim recognized text")

    class Config:
        frozen = True

    def extracted_count(self) -> int:
        """Number of optional fields that were set"""
        return sum(
            1 for name, value in self.model_dump(exclude={"raw_text"}).items()
            if value is not None
        )


class CardFieldResponse(BaseModel):
    """Response model for an extractable card field"""
    key: str = Field(..., description="Field identifier")
    name: str = Field(..., description="Human-readable field label")
    keywords: List[str] = Field(..., description="Label keywords detected on the card")


class ParseTextRequest(BaseModel):
    """Request model for parsing already recognized text"""
    text: str = Field(..., description="Recognized card text")


class CardExtractionResponse(BaseModel):
    """Response model for a card extraction"""
    success: bool = Field(True, description="Whether the extraction ran")
    message: str = Field(..., description="Status message")
    status: str = Field(..., description="completed or partial")
    ocr_confidence: Optional[float] = Field(None, description="Average OCR confidence (0-100)")
    processing_time: Optional[float] = Field(None, description="Processing time in seconds")
    data: InsuranceCardFields = Field(..., description="Extracted card fields")


class ErrorResponse(BaseModel):
    """Standard error response model"""
    success: bool = Field(False, description="Always false for errors")
    error: str = Field(..., description="Error code")
    message: str = Field(..., description="Error message")
    details: Optional[Dict[str, Any]] = Field(None, description="Additional error details")
    recommendation: Optional[str] = Field(None, description="Recommended action")
