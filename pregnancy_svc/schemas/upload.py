"""
Pydantic schemas for upload-related API operations.
"""
from pydantic import BaseModel, ConfigDict, Field


class OcrResponse(BaseModel):
    """Text recognized from an uploaded lab-report image."""
    model_config = ConfigDict(populate_by_name=True)

    filename: str = Field(..., description="Stored filename of the uploaded image")
    ocr_text: str = Field(..., alias="ocrText", description="Recognized text, to be sent back as ocrText")


class ChatMessageRequest(BaseModel):
    """A single user turn for the conversational assistant."""
    message: str = Field(..., max_length=4000, description="User message", examples=["هل الصداع طبيعي في الشهر السابع؟"])
