"""
Pydantic schemas for request/response validation
"""
from pydantic import BaseModel, EmailStr, Field
from typing import Optional, List, Dict, Any, Literal, Union
from datetime import datetime

AspectRatio = Literal["9:16", "16:9", "fill"]

# ===== Common Schemas =====

class HealthResponse(BaseModel):
    status: str
    service: str

class SuccessResponse(BaseModel):
    success: bool = True

# ===== Generation Schemas =====

class GenerationErrorObject(BaseModel):
    kind: str
    message: str
    code: Optional[str] = None
    provider: Optional[str] = None
    model: Optional[str] = None
    summary: Optional[str] = None
    details: Optional[str] = None

class GenerationOut(BaseModel):
    id: int
    user_id: str
    user_email: Optional[str] = None
    status: str
    character_name: Optional[str] = None
    character_image_url: Optional[str] = None
    source_video_url: Optional[str] = None
    aspect_ratio: str
    source_video_aspect_ratio: str
    run_id: Optional[str] = None
    video_url: Optional[str] = None
    error_message: Optional[str] = None
    error: Optional[GenerationErrorObject] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

class GenerationListResponse(BaseModel):
    generations: List[GenerationOut]

class CreateGenerationRequest(BaseModel):
    characterName: Optional[str] = None
    characterImageUrl: Optional[str] = None
    aspectRatio: Optional[AspectRatio] = None
    sourceVideoAspectRatio: Optional[AspectRatio] = None
    notifyByEmail: bool = False

class CreateGenerationResponse(BaseModel):
    generationId: int

class UpdateGenerationRequest(BaseModel):
    status: str
    errorMessage: Optional[str] = None

# ===== Trigger Schemas =====

class GenerateVideoRequest(BaseModel):
    generationId: int
    videoUrl: str = Field(min_length=1)
    characterImageUrl: str = Field(min_length=1)
    characterName: Optional[str] = None
    userEmail: Optional[EmailStr] = None
    sendEmail: bool = False

class GenerateVideoResponse(BaseModel):
    success: bool = True
    generationId: int
    videoUrl: str

class GenerateQueuedResponse(BaseModel):
    success: bool = True
    generationId: int
    runId: str
    message: str

class WebhookReceipt(BaseModel):
    received: bool = True
    status: str
    videoUrl: Optional[str] = None
    error: Optional[str] = None

# ===== Reference Image Schemas =====

class ReferenceImageOut(BaseModel):
    id: int
    name: str
    image_url: str
    category: Optional[str] = None
    created_at: Optional[datetime] = None

class ReferenceImageListResponse(BaseModel):
    images: List[ReferenceImageOut]

class CreateReferenceImageRequest(BaseModel):
    name: str = Field(min_length=1)
    imageUrl: str = Field(min_length=1)
    category: Optional[str] = None

class CreateReferenceImageResponse(BaseModel):
    id: int

class UpdateReferenceImageRequest(BaseModel):
    category: str = Field(min_length=1)

# ===== Upload Schemas =====

class UploadTokenRequest(BaseModel):
    filename: str = Field(min_length=1)
    contentType: str

class UploadTokenResponse(BaseModel):
    url: str
    fields: Dict[str, Any]
    key: str
    publicUrl: str
    expiresIn: int

# ===== Character Schemas =====

class SubmitCharacterRequest(BaseModel):
    imageUrl: str = Field(min_length=1)
    name: Optional[str] = None
    category: Optional[str] = None

class SubmissionOut(BaseModel):
    id: int
    image_url: str
    suggested_name: Optional[str] = None
    suggested_category: Optional[str] = None
    user_id: Optional[str] = None
    status: str
    created_at: Optional[datetime] = None

class SubmissionListResponse(BaseModel):
    submissions: List[SubmissionOut]

class ApprovedCharacter(BaseModel):
    id: int
    image_url: str
    suggested_name: Optional[str] = None
    suggested_category: Optional[str] = None

class ApprovedCharactersResponse(BaseModel):
    characters: List[ApprovedCharacter]

class ModerateSubmissionRequest(BaseModel):
    id: int
    status: Literal["approved", "rejected"]
    name: Optional[str] = None
    category: Optional[str] = None

class DeleteSubmissionRequest(BaseModel):
    id: int

class CharacterUsageRequest(BaseModel):
    characterId: Union[str, int]

class CharacterUsageResponse(BaseModel):
    usage: Dict[str, int]

# ===== Stats Schemas =====

class GenerationStatsResponse(BaseModel):
    medianDurationSeconds: Optional[float] = None
