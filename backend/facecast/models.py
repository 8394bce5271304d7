import enum
from sqlalchemy.orm import declarative_base
from sqlalchemy import Column, Integer, String, Text, DateTime, func
Base = declarative_base()


class GenerationStatus(str, enum.Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


TERMINAL_STATUSES = (GenerationStatus.COMPLETED.value, GenerationStatus.FAILED.value)
ACTIVE_STATUSES = (GenerationStatus.PENDING.value, GenerationStatus.PROCESSING.value)


class SubmissionStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class Generation(Base):
    __tablename__ = "generations"
    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String, nullable=False, index=True)
    user_email = Column(String, nullable=True)
    status = Column(String, nullable=False, default=GenerationStatus.PENDING.value)
    character_name = Column(String, nullable=True)
    character_image_url = Column(String, nullable=True)
    source_video_url = Column(String, nullable=True)
    # aspect_ratio is the generated video's (from the character image),
    # source_video_aspect_ratio the recorded video's
    aspect_ratio = Column(String(10), nullable=False, default="fill")
    source_video_aspect_ratio = Column(String(10), nullable=False, default="fill")
    run_id = Column(String, nullable=True)
    video_url = Column(String, nullable=True)
    error_message = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
    completed_at = Column(DateTime, nullable=True)


class ReferenceImage(Base):
    __tablename__ = "reference_images"
    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String, nullable=False, index=True)
    name = Column(String, nullable=False)
    image_url = Column(String, nullable=False)
    category = Column(String, nullable=True)
    created_at = Column(DateTime, server_default=func.now())


class CharacterSubmission(Base):
    __tablename__ = "character_submissions"
    id = Column(Integer, primary_key=True, autoincrement=True)
    image_url = Column(Text, nullable=False)
    suggested_name = Column(Text, nullable=True)
    suggested_category = Column(Text, nullable=True)
    user_id = Column(String, nullable=True)
    status = Column(String, nullable=False, default=SubmissionStatus.PENDING.value)
    created_at = Column(DateTime, server_default=func.now())


class CharacterUsage(Base):
    __tablename__ = "character_usage"
    character_id = Column(String, primary_key=True)
    usage_count = Column(Integer, nullable=False, default=0)
    last_used_at = Column(DateTime, server_default=func.now())
    created_at = Column(DateTime, server_default=func.now())
