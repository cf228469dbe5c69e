from datetime import date
from pydantic import BaseModel, Field


class SubmitPhotoRequest(BaseModel):
    photo_ref: str = Field(min_length=1, max_length=1000)
    is_private: bool = False


class ReminderRequest(BaseModel):
    to_member_id: str = Field(min_length=1)


class RunDailyMatchingRequest(BaseModel):
    pairing_date: date | None = None
    seed: int | None = None


class RunRecoveryRequest(BaseModel):
    dry_run: bool = False
