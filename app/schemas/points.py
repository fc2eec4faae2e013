from pydantic import BaseModel, Field

class AdjustPoints(BaseModel):
    user_id: int
    delta: int
    reason: str = Field(..., min_length=1, max_length=255)
