"""AI query history schemas."""
from pydantic import BaseModel, ConfigDict
from typing import Optional
from datetime import datetime


class AIQueryResponse(BaseModel):
    """A saved question/answer pair."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    query_text: Optional[str] = None
    ai_response: Optional[str] = None
    created_at: datetime
