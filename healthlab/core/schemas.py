from pydantic import BaseModel
from typing import Optional

class UserCache(BaseModel):
    id: int
    telegram_id: int
    username: Optional[str] = None
    language: Optional[str] = None
    stripe_customer_id: Optional[str] = None
