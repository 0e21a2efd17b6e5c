from sqlmodel import SQLModel, Field
from typing import Optional
from datetime import datetime


class Admin(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    username: str = Field(unique=True, index=True)
    password: str
    created_at: datetime = Field(default_factory=datetime.utcnow, nullable=False)
