from typing import Optional

from pydantic import BaseModel


class HealthResponse(BaseModel):
    status: str
    dialect: str
    database: str
    detail: Optional[str] = None
