# liverpath/schemas/common/common.py
from pydantic import BaseModel


class HealthResponse(BaseModel):
    status: str
    app: str
    version: str
    store_backend: str
