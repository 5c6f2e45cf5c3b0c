from pydantic import BaseModel


class ServiceTypeRequest(BaseModel):
    name: str
