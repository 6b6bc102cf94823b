from pydantic import BaseModel


class ErrorResponse(BaseModel):
    error_code: str
    message: str


class StatusResponse(BaseModel):
    database: str
    ready: bool
    message: str
