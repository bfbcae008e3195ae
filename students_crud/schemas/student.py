from pydantic import BaseModel, ConfigDict, StrictStr


class StudentIn(BaseModel):
    """Request body for create and update; any `id` in the body is ignored."""
    name: StrictStr
    email: StrictStr

    model_config = ConfigDict(extra="ignore")


class Student(BaseModel):
    id: int
    name: str
    email: str

    model_config = ConfigDict(from_attributes=True)


class StudentCreated(BaseModel):
    id: int


class MessageResponse(BaseModel):
    message: str
