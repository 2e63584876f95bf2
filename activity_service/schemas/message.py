from pydantic import BaseModel


class Message(BaseModel):
    message: str


class CancelActivityResult(Message):
    cancelled_enrollments: int
