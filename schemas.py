"""
Database Schemas for the Event Hub API

Each Pydantic model either mirrors a MongoDB collection (User -> "users",
Event -> "events") or describes a request body accepted by the API.
Emails are opaque login identifiers and are stored exactly as sent.
"""
from datetime import datetime
from pydantic import BaseModel, Field
from typing import Any, Optional, List

class User(BaseModel):
    """
    Users collection schema
    Passwords are stored as bcrypt hashes, never as plaintext.
    """
    name: Optional[str] = Field(None, description="Display name")
    email: str = Field(..., description="Login email address")
    password: str = Field(..., description="BCrypt hash of the user's password")
    photo: Optional[str] = Field(None, description="Profile photo URL")

class UserPublic(BaseModel):
    name: Optional[str] = None
    email: str
    photo: Optional[str] = None

class UserEnvelope(BaseModel):
    user: UserPublic

class RegisterRequest(BaseModel):
    name: Optional[str] = None
    email: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)
    photo: Optional[str] = None

class LoginRequest(BaseModel):
    email: str
    password: str

class JoinRequest(BaseModel):
    email: Optional[str] = Field(None, description="Email of the attendee joining")

class Event(BaseModel):
    """
    Events collection schema, used for full replacement on edit.
    Text fields are free-form and stored as received.
    attendeeCount holds attendee emails as a set despite its name.
    """
    title: Any = None
    name: Any = None
    email: Any = None
    location: Any = None
    description: Any = None
    dateTime: Optional[datetime] = Field(None, description="Start of the event, used for ordering")
    attendeeCount: Optional[List[str]] = Field(None, description="Emails of attendees")

    def to_document(self) -> dict:
        data = self.model_dump()
        # null or missing resets the set; keep first occurrence, drop repeats
        data["attendeeCount"] = list(dict.fromkeys(self.attendeeCount or []))
        return data

class Message(BaseModel):
    message: str
