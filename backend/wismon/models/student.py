"""
Student model for the WIS student registry.
"""
from datetime import date, datetime
from typing import Optional, Union

from pydantic import BaseModel, Field


class Student(BaseModel):
    """
    Row from WIS ``mahasiswa``; the subject behind every token.
    """
    nrm: str = Field(..., description="Student registration number")
    nim: str = Field(..., description="Student identification number")
    namam: str = Field(..., description="Full name")
    tgdaftar: Optional[Union[datetime, date]] = Field(None, description="Registration date")
    tplahir: Optional[str] = Field(None, description="Place of birth")
    kdagama: Optional[str] = Field(None, description="Religion code")
    email: Optional[str] = Field(None, description="Contact email")
    phone: Optional[str] = Field(None, description="Contact phone")

    class Config:
        coerce_numbers_to_str = True
