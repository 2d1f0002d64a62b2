from pydantic import BaseModel, ConfigDict, Field
from typing import Optional


class MemberUpsert(BaseModel):
    """Body of PUT /members/{id}"""
    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., min_length=1)
    birth_date: str = Field("", alias="birthDate")
    phone: str = ""
    email: str
    garage: str = ""
    signup_date: Optional[str] = Field(None, alias="signupDate")
    is_approved: bool = Field(False, alias="isApproved")
    login_id: Optional[str] = Field(None, alias="loginId")
