from sqlalchemy import Column, String, Boolean, DateTime
from datetime import datetime

from unionsite.core.database import Base


class Member(Base):
    """Membership application; `is_approved` is flipped by an admin"""
    __tablename__ = "members"

    id = Column(String(36), primary_key=True)
    name = Column(String(100), nullable=False)
    birth_date = Column(String(16), nullable=False, default="")
    phone = Column(String(32), nullable=False, default="")
    email = Column(String(255), index=True, nullable=False)
    garage = Column(String(32), nullable=False, default="")
    is_approved = Column(Boolean, default=False, nullable=False)
    # Legacy login id from before e-mail sign-in
    login_id = Column(String(100), nullable=True)

    # Application date; exposed to clients as signupDate
    created_at = Column(String(40), nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_dict(self):
        data = {
            "id": self.id,
            "name": self.name,
            "birthDate": self.birth_date,
            "phone": self.phone,
            "email": self.email,
            "garage": self.garage,
            "signupDate": self.created_at,
            "isApproved": bool(self.is_approved),
        }
        if self.login_id:
            data["loginId"] = self.login_id
        return data

    def __repr__(self):
        return f"<Member {self.name} approved={self.is_approved}>"
