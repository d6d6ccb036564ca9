from typing import TYPE_CHECKING

from sqlalchemy import Column, Integer, String, DateTime, func
from sqlalchemy.orm import relationship

from app.database import Base

if TYPE_CHECKING:
    from app.models.event import Event
    from app.models.registration import Registration


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, nullable=False)
    name = Column(String(100))
    created_at = Column(DateTime, default=func.now())

    # events this user hosts
    events = relationship("Event", back_populates="user")
    registrations = relationship("Registration", back_populates="user", passive_deletes=True)

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email}>"
