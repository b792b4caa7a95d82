import uuid

from sqlalchemy import Column, String
from sqlalchemy.orm import relationship

from jobflow.core.base import Base
from jobflow.models.columns import ApplicationColumns


def new_uuid() -> str:
    return str(uuid.uuid4())


class Application(ApplicationColumns, Base):
    __tablename__ = "applications"

    id = Column(String(36), primary_key=True, default=new_uuid)

    # ownership: opaque identity key from the identity provider
    user_id = Column(String(255), nullable=False, index=True)

    events = relationship(
        "ApplicationEvent",
        back_populates="application",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    contacts = relationship(
        "Contact",
        back_populates="application",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    reminders = relationship(
        "Reminder",
        back_populates="application",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
