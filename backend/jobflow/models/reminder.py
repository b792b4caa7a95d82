from sqlalchemy import Column, ForeignKey, String
from sqlalchemy.orm import relationship

from jobflow.core.base import Base
from jobflow.models.application import new_uuid
from jobflow.models.columns import ReminderColumns


class Reminder(ReminderColumns, Base):
    __tablename__ = "reminders"

    id = Column(String(36), primary_key=True, default=new_uuid)

    application_id = Column(
        String(36),
        ForeignKey("applications.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    application = relationship("Application", back_populates="reminders")
