from sqlalchemy import Column, ForeignKey, String
from sqlalchemy.orm import relationship

from jobflow.core.base import Base
from jobflow.models.application import new_uuid
from jobflow.models.columns import ContactColumns


class Contact(ContactColumns, Base):
    __tablename__ = "contacts"

    id = Column(String(36), primary_key=True, default=new_uuid)

    application_id = Column(
        String(36),
        ForeignKey("applications.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    application = relationship("Application", back_populates="contacts")
