from sqlalchemy import Column, String

from jobflow.core.base import Base
from jobflow.models.application import new_uuid
from jobflow.models.columns import ProgressColumns


class UserProgress(ProgressColumns, Base):
    __tablename__ = "user_progress"

    id = Column(String(36), primary_key=True, default=new_uuid)

    # one row per identity
    user_id = Column(String(255), nullable=False, unique=True, index=True)
