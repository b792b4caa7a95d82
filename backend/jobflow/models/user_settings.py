from sqlalchemy import Column, String

from jobflow.core.base import Base
from jobflow.models.application import new_uuid
from jobflow.models.columns import SettingsColumns


class UserSettings(SettingsColumns, Base):
    __tablename__ = "user_settings"

    id = Column(String(36), primary_key=True, default=new_uuid)

    # one row per identity
    user_id = Column(String(255), nullable=False, unique=True, index=True)
