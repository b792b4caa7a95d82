from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable

from sqlalchemy.orm import sessionmaker

from jobflow.core.database import open_local_database
from jobflow.core.timeutil import utcnow
from jobflow.models.local import LocalFlag
from jobflow.stores.sql import LOCAL_MODELS, SqlStore, atomic

logger = logging.getLogger(__name__)

GUEST_FLAG_PREFIX = "guest:"


class LocalStore(SqlStore):
    """
    Guest-scope store backed by the on-device SQLite file.

    Holds one long-lived session; the device has a single user at a time.
    """

    def __init__(
        self,
        session_factory: sessionmaker | None = None,
        *,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        factory = session_factory or open_local_database()
        super().__init__(factory(), LOCAL_MODELS, clock=clock)

    # -------------------------
    # Device flags
    # -------------------------
    def get_flag(self, key: str) -> str | None:
        row = self.db.get(LocalFlag, key)
        return row.value if row is not None else None

    @atomic
    def set_flag(self, key: str, value: str) -> None:
        row = self.db.get(LocalFlag, key)
        if row is None:
            self.db.add(LocalFlag(key=key, value=value))
        else:
            row.value = value
        self._commit()

    @atomic
    def delete_flag(self, key: str) -> None:
        self.db.query(LocalFlag).filter(LocalFlag.key == key).delete(synchronize_session=False)
        self._commit()

    @atomic
    def clear_guest_flags(self) -> int:
        removed = (
            self.db.query(LocalFlag)
            .filter(LocalFlag.key.startswith(GUEST_FLAG_PREFIX))
            .delete(synchronize_session=False)
        )
        self._commit()
        return removed

    def clear_all(self) -> None:
        """Wipe guest data and guest-only flags. Migration markers survive."""
        self.reset()
        removed = self.clear_guest_flags()
        logger.info("Cleared local guest data (%s guest flags removed)", removed)

    def close(self) -> None:
        self.db.close()
