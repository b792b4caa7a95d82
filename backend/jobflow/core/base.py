from sqlalchemy.orm import declarative_base

# Server-side tables (remote store), managed by Alembic.
Base = declarative_base()

# Device-side tables (local store). Never migrated by Alembic; created on open.
LocalBase = declarative_base()
