import sqlalchemy as sa
from sqlalchemy.orm import DeclarativeBase

# Native UUID on Postgres, CHAR(32) elsewhere (sqlite in tests).
UUID_TYPE = sa.Uuid(as_uuid=True)


class Base(DeclarativeBase):
    pass
