from sqlalchemy import BigInteger, Integer
from sqlalchemy.orm import DeclarativeBase, declared_attr

# SQLite only generates row ids for columns declared exactly INTEGER PRIMARY KEY
BigIntegerPK = BigInteger().with_variant(Integer(), "sqlite")


class Base(DeclarativeBase):
    __abstract__ = True

    @declared_attr.directive
    def __tablename__(cls) -> str:  # type: ignore[override]
        return cls.__name__.lower()
