from sqlalchemy import Column, DateTime, Text

from serverdb.db.base import Base, BigIntegerPK


class User(Base):
    __tablename__ = "users"

    id = Column(BigIntegerPK, primary_key=True, autoincrement=True)
    login = Column(Text, nullable=False, server_default="")
    # Stored as given; callers hash before writing.
    password = Column(Text, nullable=False, server_default="")
    username = Column(Text, nullable=False, server_default="")
    email = Column(Text, nullable=True)
    birthday = Column(DateTime(timezone=True), nullable=True)
