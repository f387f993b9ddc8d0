from sqlalchemy import Boolean, Column, Integer, Unicode, text

from .database import Base


class Todo(Base):
    __tablename__ = "Todos"

    id = Column(Integer, primary_key=True, autoincrement=True)  # IDENTITY(1,1) on SQL Server
    title = Column(Unicode(255))  # NVARCHAR(255)
    completed = Column(Boolean, nullable=False, server_default=text("0"))
