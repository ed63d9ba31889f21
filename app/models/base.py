from sqlalchemy import MetaData
from sqlalchemy.orm import DeclarativeBase

# 제약조건 이름 규칙: Alembic 마이그레이션과 모델의 이름을 일치시키기 위함
NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


class Base(DeclarativeBase):
    """
    모든 SQLAlchemy 모델이 상속할 기본 Base 클래스

    예시:

    class User(Base):
        __tablename__ = "users"
        id = Column(Integer, primary_key=True, index=True)
        ...
    """

    metadata = MetaData(naming_convention=NAMING_CONVENTION)
