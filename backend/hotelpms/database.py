"""
数据库配置 - SQLAlchemy 持久化层
"""
from sqlalchemy import create_engine, text
from sqlalchemy.exc import IntegrityError, NoResultFound, SQLAlchemyError
from sqlalchemy.orm import sessionmaker, declarative_base
from hotelpms.config import settings

SQLALCHEMY_DATABASE_URL = settings.DATABASE_URL

_connect_args = {"check_same_thread": False} if SQLALCHEMY_DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(SQLALCHEMY_DATABASE_URL, connect_args=_connect_args)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    """依赖注入：获取数据库会话"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db():
    """初始化数据库表"""
    from hotelpms.models import ontology  # noqa
    Base.metadata.create_all(bind=engine)

    if engine.dialect.name == "sqlite":
        # 启用 WAL 模式以提高并发性能
        with engine.connect() as conn:
            conn.execute(text("PRAGMA journal_mode=WAL"))
            conn.execute(text("PRAGMA synchronous=NORMAL"))
            conn.commit()


def check_connection(db) -> bool:
    """检查数据库是否可用"""
    try:
        db.execute(text("SELECT 1"))
        return True
    except SQLAlchemyError:
        return False


def format_db_error(exc: Exception) -> str:
    """将数据库异常转换为可读的错误信息"""
    if isinstance(exc, NoResultFound):
        return "未找到数据"
    if isinstance(exc, IntegrityError):
        message = str(exc.orig).upper() if exc.orig is not None else str(exc).upper()
        if "UNIQUE" in message or "DUPLICATE" in message:
            return "记录已存在"
        if "FOREIGN KEY" in message:
            return "存在关联记录"
        if "NOT NULL" in message:
            return "缺少必填字段"
    return str(exc) or "数据库错误"
