"""
HotelPMS 主应用入口
酒店前台、客房、订单、预订与库存管理后端
"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
from hotelpms import __version__
from hotelpms.config import settings as app_settings
from hotelpms.database import init_db, format_db_error
from hotelpms.routers import (
    auth, branches, rooms, checkin, reservations, reception, guests,
    inventory, dashboard, reports, settings, rpc, realtime
)

logging.basicConfig(
    level=logging.DEBUG if app_settings.DEBUG else logging.INFO,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """应用生命周期管理"""
    # 初始化数据库
    init_db()

    # 数据表变更订阅
    from hotelpms.services.change_feed import register_change_feed
    register_change_feed()

    # 注册事件处理器
    from hotelpms.services.event_handlers import register_event_handlers
    register_event_handlers()

    logger.info(f"{app_settings.APP_NAME} {__version__} started")
    yield


# 创建应用
app = FastAPI(
    title="HotelPMS - 酒店管理系统",
    description="酒店前台、客房、订单、预订与库存管理",
    version=__version__,
    lifespan=lifespan
)

# CORS 配置
app.add_middleware(
    CORSMiddleware,
    allow_origins=app_settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(IntegrityError)
async def integrity_error_handler(request: Request, exc: IntegrityError):
    """数据库约束冲突统一返回 409"""
    logger.warning(f"Integrity error on {request.url.path}: {exc.orig}")
    return JSONResponse(status_code=409, content={"detail": format_db_error(exc)})


# 注册路由
app.include_router(auth.router)
app.include_router(branches.router)
app.include_router(rooms.router)
app.include_router(checkin.router)
app.include_router(reservations.router)
app.include_router(reception.router)
app.include_router(guests.router)
app.include_router(inventory.router)
app.include_router(dashboard.router)
app.include_router(reports.router)
app.include_router(settings.router)
app.include_router(rpc.router)
app.include_router(realtime.router)


@app.get("/")
def root():
    """根路径"""
    return {
        "name": "HotelPMS - 酒店管理系统",
        "version": __version__,
    }


@app.get("/health")
def health_check():
    """健康检查"""
    from hotelpms.database import SessionLocal, check_connection
    db = SessionLocal()
    try:
        return {"status": "healthy" if check_connection(db) else "degraded"}
    finally:
        db.close()
