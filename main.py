"""
FastAPI应用主入口
"""
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.middleware import LocaleMiddleware, RequestIDMiddleware
from api.routes import payments as payments_routes
from core.config import Settings, get_settings
from core.exceptions import register_exception_handlers
from core.i18n import t
from core.logging_config import configure_logging, get_logger
from core.response import success_response
from core.settings import get_payment_settings


# 初始化日志：在入口处显式配置，避免模块导入时的副作用
configure_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """应用生命周期管理"""
    payment_settings = get_payment_settings()
    if payment_settings.enabled:
        logger.info(
            "payment_gateway_enabled",
            provider="culqi",
            base_url=payment_settings.culqi.base_url,
            max_retries=payment_settings.retry.max_retries,
        )
    else:
        # 未配置密钥时接口仍可用，网关调用统一返回 configuration_error
        logger.warning("payment_gateway_disabled", reason="CULQI__SECRET_KEY not configured")
    yield
    logger.info("application_shutdown", message="Application shutdown")


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    app = FastAPI(
        title=settings.PROJECT_NAME,
        version=settings.VERSION,
        debug=settings.DEBUG,
        lifespan=lifespan,
        description="预购平台支付网关服务（Culqi）",
    )

    # 添加中间件（注意顺序：从下往上执行）
    # 1. 语言中间件（解析 locale）
    app.add_middleware(LocaleMiddleware)
    # 2. Request ID中间件（最先执行，为网关日志提供request_id）
    app.add_middleware(RequestIDMiddleware)
    # 3. CORS中间件
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # 注册全局异常处理器
    register_exception_handlers(app)

    # 注册路由
    app.include_router(payments_routes.router, prefix=settings.API_PREFIX)

    @app.get("/", tags=["Root"])
    async def root():
        """API根路径"""
        return success_response(
            data={
                "name": settings.PROJECT_NAME,
                "version": settings.VERSION,
                "docs": "/docs",
                "redoc": "/redoc",
            },
            message=t("Welcome"),
        )

    @app.get("/health", tags=["Health"])
    async def health_check():
        """健康检查端点"""
        return success_response(
            data={"status": "healthy", "payments_enabled": get_payment_settings().enabled},
            message=t("OK"),
        )

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    _settings = get_settings()
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=_settings.DEBUG,
        log_level="debug" if _settings.DEBUG else "info",
    )
