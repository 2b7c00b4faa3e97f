"""
API依赖项 - 支付网关与应用服务的装配
"""
from typing import AsyncIterator

from fastapi import Depends

from application.services.payment_service import PaymentService
from core.settings import PaymentSettings, get_payment_settings
from infrastructure.external.payments import get_payment_gateway


async def get_payment_service(
    settings: PaymentSettings = Depends(get_payment_settings),
) -> AsyncIterator[PaymentService]:
    """每个请求构建一个网关客户端，请求结束后关闭其 HTTP 连接"""
    service = PaymentService(gateway=get_payment_gateway(settings))
    try:
        yield service
    finally:
        await service.aclose()
