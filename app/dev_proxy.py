"""
本地开发代理

浏览器直接请求 Ark 会遇到跨域限制，开发时把 /ark/* 转发到 Ark 主机。
"""

from fastapi import APIRouter, Request, Response
import httpx

from utils.logging_config import get_logger

logger = get_logger(__name__)

FORWARDED_HEADERS = ("authorization", "content-type", "accept")
PROXY_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE"]


def create_proxy_router(prefix: str, target: str) -> APIRouter:
    """创建把 prefix 开头的请求去掉前缀后转发到 target 的路由"""
    router = APIRouter(tags=["dev-proxy"])
    prefix = "/" + prefix.strip("/")
    target = target.rstrip("/")

    @router.api_route(prefix + "/{path:path}", methods=PROXY_METHODS)
    async def forward(path: str, request: Request):
        url = f"{target}/{path}"
        headers = {
            name: value
            for name, value in request.headers.items()
            if name.lower() in FORWARDED_HEADERS
        }
        body = await request.body()

        logger.info(f"🌐 代理转发: {request.method} {request.url.path} -> {url}")
        try:
            async with httpx.AsyncClient(
                transport=getattr(request.app.state, "proxy_transport", None),
                timeout=None,
            ) as client:
                upstream = await client.request(
                    request.method,
                    url,
                    params=list(request.query_params.multi_items()) or None,
                    headers=headers,
                    content=body,
                )
        except httpx.HTTPError as e:
            logger.error(f"代理转发失败: {url} - {e}")
            return Response(status_code=502, content=f"代理转发失败: {e}", media_type="text/plain; charset=utf-8")

        return Response(
            status_code=upstream.status_code,
            content=upstream.content,
            media_type=upstream.headers.get("content-type"),
        )

    return router
