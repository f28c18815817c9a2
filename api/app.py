"""
api/app.py — FastAPI 앱 인스턴스 + 사용자 식별 미들웨어
"""

import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.deps import Services, build_services
from api.routes import UserRole, router

USER_HEADER = "X-User-Id"
ROLE_HEADER = "X-User-Role"

logger = logging.getLogger(__name__)


def create_app(services: Optional[Services] = None) -> FastAPI:
    app = FastAPI(title="MCQ Exam Engine", docs_url=None, redoc_url=None)
    app.state.services = services or build_services()

    # CORS (응시 클라이언트가 다른 출처에서 호출)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # 사용자 식별 미들웨어: 인증은 앞단 게이트웨이 책임, 여기서는 헤더만 읽는다
    @app.middleware("http")
    async def identity_middleware(request: Request, call_next):
        if request.url.path.startswith("/api/"):
            user_id = (request.headers.get(USER_HEADER) or "").strip()
            if not user_id:
                return JSONResponse(status_code=401, content={"detail": "사용자 정보가 없습니다."})
            try:
                role = UserRole(request.headers.get(ROLE_HEADER, UserRole.STUDENT.value))
            except ValueError:
                return JSONResponse(status_code=400, content={"detail": "알 수 없는 사용자 역할입니다."})
            request.state.user_id = user_id
            request.state.role = role
        return await call_next(request)

    app.include_router(router)
    logger.info("API 앱 생성 완료")
    return app
