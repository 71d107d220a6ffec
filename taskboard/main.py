import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_fastapi_instrumentator import Instrumentator
from sqlalchemy.exc import SQLAlchemyError

from taskboard.controllers import all_routers
from taskboard.core.config import settings
from taskboard.core.exceptions import BusinessException, ErrorCode
from taskboard.core.middleware import LoggingMiddleware

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Taskboard Service API",
    description="""
    ## 작업 할당 / 증빙 승인 API

    ### 주요 기능:
    - **작업 관리**: 관리자가 작업 생성 및 담당자 지정, 담당자에게 알림
    - **증빙 제출**: 담당자가 이미지/영상 업로드 후 승인 요청
    - **승인/반려**: 관리자가 증빙 확인 후 완료 처리 또는 반려
    - **실시간 목록**: WebSocket 으로 작업 변경 전달
    """,
    version="1.0.0",
)

# =================================================================
# 1. CORS 설정
# =================================================================
cors_origins = settings.CORS_ORIGINS
origins = [origin.strip() for origin in cors_origins.split(",")] if cors_origins != "*" else ["*"]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=False,
    allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"],
    allow_headers=["*"],
)

# =================================================================
# 2. 로그 미들웨어 + 프로메테우스 메트릭 (/metrics)
# =================================================================
app.add_middleware(LoggingMiddleware)
Instrumentator().instrument(app).expose(app)

# =================================================================
# 3. 라우터 등록
# =================================================================
for router, prefix, tag in all_routers:
    app.include_router(router, prefix=prefix, tags=[tag])


# =================================================================
# 4. 예외 핸들러
# =================================================================
def _error_response(error_code: ErrorCode, message: str, data=None) -> JSONResponse:
    return JSONResponse(
        status_code=error_code.http_status,
        content={
            "success": False,
            "code": error_code.biz_code,
            "message": message,
            "data": data,
        },
    )


@app.exception_handler(BusinessException)
async def business_exception_handler(request: Request, exc: BusinessException):
    return _error_response(exc.error_code, exc.message, exc.data)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """첫 번째로 실패한 필드만 보고한다"""
    errors = exc.errors()
    first = errors[0] if errors else {}
    location = [str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path", "header")]
    field = ".".join(location) or None
    message = str(first.get("msg", "Invalid request"))
    if message.startswith("Value error, "):
        message = message[len("Value error, "):]

    logger.info(f"❌ Validation Error: {request.method} {request.url.path} field={field} msg={message}")
    return _error_response(ErrorCode.VALIDATION_ERROR, message, {"field": field})


@app.exception_handler(SQLAlchemyError)
async def database_exception_handler(request: Request, exc: SQLAlchemyError):
    message = str(getattr(exc, "orig", None) or exc)
    logger.error(f"DB 오류: {request.method} {request.url.path}: {message}")
    return _error_response(ErrorCode.DATABASE_ERROR, message)


@app.get("/")
async def root():
    return {"message": "Taskboard Service is running", "service": settings.PROJECT_NAME}
