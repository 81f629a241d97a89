import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import HTTPException
from fastapi.responses import JSONResponse

from fiscal_tracker.api.routes import health
from fiscal_tracker.api.v1 import v1_router
from fiscal_tracker.api.v1.envelope import error
from fiscal_tracker.config.settings import settings
from fiscal_tracker.core.logging_config import setup_logging

setup_logging()
logger = logging.getLogger("main")

app = FastAPI(title=settings.APP_NAME, debug=settings.DEBUG)


@app.on_event("startup")
async def startup():
    logger.info("%s starting (%s)", settings.APP_NAME, settings.ENVIRONMENT)


@app.exception_handler(HTTPException)
async def http_error(request: Request, exc: HTTPException):
    return JSONResponse(status_code=exc.status_code, content=error(str(exc.detail)))


@app.exception_handler(Exception)
async def unexpected_error(request: Request, exc: Exception):
    logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content=error("Internal server error"))


app.include_router(health.router)
app.include_router(v1_router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("fiscal_tracker.main:app", host="0.0.0.0", port=settings.PORT)
