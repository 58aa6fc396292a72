from fastapi import FastAPI, Request
from fastapi.responses import HTMLResponse
from fastapi.staticfiles import StaticFiles
import logging

from Security.security_config import APP_SETTINGS
from Security.activity_logging import ActivityLoggingMiddleware
from Security.request_id import RequestIdMiddleware
from Security.cors_security import add_cors

from .database import init_db
from .api_routes import register_api_routes
from .error_handlers import register_error_handlers
from .app_context import templates, STATIC_DIR
from .security_bootstrap import initialize_encryption

logger = logging.getLogger(__name__)

app = FastAPI(
    title="Field Encryption Demo",
    docs_url=None if APP_SETTINGS["IS_PRODUCTION"] else "/docs",
    redoc_url=None,
)
app.mount("/static", StaticFiles(directory=str(STATIC_DIR)), name="static")

# Last added runs first: request ids must exist before activity logging reads them
app.add_middleware(ActivityLoggingMiddleware)
app.add_middleware(RequestIdMiddleware)
add_cors(app, APP_SETTINGS["CORS_ORIGINS"])

register_api_routes(app)
register_error_handlers(app)


@app.get("/", response_class=HTMLResponse)
async def home(request: Request):
    return templates.TemplateResponse(request, "index.html", {"title": "Field Encryption Demo"})


@app.on_event("startup")
def startup_event():
    initialize_encryption()
    init_db()
    logger.info("Database ready at %s", APP_SETTINGS["DATABASE_URL"])
