"""FastAPI REST API for Markdown to PDF rendering."""

import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, File, HTTPException, UploadFile
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, Field

from .logger import logger
from .render import LayoutSettings, SettingsError, default_output_path, render_markdown

# Maximum accepted Markdown size (5MB)
MAX_UPLOAD_SIZE = int(os.getenv("MDPDF_MAX_UPLOAD_SIZE", str(5 * 1024 * 1024)))

MARKDOWN_EXTENSIONS = (".md", ".markdown", ".txt")


# --- Request/Response Models ---


class RenderRequest(BaseModel):
    markdown: str = Field(..., max_length=MAX_UPLOAD_SIZE)


class HealthResponse(BaseModel):
    status: str
    checks: dict[str, bool] = Field(default_factory=dict)


class ErrorResponse(BaseModel):
    code: str
    message: str


# --- App State ---

_settings: LayoutSettings | None = None


def get_settings() -> LayoutSettings:
    """Lazy initialization of layout settings from the environment."""
    global _settings
    if _settings is None:
        _settings = LayoutSettings.from_env()
    return _settings


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle."""
    logger.info("starting server", max_upload_size=MAX_UPLOAD_SIZE)

    yield

    logger.info("server shutdown")


app = FastAPI(
    title="mdpdf API",
    description="Render Markdown documents into paginated PDF files",
    version="0.1.0",
    lifespan=lifespan,
)


# --- Exception Handlers ---


@app.exception_handler(SettingsError)
async def settings_error_handler(request, exc: SettingsError):
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(code="INVALID_SETTINGS", message=str(exc)).model_dump(),
    )


def _pdf_response(pdf: bytes, filename: str) -> Response:
    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


# --- Health Endpoints ---


@app.get("/health", response_model=HealthResponse)
def health():
    """Liveness check."""
    return HealthResponse(status="healthy")


# --- Render Endpoints ---


@app.post("/api/v1/render")
def render(request: RenderRequest):
    """Render Markdown text from a JSON body."""
    markdown = request.markdown.encode("utf-8")
    pdf = render_markdown(markdown, get_settings())
    logger.info("rendered markdown", input_bytes=len(markdown), output_bytes=len(pdf))
    return _pdf_response(pdf, "document.pdf")


@app.post("/api/v1/render/upload")
def render_upload(file: UploadFile = File(...)):
    """Render an uploaded Markdown file."""
    file_name = file.filename or "document.md"

    if not file_name.lower().endswith(MARKDOWN_EXTENSIONS):
        logger.warn("rejected upload", file_name=file_name, reason="extension")
        raise HTTPException(
            status_code=400,
            detail="Only Markdown files (.md, .markdown, .txt) are supported",
        )

    markdown = file.file.read(MAX_UPLOAD_SIZE + 1)
    if len(markdown) > MAX_UPLOAD_SIZE:
        logger.warn("rejected upload", file_name=file_name, reason="size")
        raise HTTPException(
            status_code=400,
            detail=f"File too large. Maximum size is {MAX_UPLOAD_SIZE // (1024 * 1024)}MB",
        )

    pdf = render_markdown(markdown, get_settings())
    output_name = default_output_path(file_name).replace("\\", "/").rsplit("/", 1)[-1]
    logger.info(
        "rendered upload",
        file_name=file_name,
        input_bytes=len(markdown),
        output_bytes=len(pdf),
    )
    return _pdf_response(pdf, output_name)
