"""FastAPI application exposing the prompt, upload, transcription and completion endpoints."""

import contextlib
import logging
import os
import uuid
from collections.abc import AsyncIterator
from typing import Optional

from fastapi import Depends, FastAPI, File, HTTPException, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response, StreamingResponse
from pydantic import BaseModel, Field
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import Settings
from .openai_service import CompletionService, TranscriptionService, create_openai_client
from .store import Prompt, RecordStore, Video

logger = logging.getLogger(__name__)

UPLOAD_CHUNK_SIZE = 64 * 1024
# room for multipart boundaries and part headers around the file itself
MULTIPART_OVERHEAD_BYTES = 64 * 1024
ALLOWED_EXTENSIONS = (".mp3",)
TRANSCRIPTION_PLACEHOLDER = "{transcription}"


class VideoResponse(BaseModel):
    video: Video


class TranscriptionRequest(BaseModel):
    prompt: str


class TranscriptionResponse(BaseModel):
    transcription: str


class CompletionRequest(BaseModel):
    prompt: str
    temperature: float = Field(0.5, ge=0, le=1, strict=True)


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_store(request: Request) -> RecordStore:
    return request.app.state.store


def get_transcription_service(request: Request) -> TranscriptionService:
    return request.app.state.transcription_service


def get_completion_service(request: Request) -> CompletionService:
    return request.app.state.completion_service


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Render every HTTP error as ``{"error": message}``."""
    return JSONResponse({"error": exc.detail}, status_code=exc.status_code, headers=exc.headers)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report the first failed field of a request as a 400."""
    errors = exc.errors()
    if not errors:
        return JSONResponse({"error": "Invalid request."}, status_code=400)
    first = errors[0]
    if first.get("type") == "json_invalid":
        return JSONResponse({"error": "Malformed JSON body."}, status_code=400)
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "Invalid value")
    return JSONResponse({"error": f"{location}: {message}" if location else message}, status_code=400)


async def save_upload(file: UploadFile, destination: str, max_bytes: int) -> int:
    """Copy an upload to ``destination`` chunk by chunk, enforcing ``max_bytes``.

    The partially written file is removed when the copy fails.
    """
    written = 0
    try:
        with open(destination, "wb") as f:
            while True:
                chunk = await file.read(UPLOAD_CHUNK_SIZE)
                if not chunk:
                    break
                written += len(chunk)
                if written > max_bytes:
                    raise HTTPException(status_code=413, detail="File size limit exceeded.")
                f.write(chunk)
    except Exception:
        with contextlib.suppress(FileNotFoundError):
            os.remove(destination)
        raise
    return written


def fill_template(template: str, transcription: str) -> str:
    """Replace the first transcription placeholder of a prompt template."""
    return template.replace(TRANSCRIPTION_PLACEHOLDER, transcription, 1)


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[RecordStore] = None,
    transcription_service: Optional[TranscriptionService] = None,
    completion_service: Optional[CompletionService] = None,
) -> FastAPI:
    """Build the application; collaborators not given are created from ``settings``."""
    settings = settings or Settings.from_env()
    owns_store = store is None
    if store is None:
        store = RecordStore(settings.database_path)
    if transcription_service is None or completion_service is None:
        client = create_openai_client(settings)
        transcription_service = transcription_service or TranscriptionService(
            client, model=settings.transcription_model, language=settings.transcription_language
        )
        completion_service = completion_service or CompletionService(client, model=settings.completion_model)

    upload_dir = os.path.abspath(settings.upload_dir)
    os.makedirs(upload_dir, exist_ok=True)

    @contextlib.asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info("HTTP Server is running on port %s", settings.port)
        try:
            yield
        finally:
            if owns_store:
                store.close()

    app = FastAPI(title="Upload AI", lifespan=lifespan)
    app.state.settings = settings
    app.state.store = store
    app.state.upload_dir = upload_dir
    app.state.transcription_service = transcription_service
    app.state.completion_service = completion_service

    @app.middleware("http")
    async def reject_oversized_uploads(request: Request, call_next) -> Response:
        """Refuse an upload whose declared size is over the limit before its body is read."""
        if request.method == "POST" and request.url.path.rstrip("/") == "/videos":
            content_length = request.headers.get("content-length", "")
            if content_length.isdigit() and int(content_length) > settings.max_upload_bytes + MULTIPART_OVERHEAD_BYTES:
                logger.info("Rejected upload declaring %s bytes", content_length)
                return JSONResponse({"error": "File size limit exceeded."}, status_code=413)
        return await call_next(request)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.allowed_origin],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)

    @app.get("/prompts", response_model=list[Prompt])
    async def list_prompts(store: RecordStore = Depends(get_store)) -> list[Prompt]:
        """Return every stored prompt template."""
        return store.list_prompts()

    @app.post("/videos", response_model=VideoResponse)
    async def upload_video(
        request: Request,
        file: Optional[UploadFile] = File(None),
        store: RecordStore = Depends(get_store),
        settings: Settings = Depends(get_settings),
    ) -> VideoResponse:
        """Store an uploaded .mp3 under a unique name and register it as a video."""
        if file is None or not file.filename:
            raise HTTPException(status_code=400, detail="Missing file input.")

        filename = os.path.basename(file.filename)
        base_name, extension = os.path.splitext(filename)
        if extension not in ALLOWED_EXTENSIONS:
            raise HTTPException(status_code=400, detail="Invalid input type, please upload a .mp3 file.")

        upload_name = f"{base_name}-{uuid.uuid4()}{extension}"
        upload_path = os.path.join(request.app.state.upload_dir, upload_name)
        size = await save_upload(file, upload_path, settings.max_upload_bytes)

        video = store.create_video(name=filename, path=upload_path)
        logger.info("Stored upload %s (%d bytes) as video %s", filename, size, video.id)
        return VideoResponse(video=video)

    @app.post("/videos/{video_id}/transcription", response_model=TranscriptionResponse)
    async def create_transcription(
        video_id: str,
        body: TranscriptionRequest,
        store: RecordStore = Depends(get_store),
        transcription_service: TranscriptionService = Depends(get_transcription_service),
    ) -> TranscriptionResponse:
        """Transcribe the stored audio of a video and save the text on it."""
        video = store.find_video(video_id)
        if video is None:
            raise HTTPException(status_code=404, detail="Video not found.")

        try:
            with open(video.path, "rb") as audio_file:
                transcription = await transcription_service.transcribe(audio_file, body.prompt)
            store.update_video_transcription(video_id, transcription)
        except Exception as exc:
            logger.exception("Transcription failed for video %s", video_id)
            raise HTTPException(status_code=500, detail="Internal server error.") from exc

        logger.info("Transcribed video %s (%d characters)", video_id, len(transcription))
        return TranscriptionResponse(transcription=transcription)

    @app.post("/videos/{video_id}/complete")
    async def complete(
        video_id: str,
        body: CompletionRequest,
        store: RecordStore = Depends(get_store),
        settings: Settings = Depends(get_settings),
        completion_service: CompletionService = Depends(get_completion_service),
    ) -> StreamingResponse:
        """Stream a completion for the prompt template filled with the video transcription."""
        video = store.find_video(video_id)
        if video is None:
            raise HTTPException(status_code=404, detail="Video not found.")
        if not video.transcription:
            raise HTTPException(status_code=400, detail="Video transcription was not generated yet.")

        content = fill_template(body.prompt, video.transcription)
        logger.info("Starting completion for video %s (temperature=%s)", video_id, body.temperature)
        chunks = await completion_service.start_completion(content, body.temperature)

        return StreamingResponse(
            chunks,
            media_type="text/plain; charset=utf-8",
            headers={
                "Access-Control-Allow-Origin": settings.allowed_origin,
                "Access-Control-Allow-Methods": "GET, POST, PUT, DELETE, OPTIONS",
            },
        )

    return app
