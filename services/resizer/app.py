"""
HTTP front end.

  GET /resize?key=crazy/images/blue_marble-500x500.jpg
  GET /do?ref=simplytest/w_500,h_500/blue_marble.jpg
  GET /health
  GET /metrics

A decoded request is fetched from S3, transformed, stored under its
destination key and answered with a permanent redirect to it. Storage and
pixel failures answer with a temporary redirect to the original instead.
"""
from typing import Callable, Optional

from fastapi import FastAPI
from fastapi.responses import PlainTextResponse, RedirectResponse, Response

from services.resizer.config import Settings
from services.resizer.image_ops import FORMAT_JPEG, TransformError, format_for_extension, transform_image
from services.resizer.key_parser import build_destination_key, detect_content_type, parse_key, recover_key
from services.resizer.metrics import CONTENT_TYPE_LATEST, REQUESTS, TRANSFORM_SECONDS, render_latest
from services.resizer.models import DescriptorError
from services.resizer.ref_parser import build_ref_destination_key, parse_ref, recover_ref_key
from services.resizer.s3_client import S3Client, StorageError
from services.resizer.urls import redirect_host_uri, s3_website_uri
from services.resizer.utils import elapsed_ms, setup_logging, utc_now

logger = setup_logging("resizer")

RESIZE_ENDPOINT = "resize"
REF_ENDPOINT = "do"


def bad_request() -> PlainTextResponse:
    return PlainTextResponse("400 Bad request", status_code=400)


def temporary_redirect(uri: str) -> RedirectResponse:
    return RedirectResponse(uri, status_code=307)


def permanent_redirect(uri: str) -> RedirectResponse:
    return RedirectResponse(uri, status_code=301)


def reject(
    endpoint: str,
    descriptor: str,
    error: DescriptorError,
    fallback_key: Optional[str],
    build_uri: Callable[[str, Settings], str],
    settings: Settings,
) -> Response:
    """Undecodable descriptor: redirect to whatever original can be recovered, else 400."""
    logger.warning(f"[{endpoint}={descriptor}] Rejected ({type(error).__name__}): {error}")
    if fallback_key is None:
        REQUESTS.labels(endpoint, "bad_request").inc()
        return bad_request()

    REQUESTS.labels(endpoint, "rejected").inc()
    return temporary_redirect(build_uri(fallback_key, settings))


def process_key(key: str, settings: Settings, storage: S3Client) -> Response:
    """
    Handle a suffix key.

    Steps:
    1. Decode key into source key, size and convert flag
    2. Download original
    3. Resize (and convert PNG to JPEG if requested)
    4. Upload under destination key
    5. Redirect to destination
    """
    request_start = utc_now()
    try:
        decoded = parse_key(key, settings)
    except DescriptorError as e:
        return reject(RESIZE_ENDPOINT, key, e, recover_key(key), s3_website_uri, settings)

    params = decoded.params
    logger.info(f"[key={key}] source_key={decoded.source_key} | size={params.width}x{params.height} | convert={params.convert}")

    destination_key = build_destination_key(decoded)
    target_format = FORMAT_JPEG if params.convert else format_for_extension(decoded.identity.extension)

    try:
        download_start = utc_now()
        image_bytes = storage.get_object(decoded.source_key)
        logger.info(f"[key={key}] Downloaded {len(image_bytes)} bytes in {elapsed_ms(download_start):.0f}ms")

        with TRANSFORM_SECONDS.labels(RESIZE_ENDPOINT).time():
            result = transform_image(image_bytes, params, target_format, settings.jpeg_quality)

        upload_start = utc_now()
        storage.put_object(destination_key, result.body, detect_content_type(decoded))
        logger.info(f"[key={key}] Uploaded {len(result.body)} bytes to {destination_key} in {elapsed_ms(upload_start):.0f}ms")
    except (StorageError, TransformError) as e:
        logger.error(f"[key={key}] {type(e).__name__}: {e} | redirecting to {decoded.fallback_uri}")
        REQUESTS.labels(RESIZE_ENDPOINT, "fallback").inc()
        return temporary_redirect(decoded.fallback_uri)

    REQUESTS.labels(RESIZE_ENDPOINT, "redirected").inc()
    logger.info(f"[key={key}] Completed | total={elapsed_ms(request_start):.0f}ms")
    return permanent_redirect(s3_website_uri(destination_key, settings))


def process_ref(ref: str, settings: Settings, storage: S3Client) -> Response:
    """
    Handle a ref key.

    The destination key is only built after the pixel pipeline reported the
    output format, since PNG originals are published as JPEG.
    """
    request_start = utc_now()
    try:
        decoded = parse_ref(ref, settings)
    except DescriptorError as e:
        return reject(REF_ENDPOINT, ref, e, recover_ref_key(ref), redirect_host_uri, settings)

    logger.info(f"[ref={ref}] source_key={decoded.source_key} | params={decoded.params_token}")

    try:
        download_start = utc_now()
        image_bytes = storage.get_object(decoded.source_key)
        logger.info(f"[ref={ref}] Downloaded {len(image_bytes)} bytes in {elapsed_ms(download_start):.0f}ms")

        with TRANSFORM_SECONDS.labels(REF_ENDPOINT).time():
            result = transform_image(image_bytes, decoded.params, jpeg_quality=settings.jpeg_quality)

        destination_key = build_ref_destination_key(decoded, result.format)

        upload_start = utc_now()
        storage.put_object(destination_key, result.body, result.content_type)
        logger.info(f"[ref={ref}] Uploaded {len(result.body)} bytes to {destination_key} in {elapsed_ms(upload_start):.0f}ms")
    except (StorageError, TransformError) as e:
        logger.error(f"[ref={ref}] {type(e).__name__}: {e} | redirecting to {decoded.fallback_uri}")
        REQUESTS.labels(REF_ENDPOINT, "fallback").inc()
        return temporary_redirect(decoded.fallback_uri)

    REQUESTS.labels(REF_ENDPOINT, "redirected").inc()
    logger.info(f"[ref={ref}] Completed | total={elapsed_ms(request_start):.0f}ms")
    return permanent_redirect(redirect_host_uri(destination_key, settings))


def build_app(settings: Settings, storage: Optional[S3Client] = None) -> FastAPI:
    """Create the FastAPI app. Handlers are sync so boto3 and Pillow run in the threadpool."""
    app = FastAPI(title="Image Resizer", docs_url=None, redoc_url=None, openapi_url=None)
    app.state.settings = settings
    app.state.storage = storage or S3Client(settings)

    @app.get("/health", response_class=PlainTextResponse)
    def health() -> str:
        return "200 OK"

    @app.get("/metrics")
    def metrics() -> Response:
        return Response(render_latest(), media_type=CONTENT_TYPE_LATEST)

    @app.get("/resize")
    def resize(key: Optional[str] = None) -> Response:
        if not key:
            REQUESTS.labels(RESIZE_ENDPOINT, "bad_request").inc()
            return bad_request()
        return process_key(key, app.state.settings, app.state.storage)

    @app.get("/do")
    def do(ref: Optional[str] = None) -> Response:
        if not ref:
            REQUESTS.labels(REF_ENDPOINT, "bad_request").inc()
            return bad_request()
        return process_ref(ref, app.state.settings, app.state.storage)

    return app
