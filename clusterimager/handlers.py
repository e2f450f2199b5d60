"""HTTP handlers for the crop and resize endpoints."""

from __future__ import annotations

import io
import re
from collections.abc import Mapping
from http import HTTPStatus
from typing import Any

from PIL import Image
from werkzeug.exceptions import HTTPException
from werkzeug.wrappers import Request, Response

from .logs import Logger
from .processors import ProcessorNotFoundError, Registry
from .validation import ValidationError

_INT_PATTERN = re.compile(r"[+-]?[0-9]+")
_INT64_MIN = -(1 << 63)
_INT64_MAX = (1 << 63) - 1
_ACCEPTED_FORMATS = ("JPEG", "PNG")
_JPEG_QUALITY = 75


class _BadQuery(Exception):
    def __init__(self, name: str) -> None:
        super().__init__(name)
        self.name = name


def _query_int(request: Request, name: str) -> int:
    text = request.args.get(name, "")
    if not _INT_PATTERN.fullmatch(text):
        raise _BadQuery(name)
    value = int(text)
    if not _INT64_MIN <= value <= _INT64_MAX:
        raise _BadQuery(name)
    return value


def _error(message: str, status: HTTPStatus) -> Response:
    response = Response(
        message + "\n", status=status, content_type="text/plain; charset=utf-8"
    )
    response.headers["X-Content-Type-Options"] = "nosniff"
    return response


def _encode_jpeg(image: Image.Image) -> bytes:
    if image.mode not in ("RGB", "L"):
        rgba = image.convert("RGBA")
        background = Image.new("RGBA", rgba.size, (0, 0, 0, 255))
        image = Image.alpha_composite(background, rgba).convert("RGB")
    buffer = io.BytesIO()
    image.save(buffer, format="JPEG", quality=_JPEG_QUALITY)
    return buffer.getvalue()


class Handlers:
    """Request handlers backed by a processor registry."""

    def __init__(self, logger: Logger, registry: Registry) -> None:
        self.logger = logger
        self.registry = registry

    def crop(self, request: Request) -> Response:
        """Crop the uploaded image to x, y, width and height from the query."""
        try:
            params = {name: _query_int(request, name) for name in ("x", "y", "width", "height")}
        except _BadQuery as exc:
            return _error(f"Invalid value for '{exc.name}'", HTTPStatus.BAD_REQUEST)
        return self._process_image(request, "crop", params)

    def resize(self, request: Request) -> Response:
        """Resize the uploaded image to width and height from the query."""
        try:
            params = {name: _query_int(request, name) for name in ("width", "height")}
        except _BadQuery as exc:
            return _error(f"Invalid value for '{exc.name}'", HTTPStatus.BAD_REQUEST)
        return self._process_image(request, "resize", params)

    def _process_image(
        self, request: Request, processor_name: str, params: Mapping[str, Any]
    ) -> Response:
        if request.method != "POST":
            return _error("Method not allowed", HTTPStatus.METHOD_NOT_ALLOWED)

        logger = self.logger.with_request_id()
        logger.debug("processing image request", processor=processor_name)

        try:
            processor = self.registry.get(processor_name)
        except ProcessorNotFoundError as exc:
            logger.error("processor not found", processor=processor_name, error=exc)
            return _error("Invalid processor", HTTPStatus.INTERNAL_SERVER_ERROR)

        try:
            processor.validate_params(params)
        except ValidationError as exc:
            logger.debug("invalid parameters", error=exc)
            return _error("Invalid parameters", HTTPStatus.BAD_REQUEST)

        if request.mimetype != "multipart/form-data":
            logger.error(
                "failed to parse multipart form",
                error="request Content-Type isn't multipart/form-data",
            )
            return _error("Failed to parse uploaded data", HTTPStatus.BAD_REQUEST)
        try:
            upload = request.files.get("image")
        except (HTTPException, ValueError) as exc:
            logger.error("failed to parse multipart form", error=exc)
            return _error("Failed to parse uploaded data", HTTPStatus.BAD_REQUEST)

        if upload is None:
            logger.error("failed to get form file", error="no such file")
            return _error("No image file provided", HTTPStatus.BAD_REQUEST)

        try:
            with upload.stream as stream:
                with Image.open(stream, formats=_ACCEPTED_FORMATS) as opened:
                    opened.load()
                    input_image = opened.copy()
        except (OSError, SyntaxError, ValueError, Image.DecompressionBombError) as exc:
            logger.error("failed to decode image", error=exc)
            return _error("Invalid image format", HTTPStatus.BAD_REQUEST)

        try:
            processed = processor.process(input_image, params)
        except ValueError as exc:
            logger.error("failed to process image", processor=processor_name, error=exc)
            return _error("Failed to process image", HTTPStatus.BAD_REQUEST)

        try:
            body = _encode_jpeg(processed)
        except (OSError, ValueError) as exc:
            logger.error("failed to encode image", error=exc)
            return _error("Failed to process image", HTTPStatus.INTERNAL_SERVER_ERROR)

        response = Response(body, status=HTTPStatus.OK, content_type="image/jpeg")
        response.headers["Content-Length"] = str(len(body))
        return response