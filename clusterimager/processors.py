"""Named image processors and the registry that looks them up."""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any

from PIL import Image

from .imaging import crop_image, resize_image
from .validation import (
    ValidationError,
    validate_crop_params,
    validate_dimension,
    validate_resize_params,
)


class ParameterError(ValidationError):
    """A required parameter is missing or is not an integer."""


class ProcessorNotFoundError(LookupError):
    """No processor is registered under the requested name."""


class ProcessorAlreadyRegisteredError(ValueError):
    """A processor is already registered under that name."""


def _int_param(params: Mapping[str, Any], name: str) -> int:
    value = params.get(name)
    if not isinstance(value, int) or isinstance(value, bool):
        raise ParameterError(f"{name} parameter is required and must be an integer")
    return value


class Processor(ABC):
    """An operation applied to an image, driven by a parameter mapping."""

    name: str = ""

    @abstractmethod
    def process(self, image: Image.Image, params: Mapping[str, Any]) -> Image.Image:
        """Apply the operation and return the new image."""

    @abstractmethod
    def validate_params(self, params: Mapping[str, Any]) -> None:
        """Raise ValidationError if the parameters cannot be used."""


class CropProcessor(Processor):
    """Crops a rectangle given by x, y, width and height."""

    name = "crop"

    def process(self, image: Image.Image, params: Mapping[str, Any]) -> Image.Image:
        x = _int_param(params, "x")
        y = _int_param(params, "y")
        width = _int_param(params, "width")
        height = _int_param(params, "height")
        img_width, img_height = image.size
        validate_crop_params(x, y, width, height, img_width, img_height)
        return crop_image(image, x, y, width, height)

    def validate_params(self, params: Mapping[str, Any]) -> None:
        x = _int_param(params, "x")
        y = _int_param(params, "y")
        width = _int_param(params, "width")
        height = _int_param(params, "height")
        if x < 0 or y < 0:
            raise ValidationError("coordinates cannot be negative")
        validate_dimension(width, "width")
        validate_dimension(height, "height")


class ResizeProcessor(Processor):
    """Resizes to the given width and height."""

    name = "resize"

    def process(self, image: Image.Image, params: Mapping[str, Any]) -> Image.Image:
        width = _int_param(params, "width")
        height = _int_param(params, "height")
        return resize_image(image, width, height)

    def validate_params(self, params: Mapping[str, Any]) -> None:
        width = _int_param(params, "width")
        height = _int_param(params, "height")
        validate_resize_params(width, height)


class Registry:
    """A thread-safe mapping of names to processors."""

    def __init__(self) -> None:
        self._processors: dict[str, Processor] = {}
        self._lock = threading.RLock()

    def register(self, name: str, processor: Processor) -> None:
        """Add a processor; a name may be registered only once."""
        with self._lock:
            if name in self._processors:
                raise ProcessorAlreadyRegisteredError(
                    f"processor {name} already registered"
                )
            self._processors[name] = processor

    def get(self, name: str) -> Processor:
        """Return the processor registered under the name."""
        with self._lock:
            try:
                return self._processors[name]
            except KeyError:
                raise ProcessorNotFoundError(f"processor {name} not found") from None

    def names(self) -> list[str]:
        """Return the names of all registered processors."""
        with self._lock:
            return list(self._processors)


def default_registry() -> Registry:
    """Return a registry holding the crop and resize processors."""
    registry = Registry()
    registry.register("crop", CropProcessor())
    registry.register("resize", ResizeProcessor())
    return registry