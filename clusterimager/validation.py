"""Limits and checks for image dimensions and operation parameters."""

MAX_IMAGE_DIMENSION = 10000
MIN_IMAGE_DIMENSION = 1
MAX_FILE_SIZE = 10 << 20  # 10 MB


class ValidationError(ValueError):
    """Raised when a parameter for an image operation is not acceptable."""


class NegativeDimensionError(ValidationError):
    """A dimension was negative."""


class DimensionTooSmallError(ValidationError):
    """A dimension was below the minimum allowed size."""


class DimensionTooLargeError(ValidationError):
    """A dimension exceeded the maximum allowed size."""


def validate_dimension(value: int, name: str) -> None:
    """Check that a single dimension lies within the allowed range."""
    if value < 0:
        raise NegativeDimensionError(f"{name}: dimension cannot be negative")
    if value < MIN_IMAGE_DIMENSION:
        raise DimensionTooSmallError(
            f"{name} must be at least {MIN_IMAGE_DIMENSION}: "
            "dimension below minimum allowed size"
        )
    if value > MAX_IMAGE_DIMENSION:
        raise DimensionTooLargeError(
            f"{name} cannot exceed {MAX_IMAGE_DIMENSION}: "
            "dimension exceeds maximum allowed size"
        )


def validate_crop_params(
    x: int, y: int, width: int, height: int, img_width: int, img_height: int
) -> None:
    """Check a crop rectangle against its own limits and the image bounds."""
    validate_dimension(width, "width")
    validate_dimension(height, "height")

    if x < 0:
        raise ValidationError("x coordinate cannot be negative")
    if y < 0:
        raise ValidationError("y coordinate cannot be negative")

    if x + width > img_width:
        raise ValidationError("crop area exceeds image width")
    if y + height > img_height:
        raise ValidationError("crop area exceeds image height")


def validate_resize_params(width: int, height: int) -> None:
    """Check the target size of a resize."""
    validate_dimension(width, "width")
    validate_dimension(height, "height")