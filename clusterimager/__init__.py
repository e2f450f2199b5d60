"""Image cropping and resizing over HTTP, with a Redis job store and queue and storage interfaces."""

__version__ = "0.1.0"