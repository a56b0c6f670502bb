"""Image hosting for property photos."""

from .cloudinary_host import CloudinaryImageHost, ImageHost, ImageUploadError

__all__ = ["CloudinaryImageHost", "ImageHost", "ImageUploadError"]
