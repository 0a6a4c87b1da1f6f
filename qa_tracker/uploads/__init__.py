"""Screenshot uploads."""

from .storage import ALLOWED_SCREENSHOT_TYPES, ScreenshotStorage

__all__ = ["ALLOWED_SCREENSHOT_TYPES", "ScreenshotStorage"]
