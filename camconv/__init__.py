"""Convert raw camera frames to baseline JPEG and BMP images."""

__version__ = "0.1.0"
__all__ = ["formats", "yuv", "jpeg_core", "encoder", "to_jpg", "to_bmp"]