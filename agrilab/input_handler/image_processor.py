"""
Image Processor Module.

This module handles lab report images:
    - Decoding image bytes (multi-frame TIFF included)
    - Orientation correction
    - Resolution normalization
    - Contrast enhancement before OCR

Supports: PNG, JPEG, TIFF, BMP, WebP, GIF
"""

import io
from typing import Any, Dict, List, Tuple

from PIL import Image, ImageEnhance, ImageOps, ImageSequence

from config import get_config
from agrilab.utils.logger import get_logger

# Initialize module logger
logger = get_logger(__name__)


class ImageProcessor:
    """
    Processor for image content.

    Decoding is strict (a broken image raises); OCR preparation is
    best-effort and never fails on a decodable image.

    Attributes:
        max_width: Maximum image width in pixels
        max_height: Maximum image height in pixels
        auto_orient: Whether to apply the EXIF orientation
        enhance_contrast: Whether to apply contrast enhancement

    Example:
        >>> processor = ImageProcessor()
        >>> pages, metadata = processor.decode(png_bytes)
        >>> ready = processor.prepare_for_ocr(pages[0])
    """

    def __init__(self) -> None:
        """Initialize the image processor with configuration."""
        self.max_width = get_config("input.image.max_width", 2480)
        self.max_height = get_config("input.image.max_height", 3508)
        self.auto_orient = get_config("input.image.auto_orient", True)
        self.enhance_contrast = get_config("input.image.enhance_contrast", True)
        self.max_pages = get_config("input.pdf.max_pages", 5)

        logger.debug(
            f"ImageProcessor initialized "
            f"(max_size={self.max_width}x{self.max_height})"
        )

    def decode(self, content: bytes) -> Tuple[List[Image.Image], Dict[str, Any]]:
        """
        Decode image bytes into one image per frame.

        Args:
            content: Raw image bytes.

        Returns:
            Tuple of (list of PIL Images, metadata dictionary).

        Raises:
            OSError: If the bytes are not a readable image.
        """
        image = Image.open(io.BytesIO(content))
        metadata = {
            'file_type': 'image',
            'format': image.format,
            'original_width': image.width,
            'original_height': image.height,
            'original_mode': image.mode,
        }

        frames = []
        for frame in ImageSequence.Iterator(image):
            frame.load()
            frames.append(frame.copy())
            if len(frames) >= self.max_pages:
                break

        metadata['page_count'] = len(frames)
        logger.debug(f"Decoded {image.format} image with {len(frames)} frame(s)")
        return frames, metadata

    def prepare_for_ocr(self, image: Image.Image) -> Image.Image:
        """
        Apply the OCR preparation pipeline to an image.

        Processing steps:
            1. Fix orientation from EXIF data
            2. Convert to RGB
            3. Resize if too large
            4. Enhance contrast (optional)

        Args:
            image: Input PIL Image.

        Returns:
            Processed PIL Image.
        """
        if self.auto_orient:
            image = ImageOps.exif_transpose(image)

        image = self.to_rgb(image)
        image = self._resize_if_needed(image)

        if self.enhance_contrast:
            image = self._enhance_image(image)

        return image

    @staticmethod
    def to_rgb(image: Image.Image) -> Image.Image:
        """
        Convert an image to RGB mode.

        Transparent images are flattened onto a white background.
        """
        if image.mode == 'RGB':
            return image

        if image.mode in ('RGBA', 'LA') or (image.mode == 'P' and 'transparency' in image.info):
            rgba = image.convert('RGBA')
            background = Image.new('RGB', rgba.size, (255, 255, 255))
            background.paste(rgba, mask=rgba.split()[3])
            return background

        return image.convert('RGB')

    def _resize_if_needed(self, image: Image.Image) -> Image.Image:
        width, height = image.size

        if width <= self.max_width and height <= self.max_height:
            return image

        ratio = min(self.max_width / width, self.max_height / height)
        new_size = (max(1, int(width * ratio)), max(1, int(height * ratio)))

        image = image.resize(new_size, Image.LANCZOS)
        logger.debug(f"Resized image from {width}x{height} to {new_size[0]}x{new_size[1]}")
        return image

    def _enhance_image(self, image: Image.Image) -> Image.Image:
        # Slight contrast and sharpness boost for faint scans
        image = ImageEnhance.Contrast(image).enhance(1.2)
        image = ImageEnhance.Sharpness(image).enhance(1.1)
        return image

    @staticmethod
    def to_png_bytes(image: Image.Image) -> bytes:
        """Encode an image as PNG bytes."""
        buffer = io.BytesIO()
        ImageProcessor.to_rgb(image).save(buffer, format='PNG')
        return buffer.getvalue()
