# -*- coding: utf-8 -*-
"""
Bitmaps from image files

PillowDecoder loads any image Pillow can open and reduces it to
set/clear dots by thresholding its luminance. Transparent areas count
as white.
"""
import PIL.Image

from .exceptions import BuilderError


class PillowDecoder:
    """
    Bitmap source backed by a Pillow image.

    ::

        decoder = PillowDecoder('logo.png')
        builder.draw_image(10, 10, decoder, width=200)

    :param image: PIL.Image.Image, or a path/file object to open
    :param threshold: Luminance (0-255) below which a pixel is printed
    """

    def __init__(self, image, threshold=128):
        if not isinstance(image, PIL.Image.Image):
            image = PIL.Image.open(image)
        self._threshold = threshold
        self._load(self._flatten(image))

    @staticmethod
    def _flatten(image):
        if image.mode in ('RGBA', 'LA', 'PA') or 'transparency' in image.info:
            image = image.convert('RGBA')
            background = PIL.Image.new('RGBA', image.size, (255, 255, 255, 255))
            image = PIL.Image.alpha_composite(background, image)
        return image.convert('L')

    def _load(self, image):
        self._image = image
        self._pixels = image.load()

    def width(self):
        return self._image.width

    def height(self):
        return self._image.height

    def is_set(self, row, col):
        return self._pixels[col, row] < self._threshold

    def scale_image(self, width, height=-1):
        """
        Resize the image to (width, height) dots.

        :param height: Height in dots, or -1 to keep the aspect ratio
        """
        width = int(round(width))
        if height is None or height < 0:
            height = self._image.height * width / self._image.width
        height = int(round(height))
        if width <= 0 or height <= 0:
            raise BuilderError('Image size must be positive, got {0}x{1}'.format(width, height))
        self._load(self._image.resize((width, height), PIL.Image.LANCZOS))
