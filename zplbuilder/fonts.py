# -*- coding: utf-8 -*-
"""
Font name lookup

^CF only understands the one letter (or digit) names of the fonts
resident in the printer. A FontMapper translates friendlier names into
those codes. Names it does not know are sent to the printer unchanged.
"""
import types

# Resident fonts of Zebra ZPL II printers
ZEBRA_FONTS = {
    'A': 'A',
    'B': 'B',
    'D': 'D',
    'E': 'E',
    'F': 'F',
    'G': 'G',
    'H': 'H',
    '0': '0',
    'tiny': 'A',
    'small': 'B',
    'normal': 'D',
    'large': 'F',
    'huge': 'G',
    'ocr-a': 'H',
    'ocr-b': 'E',
    'scalable': '0',
    'triumvirate': '0',
    'cg triumvirate': '0',
    'cg triumvirate bold condensed': '0',
}


class FontMapper:
    """
    Read-only, case-insensitive lookup of font names to ZPL font codes.

    :param mapping: dict of font name -> font code
    """

    def __init__(self, mapping):
        self._mapping = types.MappingProxyType(
            {str(name).lower(): code for name, code in mapping.items()})

    def get(self, name):
        """Returns the font code, or None when the name is not mapped"""
        return self._mapping.get(str(name).lower())

    def __contains__(self, name):
        return str(name).lower() in self._mapping


def default_mapper():
    return FontMapper(ZEBRA_FONTS)
