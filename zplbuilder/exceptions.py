# -*- coding: utf-8 -*-
"""Errors raised while building a ZPL document"""


class BuilderError(ValueError):
    """
    Raised at the call that receives an unusable argument.

    Covers unknown units, non-positive geometry, unknown enumeration
    values and malformed graphic field payloads. Nothing is written to the
    document when it is raised.
    """
