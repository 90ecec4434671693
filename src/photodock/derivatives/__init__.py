"""Cached thumbnails and placeholders."""

from photodock.derivatives.cache import DerivativeCache, ExistenceIndex
from photodock.derivatives.placeholder import encode_placeholder, render_placeholder

__all__ = ["DerivativeCache", "ExistenceIndex", "encode_placeholder", "render_placeholder"]
