__all__ = [
    "Renderer",
    "Locations",
    "Epub",
]

from helium_reader.renderers.base import Locations, Renderer
from helium_reader.renderers.epub import Epub
