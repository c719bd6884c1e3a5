"""
PhotoEdits - Layered raster image editing core.

Subpackages:
- core: raster buffer, layers, compositing, history, render scheduling
- effects: the effect plugins and their registry
- gif: GIF codec, frame stack and animation generator
"""

__version__ = "0.1.0"
