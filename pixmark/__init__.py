"""
PixMark - raster image markup and export.

This package contains the main application modules:
- editor: Annotation engine, tools, rendering and export
- ui: Main window
- services: Application services (config, logging)
"""

__version__ = "0.1.0"
