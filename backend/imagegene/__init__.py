"""
ImageGene

Colour fingerprinting for images: dominant palette plus a lightness/chroma
heatmap, with optional automatic background removal.
"""

__version__ = "1.0.0"
