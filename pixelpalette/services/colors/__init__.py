"""
PixelPalette Colors Module

Pixel sampling, k-means clustering and palette rendering, plus color space
conversions, difference metrics, harmonies, blending, histograms and
color naming.
"""
