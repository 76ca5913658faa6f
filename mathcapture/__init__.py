"""
Math Capture - MathPix OCR for handwritten, photographed, typed and PDF mathematics.
"""

__version__ = '1.0.0'
