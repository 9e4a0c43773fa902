"""Ingredient Scanner.

A FastAPI service that reads the ingredient panel of packaged food with
Tesseract OCR, has a chat-completion model classify the ingredients and
suggest healthier alternatives, and stores the results in MongoDB.
"""

__version__ = "1.0.0"
