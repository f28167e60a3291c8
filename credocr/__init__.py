"""Credential Document OCR System.

A document processing pipeline that extracts text from credential
documents with Document AI, Gemini vision or Tesseract, follows the QR
codes printed on them to issuer-hosted originals, and maps the result
onto configured field schemas with an AI model and a keyword fallback.
"""
