"""
Content Processors Package

This package turns an uploaded PDF into embedded sermon chunks.

Modules:
--------
- pdf_extractor: PDF text extraction and normalization (PyMuPDF)
- chunker: sentence-aware, overlapping sermon chunking
- embedder: embedding generation using the OpenAI API
"""
