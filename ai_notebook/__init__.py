"""AI Notebook - desktop notebook for PDFs."""

__version__ = "0.1.0"
