"""Tiered plain-text extraction for uploaded PDF documents."""
