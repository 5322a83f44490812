"""Shared plumbing for :mod:`pdfcleanx` tool plugins."""
